"""Tests for the --include command-line argument."""

import sys

from backporter.core.config import State
from backporter.core.yaml_settings import (
    YamlWithIncludesSettingsSource,
    cli_includes,
)


def test_no_includes(mock_argv):
    assert cli_includes(["backporter", "pick", "--sha", "abc"]) == []


def test_trailing_include_without_value_ignored():
    assert cli_includes(["backporter", "--include"]) == []


def test_multiple_includes_later_wins(tmp_path, mock_argv):
    first = tmp_path / "first.yaml"
    first.write_text("config:\n  editor: vim\n  interactive: false\n")
    second = tmp_path / "second.yaml"
    second.write_text("config:\n  editor: code --wait\n")
    sys.argv = [
        "backporter",
        "--include", str(first),
        "--include", str(second),
    ]

    data = YamlWithIncludesSettingsSource(State)()

    assert data["config"]["editor"] == "code --wait"
    assert data["config"]["interactive"] is False


def test_include_overrides_project_file(tmp_path, mock_argv):
    project = tmp_path / "backporter.yaml"
    project.write_text("config:\n  run_name: project\n  editor: vim\n")
    ci = tmp_path / "ci.yaml"
    ci.write_text("config:\n  run_name: ci\n")
    sys.argv = ["backporter", "--include", str(ci)]

    data = YamlWithIncludesSettingsSource(State, yaml_file=str(project))()

    assert data["config"]["run_name"] == "ci"
    assert data["config"]["editor"] == "vim"


def test_state_loads_include(tmp_path, mock_argv):
    ci = tmp_path / "ci.yaml"
    ci.write_text(
        "config:\n"
        f"  log_root: {tmp_path}\n"
        "  interactive: false\n"
        "  autofix:\n"
        "    kind: command\n"
        "    command: resolve {files}\n"
    )
    sys.argv = ["backporter", "--include", str(ci)]

    state = State()

    assert state.config.interactive is False
    assert state.config.autofix.kind == "command"
    assert state.config.autofix.command == "resolve {files}"
