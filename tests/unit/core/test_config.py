"""Tests for State construction, templates and author selection."""

from pathlib import Path

import platformdirs
import pytest

from backporter.core.config import Config, GitConfig, State
from backporter.core.log import ConsoleSink, FileSink, Logger, OTLPSink
from backporter.core.model import Commit, CommitAuthor, get_commit_author


def quiet_logger():
    return Logger(
        console=ConsoleSink(level="debug"),
        file=FileSink(enabled=False),
        otlp=OTLPSink(enabled=False),
    )


def make_state(tmp_path, **config):
    return State(config=Config(log_root=tmp_path, logger=quiet_logger(), **config))


def test_defaults(tmp_path, mock_argv):
    state = make_state(tmp_path)

    assert state.config.interactive is True
    assert state.config.autofix.kind == "none"
    assert state.config.git.cherrypick_ref is True
    assert state.runtime.backport.retries == 0
    assert state.runtime.backport.status == "pending"


def test_config_templates_substituted(tmp_path, mock_argv):
    state = make_state(
        tmp_path,
        git=GitConfig(repo_path=tmp_path / "kibana"),
        editor="code --wait --folder-uri {config.git.repo_path}",
    )

    assert state.config.editor == (
        f"code --wait --folder-uri {tmp_path / 'kibana'}"
    )


def test_platformdirs_templates(tmp_path, mock_argv):
    state = make_state(
        tmp_path, autofix={"kind": "command", "command": "fix --cache {platformdirs.user_cache_dir}"}
    )

    expected = platformdirs.user_cache_dir("backporter", appauthor=False)
    assert state.config.autofix.command == f"fix --cache {expected}"


def test_command_placeholders_preserved(tmp_path, mock_argv):
    state = make_state(
        tmp_path,
        autofix={"kind": "command", "command": "fix {files} --dir {directory}"},
        commands={"git": {"cherry_pick": "git {identity} cherry-pick {sha}"}},
    )

    assert state.config.autofix.command == "fix {files} --dir {directory}"
    assert state.config.commands["git"]["cherry_pick"] == (
        "git {identity} cherry-pick {sha}"
    )


def test_unknown_template_left_alone(tmp_path, mock_argv):
    state = make_state(tmp_path, editor="{config.no_such.field}")

    assert state.config.editor == "{config.no_such.field}"


def test_log_level_alias(tmp_path, mock_argv):
    config = Config(**{"log-level": "debug", "log_root": tmp_path})

    assert config.log_level == "debug"
    assert config.logger.level == "debug"


def test_environment_override(tmp_path, mock_argv, monkeypatch):
    monkeypatch.setenv("BACKPORTER_CONFIG__INTERACTIVE", "false")
    monkeypatch.setenv("BACKPORTER_CONFIG__LOG_ROOT", str(tmp_path))

    state = State()

    assert state.config.interactive is False
    assert state.config.log_root == Path(tmp_path)


def test_state_closes_logger_files(tmp_path, mock_argv):
    log_file = tmp_path / "run.log"
    config = Config(
        log_root=tmp_path,
        logger=Logger(
            console=ConsoleSink(enabled=False),
            file=FileSink(enabled=True, path=str(log_file)),
            otlp=OTLPSink(enabled=False),
        ),
    )

    with State(config=config) as state:
        assert not state.config.logger.file._file.closed

    assert state.config.logger.file._file.closed


@pytest.mark.parametrize(
    "reset_author, name, email, expected",
    [
        (False, "Ada", "ada@example.com", CommitAuthor(name="Ada", email="ada@example.com")),
        (True, "Ada", "ada@example.com", CommitAuthor(name="bot", email="bot@x")),
        (False, None, None, CommitAuthor(name="bot", email="bot@x")),
    ],
)
def test_get_commit_author(reset_author, name, email, expected):
    config = Config.model_construct(
        git=GitConfig(reset_author=reset_author, author_name="bot", author_email="bot@x")
    )
    commit = Commit(sha="abc", message="m", author_name=name, author_email=email)

    assert get_commit_author(config, commit) == expected
