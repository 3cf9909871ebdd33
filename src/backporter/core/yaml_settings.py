"""YAML settings source with ``include:`` directives and --include."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from backporter.core.log import logger

CONFIG_FILENAME = "backporter.yaml"

DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"


def cli_includes(argv: list[str] | None = None) -> list[str]:
    """Collect ``--include FILE`` values from the command line.

    pydantic-settings parses the CLI after sources are read, so the
    include list has to be extracted by hand up front.
    """
    argv = sys.argv if argv is None else argv
    includes = []
    i = 1
    while i < len(argv):
        if argv[i] == "--include" and i + 1 < len(argv):
            includes.append(argv[i + 1])
            i += 1
        i += 1
    return includes


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """Layered YAML configuration.

    Files are deep-merged, later ones winning:
        package defaults < user config < ./backporter.yaml < --include

    Any file may carry an ``include:`` key (string or list) naming
    further files, resolved relative to the including file. Included
    data is merged underneath the including file.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        includes = cli_includes()
        base = yaml_file or settings_cls.model_config.get("yaml_file")

        if base and includes:
            base = [base] if isinstance(base, (str, os.PathLike)) else list(base)
            yaml_file = base + includes
        elif includes:
            yaml_file = includes
        else:
            yaml_file = base

        super().__init__(settings_cls, yaml_file)

    def _read_files(self, files, *args, **kwargs):  # noqa: ARG002
        """Read and merge every configuration layer that exists.

        Args:
            files: Project config and/or --include paths

        Returns:
            Deep-merged dictionary of all layers
        """
        candidates = [
            DEFAULTS_FILE,
            Path(user_config_dir("backporter", appauthor=False))
            / CONFIG_FILENAME,
        ]

        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            candidates.extend(Path(f).expanduser() for f in files)
        else:
            candidates.append(Path(CONFIG_FILENAME))

        result: dict = {}
        seen: set[Path] = set()
        for path in candidates:
            resolved = path.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)

            if not path.is_file():
                logger.debug("Configuration file not found", file=str(path))
                continue

            logger.debug("Loading configuration", file=str(path))
            result = deep_merge(result, load_yaml_with_includes(path))

        return result


def load_yaml_with_includes(
    filepath: Path, visited: frozenset[Path] = frozenset()
) -> dict:
    """Load a YAML file, resolving ``include:`` directives recursively.

    Args:
        filepath: YAML file to load
        visited: Files already on the include chain

    Returns:
        Merged dictionary for this file and everything it includes

    Raises:
        ValueError: On a circular include
    """
    filepath = filepath.resolve()
    if filepath in visited:
        raise ValueError(f"Circular include: {filepath}")
    visited = visited | {filepath}

    with open(filepath, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    includes = data.pop("include", None) or []
    if isinstance(includes, str):
        includes = [includes]

    merged: dict = {}
    for inc in includes:
        inc_path = Path(inc).expanduser()
        if not inc_path.is_absolute():
            inc_path = filepath.parent / inc_path
        logger.debug(
            "Including configuration",
            include_file=str(inc_path),
            included_from=str(filepath),
        )
        merged = deep_merge(merged, load_yaml_with_includes(inc_path, visited))

    return deep_merge(merged, data)


def deep_merge(base: dict, override: dict) -> dict:
    """Return ``base`` updated recursively with ``override``."""
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result
