"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from backporter.core.base import BaseConfig, BaseState
from backporter.core.log import Logger
from backporter.core.model import (
    Commit,
    CommitAuthor,
    ConflictSnapshot,
    ResolutionOutcome,
)
from backporter.core.yaml_settings import YamlWithIncludesSettingsSource

# Modules reachable from {name.attr} templates in YAML values,
# e.g. {platformdirs.user_log_dir} or {os.getcwd}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class GitConfig(BaseConfig):
    """Repository location and cherry-pick behaviour."""

    repo_path: Path = Field(
        default_factory=Path.cwd,
        description="Working tree the commits are cherry-picked into",
    )
    cwd: Path = Field(
        default_factory=Path.cwd,
        description="Directory external tools (editor) are started from",
    )
    author_name: str = Field(
        default="backporter",
        description="Author name used when resetting the commit author",
    )
    author_email: str = Field(
        default="backporter@localhost",
        description="Author email used when resetting the commit author",
    )
    reset_author: bool = Field(
        default=False,
        description=(
            "Attribute backported commits to author_name/author_email "
            "instead of the original author"
        ),
    )
    cherrypick_ref: bool = Field(
        default=True,
        description="Append '(cherry picked from commit ...)' (git -x)",
    )
    mainline: int | None = Field(
        default=None,
        description="Parent number when cherry-picking a merge commit",
    )
    no_verify: bool = Field(
        default=True,
        description="Skip pre-commit and commit-msg hooks (--no-verify)",
    )


class AutofixConfig(BaseConfig):
    """Automatic conflict resolution attempted before asking a human."""

    kind: Literal["none", "command", "llm"] = Field(
        default="none",
        description=(
            "'none' (always ask), 'command' (run autofix.command), or "
            "'llm' (pydantic-ai agent, see llm section)"
        ),
    )
    command: str | None = Field(
        default=None,
        description=(
            "Shell command for kind=command. Placeholders: {files}, "
            "{directory}, {target_branch}. Exit code 0 means resolved"
        ),
    )
    timeout: int = Field(
        default=600,
        description="Timeout for the autofix command in seconds",
    )


class LLMConfig(BaseConfig):
    """LLM provider and model selection for autofix kind=llm."""

    model: str | None = Field(
        default=None,
        description=(
            "Model in 'provider:model' form (e.g. openai:gpt-4o)"
        ),
    )
    api_key: str | None = Field(
        default=None,
        description=(
            "API key; when unset the provider reads its own environment "
            "variable (OPENAI_API_KEY, ...)"
        ),
    )
    base_url: str | None = Field(
        default=None,
        description="Base URL for OpenAI-compatible endpoints",
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    git: GitConfig = Field(
        default_factory=GitConfig,
        description="Repository and cherry-pick settings",
    )
    autofix: AutofixConfig = Field(
        default_factory=AutofixConfig,
        description="Automatic conflict resolution settings",
    )
    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="LLM provider and model settings",
    )

    interactive: bool = Field(
        default=True,
        description=(
            "Ask the user to fix conflicts; when false a conflict "
            "fails the backport immediately"
        ),
    )
    editor: str | None = Field(
        default=None,
        description="Editor launched on the repository when conflicts occur",
    )
    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "backporter"
        ),
        description="Root directory for log files",
    )
    run_name: str = Field(
        default="backport",
        description="Subdirectory of log_root for this run's logs",
    )

    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Command template overrides by category (git, ...)",
    )
    prompts: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="LLM prompt templates for the autofix agent",
    )
    agents: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Agent settings for the autofix agent",
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Install the global logger once the config is complete."""
        from backporter.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger(level=self.log_level)

        self.logger = setup_logger(
            log_root=self.log_root,
            run_name=self.run_name,
            console=self.logger.console,
            otlp=self.logger.otlp,
            file=self.logger.file,
            level=self.logger.level,
        )
        return self


# ============================================================
# RUNTIME STATE MODELS (mutable during a backport)
# ============================================================

class BackportState(BaseState):
    """State of the commit/branch pair currently being processed.

    Replaced wholesale at the start of every pair; nothing carries
    over between pairs.
    """

    commit: Commit | None = Field(
        default=None, description="Commit being backported"
    )
    target_branch: str | None = Field(
        default=None, description="Branch the commit is applied to"
    )
    author: CommitAuthor | None = Field(
        default=None, description="Author for the resulting commit"
    )
    snapshot: ConflictSnapshot | None = Field(
        default=None,
        description="Conflicts reported by the cherry-pick",
    )
    retries: int = Field(
        default=0, description="Confirmed interactive resolution rounds"
    )
    outcome: ResolutionOutcome | None = Field(
        default=None, description="How the conflict phase ended"
    )
    status: str = Field(
        default="pending",
        description="pending, running, complete, failed",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Runtime(BaseModel):
    """Runtime state grouped by workflow."""

    backport: BackportState = Field(
        default_factory=BackportState,
        description="Current commit/branch backport",
    )


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Configuration plus runtime state; flows through every node.

    Loaded from (highest priority first) init kwargs, YAML layers,
    .env, environment variables (BACKPORTER_CONFIG__GIT__REPO_PATH)
    and file secrets.
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates while backporting)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge "
            "(--include on CLI or include: in YAML files)"
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="backporter.yaml",
        env_file=".env",
        env_prefix="BACKPORTER_",
        env_nested_delimiter="__",
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    def close(self):
        self.config.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Expand {config.git.repo_path}-style templates everywhere."""
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i, item in enumerate(obj):
                obj[i] = self._substitute_value(item)

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            new = self._substitute_string(value)
            return value if new == value else new
        if isinstance(value, Path):
            new = self._substitute_string(str(value))
            return value if new == str(value) else Path(new)
        if isinstance(value, (Config, BaseConfig, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Replace {dotted.path} with the value it names.

        The first component is looked up in TEMPLATE_NAMESPACE, then on
        the State itself. Callables are called with the application
        name (platformdirs style). Unknown paths are left untouched so
        command placeholders like {sha} survive.

        Examples:
            "{config.git.repo_path}/build" -> "/home/user/repo/build"
        """
        def replace(match):
            parts = match.group(1).split(".")
            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    obj = obj('backporter', appauthor=False)
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([a-z_]+\.[a-z._]+)\}', replace, value)


__all__ = [
    "State",
    "Config",
    "GitConfig",
    "AutofixConfig",
    "LLMConfig",
    "BackportState",
    "Runtime",
]
