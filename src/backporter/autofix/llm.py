"""Autofix with a pydantic-ai agent working on the conflicted files."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path

from pydantic_ai import Agent, providers

from backporter.core.config import LLMConfig
from backporter.core.log import logger
from backporter.tools import Workspace, workspace_tools
from backporter.tools.parser import has_conflict_markers

DEFAULT_SYSTEM_PROMPT = (
    "You resolve git cherry-pick conflicts. 'ours' is the target branch, "
    "'theirs' is the commit being backported. Keep the intent of the "
    "backported change while fitting it to the target branch. Use "
    "list_conflicts and show_version to understand each hunk, "
    "write_file to replace the file, and submit_resolution for every "
    "conflicted file."
)


@contextmanager
def inject_provider_params(llm_config: LLMConfig):
    """Make pydantic-ai build providers with our api_key / base_url.

    Agent(model_name) infers the provider from the name with no way to
    pass credentials, so infer_provider is swapped for the duration
    of agent construction.
    """
    kwargs = {}
    if llm_config.api_key:
        kwargs['api_key'] = llm_config.api_key
    if llm_config.base_url:
        kwargs['base_url'] = llm_config.base_url

    if not kwargs:
        yield
        return

    original = providers.infer_provider

    def patched_infer_provider(provider_name: str):
        return providers.infer_provider_class(provider_name)(**kwargs)

    try:
        providers.infer_provider = patched_infer_provider
        yield
    finally:
        providers.infer_provider = original


class LLMAutofix:
    """Ask an LLM agent to resolve and stage every conflicted file.

    The attempt only counts as successful when, after the agent is done,
    none of the files contains conflict markers any more. Agent or
    provider failures are logged and reported as an unsuccessful
    attempt so the user can still resolve by hand.
    """

    def __init__(self, llm_config: LLMConfig, config=None, repository=None):
        """Initialize with LLM settings.

        Args:
            llm_config: Model, api_key and base_url
            config: Optional Config for prompts and agent settings
            repository: GitRepository used by show_version and staging
        """
        self.llm_config = llm_config
        self.repository = repository
        prompts = getattr(config, "prompts", {}) or {}
        agents = getattr(config, "agents", {}) or {}
        self.system_prompt = (
            prompts.get("autofix", {}).get("system") or DEFAULT_SYSTEM_PROMPT
        )
        self.retries = agents.get("autofix", {}).get("retries", 5)

    @property
    def name(self) -> str:
        return "llm"

    def create_agent(self) -> Agent:
        with inject_provider_params(self.llm_config):
            return Agent(
                self.llm_config.model,
                deps_type=Workspace,
                tools=workspace_tools,
                system_prompt=self.system_prompt,
                retries=self.retries,
            )

    @staticmethod
    def build_prompt(workspace: Workspace) -> str:
        files = "\n".join(f"- {f}" for f in workspace.conflict_files)
        return (
            f"Cherry-picking onto '{workspace.target_branch}' stopped with "
            f"conflicts in:\n{files}\n\n"
            f"Resolve and submit each of them."
        )

    @staticmethod
    def unresolved(workspace: Workspace) -> list[str]:
        """Conflicted files not submitted, or with markers left in them."""
        remaining = []
        for filepath in workspace.conflict_files:
            path = workspace.workdir / filepath
            if filepath not in workspace.submitted or (
                path.is_file() and has_conflict_markers(path.read_text())
            ):
                remaining.append(filepath)
        return remaining

    async def attempt(
        self, files: list[str], repo_path: Path, target_branch: str
    ) -> bool:
        if not self.llm_config.model:
            logger.warning("autofix kind 'llm' selected but llm.model is unset")
            return False

        repo_path = Path(repo_path)
        relative = [
            str(Path(f).relative_to(repo_path)) if Path(f).is_absolute() else f
            for f in files
        ]
        workspace = Workspace(
            repo_path,
            relative,
            repository=self.repository,
            target_branch=target_branch,
        )
        prompt = self.build_prompt(workspace)

        logger.debug(
            "Running autofix agent",
            model=self.llm_config.model,
            retries=self.retries,
            conflict_files=relative,
        )

        with logger.span("autofix agent", model=self.llm_config.model):
            try:
                agent = self.create_agent()
                result = await agent.run(prompt, deps=workspace)
            except Exception as e:
                logger.error(
                    "Autofix agent failed",
                    exception_type=type(e).__name__,
                    exception_message=str(e),
                    _exc_info=e,
                )
                return False

        logger.debug("Autofix agent finished", output=str(result.output)[:200])

        remaining = self.unresolved(workspace)
        if remaining:
            logger.warning(
                "Autofix agent left conflicts behind", files=remaining
            )
            return False
        return True
