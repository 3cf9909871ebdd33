#!/usr/bin/env python3
"""Backporter CLI - cherry-pick commits to release branches."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from backporter.command.backport import BackportCommand
from backporter.core.config import State
from backporter.core.log import logger


class CliState(State):
    """Backport a commit to one or more release branches.

    The commit is cherry-picked onto each branch. Conflicts go to the
    configured autofix strategy (none, an external command, or an LLM
    agent) and then, in interactive mode, to you.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.git.repo_path value)
    2. backporter.yaml in the current directory (and --include files)
    3. backporter.yaml in the user config directory
    4. .env file for secrets
    5. Environment variables
       (BACKPORTER_CONFIG__GIT__REPO_PATH=value)

    Example:
      backporter pick --sha abc123 --branches 7.x,8.0
    """

    pick: CliSubCommand[BackportCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help if none."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Closes log files on exit
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
