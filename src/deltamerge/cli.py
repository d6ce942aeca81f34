#!/usr/bin/env python3
"""deltamerge CLI - replay a change set onto a drifted deployment target."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from deltamerge.command.clean import CleanCommand
from deltamerge.command.merge import MergeCommand
from deltamerge.core.config import State
from deltamerge.core.log import logger


class CliState(State):
    """Three-way merge of a change set onto a deployment target.

    Instead of copying the new version of each file over the target,
    deltamerge applies only what the change set changed, keeping edits
    made directly on the target. Conflicts are reported, never guessed.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.merge.whitespace collapse)
    2. ./deltamerge.yaml and --include files
    3. .env file
    4. Environment variables
       (DELTAMERGE_CONFIG__MERGE__WHITESPACE=collapse)
    """

    merge: CliSubCommand[MergeCommand]
    clean: CliSubCommand[CleanCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(2)

        # Closing the logger flushes file and OTLP sinks on exit
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
