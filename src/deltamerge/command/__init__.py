"""CLI command modules for deltamerge."""

from deltamerge.command.clean import CleanCommand
from deltamerge.command.merge import MergeCommand

__all__ = ["CleanCommand", "MergeCommand"]
