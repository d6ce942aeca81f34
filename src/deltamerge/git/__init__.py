"""Delta extraction from git."""

from deltamerge.git.delta import GitDeltaSource

__all__ = ["GitDeltaSource"]
