"""Deployment target access."""

from deltamerge.target.client import TargetClient

__all__ = ["TargetClient"]
