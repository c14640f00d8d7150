"""Interfaces the repository manager consumes from the rest of the node."""

from .execution_protocol import ExecutionContext, Gear, PathLike

__all__ = ["ExecutionContext", "Gear", "PathLike"]
