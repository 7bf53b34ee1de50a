"""
Backend Command Layer.

This package exposes every operation the UI layer may invoke, each returning a
structured `CommandResult`.
"""

from .commands import BackendCommands

__all__ = ["BackendCommands"]
