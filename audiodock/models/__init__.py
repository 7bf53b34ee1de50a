"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the backend, such as settings, export jobs and
command results.
"""

from .binaries import BinaryCandidate, LocatorResult
from .export import ExportJob, ExportOutcome, ExportState, ProcessResult
from .result import CommandResult
from .settings import RootKind, Settings

__all__ = [
    "BinaryCandidate",
    "CommandResult",
    "ExportJob",
    "ExportOutcome",
    "ExportState",
    "LocatorResult",
    "ProcessResult",
    "RootKind",
    "Settings",
]
