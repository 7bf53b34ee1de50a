"""
Models describing one black-video export request and its outcome.
"""

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

SESSION_ID_PATTERN = re.compile(r"^[0-9_]+$")
DATE_BUCKET_PATTERN = re.compile(r"^[0-9-]+$")

TAIL_LINES = 50


class ExportState(Enum):
    IDLE = auto()
    INPUT_VALIDATED = auto()
    OUTPUT_PREPARED = auto()
    PROCESS_RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()


class ExportJob(BaseModel):
    """A validated export request. Identifiers are checked before any I/O."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    input_path: str
    output_root: str | None = None
    date_bucket: str

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, v: str) -> str:
        if not SESSION_ID_PATTERN.fullmatch(v):
            raise ValueError("Session id may only contain digits and underscores.")
        return v

    @field_validator("date_bucket")
    @classmethod
    def validate_date_bucket(cls, v: str) -> str:
        if not DATE_BUCKET_PATTERN.fullmatch(v):
            raise ValueError("Date folder may only contain digits and dashes.")
        return v

    @field_validator("input_path")
    @classmethod
    def validate_input_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Input path cannot be empty.")
        return v

    @field_validator("output_root")
    @classmethod
    def blank_output_root(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if "\x00" in v:
            raise ValueError("Output root cannot contain NUL characters.")
        return v


@dataclass
class ProcessResult:
    """Exit code and merged output of one external process run."""

    exit_code: int
    output: str
    tail: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass
class ExportOutcome:
    """What a finished export produced."""

    session_id: str
    output_path: Path
    state: ExportState
    process: ProcessResult | None = None
