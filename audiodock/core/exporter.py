"""
Drives one black-video export request end to end.

Each request moves through IDLE → INPUT_VALIDATED → OUTPUT_PREPARED →
PROCESS_RUNNING → COMPLETED | FAILED and spawns the transcoder at most once.
Every stage is appended to the session's trace log; the only value that leaves
this module on failure is a generic message.
"""

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from audiodock.core.files import EXPORT_OUTPUT_ROOTS
from audiodock.core.locator import ExecutableLocator
from audiodock.core.provisioner import DirectoryProvisioner
from audiodock.exceptions import (
    EXPORT_FAILED,
    AudioDockError,
    NotFoundError,
    PathSecurityError,
    ProcessExitError,
    ProcessSpawnError,
    StorageError,
    ValidationError,
)
from audiodock.media.transcoder import (
    BLACK_VIDEO,
    BlackVideoProfile,
    build_black_video_command,
    run_process,
)
from audiodock.models.export import ExportJob, ExportOutcome, ExportState, ProcessResult
from audiodock.models.settings import RootKind
from audiodock.storage.trace_log import SessionTraceLog
from audiodock.utils.formatting import single_line
from audiodock.utils.path import ensure_new_dir_within, ensure_within, validate_writable_dir
from audiodock.utils.structured_logger import ExportLogger

log = logging.getLogger(__name__)

INVALID_INPUT_PATH = "Invalid input path."
INPUT_ROOTS = (RootKind.DOWNLOAD, RootKind.TEMP, RootKind.EXPORT)


def build_job(
    session_id: str,
    input_path: str,
    output_root: str | None,
    now: datetime,
) -> ExportJob:
    """
    Validates the request identifiers before anything touches the filesystem.

    Raises:
        ValidationError: With the specific reason.
    """
    try:
        return ExportJob(
            session_id=session_id,
            input_path=input_path,
            output_root=output_root,
            date_bucket=now.strftime("%Y-%m-%d"),
        )
    except PydanticValidationError as e:
        reasons = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise ValidationError(reasons) from e


class ExportOrchestrator:
    """
    Runs export requests. Each call to `export` keeps its progress in locals,
    so one instance may serve any number of requests.
    """

    def __init__(
        self,
        provisioner: DirectoryProvisioner,
        locator: ExecutableLocator,
        trace: SessionTraceLog,
        runner: Callable[[list[str]], ProcessResult] = run_process,
        profile: BlackVideoProfile = BLACK_VIDEO,
        clock: Callable[[], datetime] = datetime.now,
        events: ExportLogger | None = None,
    ):
        self.provisioner = provisioner
        self.locator = locator
        self.trace = trace
        self.runner = runner
        self.profile = profile
        self.clock = clock
        self.events = events

    def export(
        self, input_path: str, session_id: str, output_root: str | None = None
    ) -> ExportOutcome:
        """
        Exports *input_path* as a solid-colour video.

        Returns:
            The outcome, with the canonical path of the produced artifact.

        Raises:
            ValidationError: If the session id is malformed (nothing is logged).
            AudioDockError: Any other failure, with a generic public message.
        """
        job = build_job(session_id, input_path, output_root, self.clock())
        started = time.monotonic()
        try:
            outcome = self._run(job)
        except AudioDockError as e:
            log.debug(f"Export {job.session_id}: {ExportState.FAILED.name}")
            if self.events:
                self.events.export_failed(job.session_id, e.kind.value, e.detail)
            raise
        if self.events:
            self.events.export_completed(
                job.session_id, str(outcome.output_path), time.monotonic() - started
            )
        return outcome

    # ── Stages ────────────────────────────────────────────────────────────────

    def _run(self, job: ExportJob) -> ExportOutcome:
        self._record(
            job,
            "start",
            f"input={single_line(job.input_path)} "
            f"output_root={single_line(job.output_root or '')} date={job.date_bucket}",
        )

        input_file = self._validate_input(job)
        self._advance(job, ExportState.INPUT_VALIDATED)

        output_file = self._prepare_output(job)
        self._advance(job, ExportState.OUTPUT_PREPARED)

        ffmpeg = self._locate_transcoder(job)

        cmd = build_black_video_command(ffmpeg, input_file, output_file, self.profile)
        self._record(job, "invoke", f"args={json.dumps(cmd, ensure_ascii=False)}")
        self._advance(job, ExportState.PROCESS_RUNNING)

        try:
            result = self.runner(cmd)
        except ProcessSpawnError as e:
            self._fail(job, "spawn", e.detail)
            raise ProcessSpawnError(e.detail, EXPORT_FAILED) from e

        self._record(job, "exit", f"code={result.exit_code} tail={single_line(result.tail)}")
        self._record(job, "output", f"raw={single_line(result.output)}")

        if not result.succeeded:
            detail = f"Transcoder exited with code {result.exit_code}."
            self._fail(job, "process", detail)
            raise ProcessExitError(detail, result.exit_code, EXPORT_FAILED)

        if not output_file.is_file():
            detail = f"Transcoder reported success but '{output_file}' is missing."
            self._fail(job, "verify", detail)
            raise StorageError(detail, EXPORT_FAILED)

        canonical = output_file.resolve()
        self._record(job, "completed", f"output={single_line(str(canonical))}")
        state = self._advance(job, ExportState.COMPLETED)
        log.info(f"Export {job.session_id} completed: '{canonical.name}'.")
        return ExportOutcome(
            session_id=job.session_id,
            output_path=canonical,
            state=state,
            process=result,
        )

    def _validate_input(self, job: ExportJob) -> Path:
        roots = self._sandbox_roots(INPUT_ROOTS)
        try:
            input_file = ensure_within(roots, job.input_path)
        except PathSecurityError as e:
            self._fail(job, "validate_input", e.detail)
            raise PathSecurityError(e.detail, INVALID_INPUT_PATH) from e
        if not input_file.is_file():
            detail = f"Input '{input_file}' is not a file."
            self._fail(job, "validate_input", detail)
            raise PathSecurityError(detail, INVALID_INPUT_PATH)
        return input_file

    def _prepare_output(self, job: ExportJob) -> Path:
        try:
            if job.output_root:
                out_dir = ensure_new_dir_within(
                    self._sandbox_roots(EXPORT_OUTPUT_ROOTS), job.output_root
                )
            else:
                out_dir = self.provisioner.resolve(RootKind.EXPORT) / job.date_bucket
            out_dir = validate_writable_dir(out_dir)
        except PathSecurityError as e:
            self._fail(job, "prepare_output", e.detail)
            raise PathSecurityError(e.detail, EXPORT_FAILED) from e
        except StorageError as e:
            self._fail(job, "prepare_output", e.detail)
            raise StorageError(e.detail, EXPORT_FAILED) from e
        return out_dir / self.profile.output_name(job.session_id)

    def _locate_transcoder(self, job: ExportJob) -> Path:
        try:
            ffmpeg, located = self.locator.locate_tool("ffmpeg")
        except NotFoundError as e:
            self._fail(job, "locate", f"{e.detail} trail={single_line(list(e.trail))}")
            raise NotFoundError(e.detail, EXPORT_FAILED, trail=e.trail) from e
        self._record(job, "binaries", f"dir={single_line(str(located.directory))}")
        return ffmpeg

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _sandbox_roots(self, kinds: tuple[RootKind, ...]) -> list[Path]:
        roots = []
        for kind in kinds:
            try:
                roots.append(self.provisioner.resolve(kind))
            except AudioDockError as e:
                log.debug(f"Skipping unavailable {kind.value} root: {e.detail}")
        return roots

    @staticmethod
    def _advance(job: ExportJob, state: ExportState) -> ExportState:
        log.debug(f"Export {job.session_id}: {state.name}")
        return state

    def _record(self, job: ExportJob, stage: str, payload: str = "") -> None:
        self.trace.append(job.session_id, stage, payload)

    def _fail(self, job: ExportJob, stage: str, detail: str) -> None:
        log.warning(f"Export {job.session_id} failed at {stage}: {detail}")
        self._record(job, "failed", f"stage={stage} detail={single_line(detail)}")
