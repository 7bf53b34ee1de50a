"""
Builds the ffmpeg command for the black-video export and runs external
processes synchronously.

Command construction is kept separate from execution so the exact argument
list can be logged, pasted into a terminal, and unit-tested without running
anything.
"""

import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from audiodock.exceptions import ProcessSpawnError
from audiodock.models.export import TAIL_LINES, ProcessResult
from audiodock.utils.formatting import tail_lines

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlackVideoProfile:
    """Fixed parameters of the solid-colour video export."""

    width: int = 1280
    height: int = 720
    fps: int = 30
    color: str = "black"
    video_codec: str = "libx264"
    pixel_format: str = "yuv420p"
    audio_codec: str = "aac"
    sample_rate: int = 48000
    channels: int = 2
    audio_bitrate: str = "192k"
    container: str = "mp4"

    @property
    def tag(self) -> str:
        """e.g. 'black_1280x720_30fps'"""
        return f"{self.color}_{self.width}x{self.height}_{self.fps}fps"

    def output_name(self, session_id: str) -> str:
        return f"{session_id}_{self.tag}.{self.container}"


BLACK_VIDEO = BlackVideoProfile()


def build_black_video_command(
    ffmpeg: Path,
    input_audio: Path,
    output_file: Path,
    profile: BlackVideoProfile = BLACK_VIDEO,
) -> list[str]:
    """
    Build the full ffmpeg command for muxing an audio track over a synthetic
    solid-colour video.

    The command structure is:
        ffmpeg -y -hide_banner
          -f lavfi -i color=...      ← synthetic video at the target size/rate
          -i <input audio>
          -map 0:v:0 -map 1:a:0
          -shortest                  ← stop at the shorter stream (the audio)
          <video/audio codec flags>
          -movflags +faststart       ← metadata up front for streaming
          <output>
    """
    source = (
        f"color=c={profile.color}:s={profile.width}x{profile.height}:r={profile.fps}"
    )
    return [
        str(ffmpeg),
        "-y",
        "-hide_banner",
        "-f", "lavfi",
        "-i", source,
        "-i", str(input_audio),
        "-map", "0:v:0",
        "-map", "1:a:0",
        "-shortest",
        "-c:v", profile.video_codec,
        "-tune", "stillimage",
        "-pix_fmt", profile.pixel_format,
        "-r", str(profile.fps),
        "-c:a", profile.audio_codec,
        "-ar", str(profile.sample_rate),
        "-ac", str(profile.channels),
        "-b:a", profile.audio_bitrate,
        "-movflags", "+faststart",
        str(output_file),
    ]


def command_as_string(cmd: list[str]) -> str:
    """Human-readable version of the command for logging."""
    return subprocess.list2cmdline(cmd) if sys.platform == "win32" else " ".join(cmd)


def run_process(cmd: list[str], tail_count: int = TAIL_LINES) -> ProcessResult:
    """
    Runs *cmd* to completion with stdout and stderr merged.

    No timeout is applied; the call blocks for the whole process lifetime.

    Raises:
        ProcessSpawnError: If the process could not be started.
    """
    creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0) if sys.platform == "win32" else 0
    log.debug(f"Running: {command_as_string(cmd)}")
    try:
        completed = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            creationflags=creationflags,
        )
    except (OSError, ValueError) as e:
        raise ProcessSpawnError(f"Could not start '{cmd[0]}': {e}") from e

    output = completed.stdout or ""
    log.debug(f"'{Path(cmd[0]).name}' exited with code {completed.returncode}.")
    return ProcessResult(
        exit_code=completed.returncode,
        output=output,
        tail=tail_lines(output, tail_count),
    )
