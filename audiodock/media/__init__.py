"""
Media Processing Layer.

This package is responsible for driving the external transcoder: building its
argument list and running it.
"""

from .transcoder import (
    BLACK_VIDEO,
    BlackVideoProfile,
    build_black_video_command,
    run_process,
)

__all__ = ["BLACK_VIDEO", "BlackVideoProfile", "build_black_video_command", "run_process"]
