"""Asset resolution and sandboxed export backend for the audio desktop app."""

__version__ = "0.1.0"
