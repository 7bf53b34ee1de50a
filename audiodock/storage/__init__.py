"""
Storage Layer.

This package handles all data persistence: the settings document and the
per-session export trace logs.
"""

from .settings_store import SettingsStore
from .trace_log import SessionTraceLog

__all__ = ["SessionTraceLog", "SettingsStore"]
