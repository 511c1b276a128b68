"""Utility modules for quiet imports and logging."""

from .imports import import_quietly, load_sounddevice, with_suppressed_audio_warnings
from .logging import setup_logging

__all__ = ["import_quietly", "load_sounddevice", "with_suppressed_audio_warnings", "setup_logging"]
