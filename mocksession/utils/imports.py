"""
Helpers for importing the native audio stack without flooding the console.
"""
import os
import functools
from typing import Any, Callable

from ..errors import CaptureAcquisitionError


# PortAudio tries to start a JACK server on some Linux setups
os.environ.setdefault("JACK_NO_START_SERVER", "1")


def import_quietly(func: Callable[[], Any]) -> Any:
    """
    Run a function while suppressing Python warnings and stderr output.
    Used around imports of libraries that print probe noise on load.
    """
    import sys
    import warnings

    original_stderr = sys.stderr
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            with open(os.devnull, 'w') as devnull:
                sys.stderr = devnull
                return func()
    finally:
        sys.stderr = original_stderr


def load_sounddevice():
    """
    Import sounddevice lazily.

    PortAudio is a native library that may be missing on headless machines,
    so the import is deferred until a microphone is actually opened.

    Raises:
        CaptureAcquisitionError: If sounddevice or PortAudio is unavailable
    """
    def _import():
        import sounddevice
        return sounddevice

    try:
        return import_quietly(_import)
    except (ImportError, OSError) as e:
        raise CaptureAcquisitionError(f"Audio input backend unavailable: {e}") from e


def with_suppressed_audio_warnings(func):
    """
    Decorator that silences native audio warnings during a call.
    ALSA writes straight to file descriptor 2, so the redirect happens there.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            original_stderr_fd = os.dup(2)
            null_fd = os.open(os.devnull, os.O_WRONLY)
            os.dup2(null_fd, 2)
            os.close(null_fd)
        except OSError:
            original_stderr_fd = None

        try:
            return func(*args, **kwargs)
        finally:
            if original_stderr_fd is not None:
                try:
                    os.dup2(original_stderr_fd, 2)
                    os.close(original_stderr_fd)
                except OSError:
                    pass

    return wrapper
