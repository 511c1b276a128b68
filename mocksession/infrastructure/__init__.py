"""Infrastructure components for the mock session system.

This module contains the technical edges of a session: the backend REST
client, answer encoding, microphone capture and avatar playback.
Submodules are loaded on first access so that importing the session core
never pulls in audio hardware libraries.
"""

_LAZY_EXPORTS = {
    "BackendClient": ".api",
    "encode_answer": ".audio",
    "SoundDeviceMicrophone": ".audio",
    "ConsoleAvatarRenderer": ".audio",
}


def __getattr__(name):
    if name in _LAZY_EXPORTS:
        import importlib
        module = importlib.import_module(_LAZY_EXPORTS[name], __name__)
        return getattr(module, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = list(_LAZY_EXPORTS)
