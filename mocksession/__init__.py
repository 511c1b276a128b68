"""
mocksession: playback and response orchestration for spoken mock interviews.

Plays a generated question set through an avatar, records each spoken
answer, validates it against the backend, re-asks rejected questions and
closes the session once the outro has played.
"""

__version__ = "1.0.0"

# Main entry points
from .session.orchestrator import SessionOrchestrator
from .session.models import SessionData, SessionResult

__all__ = ["SessionOrchestrator", "SessionData", "SessionResult"]
