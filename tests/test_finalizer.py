"""
Tests for session finalization and loading.
"""
import asyncio
from unittest.mock import MagicMock

import pytest

from mocksession.errors import FinalizeError, SetupError, TransportError
from mocksession.session.finalizer import Finalizer
from mocksession.session.schemas import FinalizeResponse, SessionCriteria
from mocksession.session.services import SessionLoader, TokenAccount
from mocksession.session.testing import MockBackendClient


def test_finalize_success():
    backend = MockBackendClient()
    finalizer = Finalizer(backend, "s1")

    response = asyncio.run(finalizer.finalize())

    assert response.success
    assert backend.finalize_calls == ["s1"]


def test_finalize_reported_failure():
    finalizer = Finalizer(MockBackendClient(finalize_success=False), "s1")

    with pytest.raises(FinalizeError, match="Mock finalize failure"):
        asyncio.run(finalizer.finalize())


def test_finalize_transport_failure_is_wrapped():
    backend = MagicMock()
    backend.finalize_session.side_effect = TransportError("Backend error 502", status_code=502)

    with pytest.raises(FinalizeError) as excinfo:
        asyncio.run(Finalizer(backend, "s1").finalize())
    assert isinstance(excinfo.value.__cause__, TransportError)


def test_finalize_without_session_id():
    backend = MagicMock()

    with pytest.raises(FinalizeError, match="No session ID"):
        asyncio.run(Finalizer(backend, None).finalize())
    backend.finalize_session.assert_not_called()


def test_finalize_is_not_retried():
    backend = MagicMock()
    backend.finalize_session.return_value = FinalizeResponse(success=True)
    finalizer = Finalizer(backend, "s1")

    asyncio.run(finalizer.finalize())
    with pytest.raises(FinalizeError):
        asyncio.run(finalizer.finalize())
    assert backend.finalize_session.call_count == 1


def criteria():
    return SessionCriteria(job_name="Backend Engineer", duration=15, tags=["python"])


def test_loader_fetches_questions_and_phrases():
    backend = MockBackendClient()
    account = TokenAccount(balance=50)
    loader = SessionLoader(backend, account, generation_cost=10)

    data = asyncio.run(loader.load(criteria(), "en-US", "voice-1", duration_minutes=15))

    assert data.session_id == "session-123"
    assert len(data.questions) == 3
    assert data.phrases is backend.phrases
    assert data.job_name == "Backend Engineer"
    assert data.duration_minutes == 15
    assert backend.phrase_calls == [("en-US", "voice-1")]
    assert account.balance == 40


def test_loader_wraps_transport_errors():
    backend = MagicMock()
    backend.generate_session.side_effect = TransportError("Backend error 500", status_code=500)
    backend.get_audio_phrases.return_value = MockBackendClient().phrases
    account = TokenAccount(balance=50)

    with pytest.raises(SetupError):
        asyncio.run(SessionLoader(backend, account, 10).load(criteria(), "en-US", "voice-1"))
    assert account.balance == 50


def test_loader_requires_language_and_voice():
    backend = MagicMock()

    with pytest.raises(SetupError):
        asyncio.run(SessionLoader(backend).load(criteria(), "en-US", ""))
    backend.generate_session.assert_not_called()
