"""
End-to-end tests for the session orchestrator with mocked collaborators.
"""
import asyncio
import random

import pytest

from mocksession.config import TRAINING_MODE
from mocksession.errors import MissingSessionDataError
from mocksession.session.capture import CaptureController
from mocksession.session.events import EventType, SessionEventBus
from mocksession.session.models import PhraseBank, SegmentKind
from mocksession.session.orchestrator import SessionOrchestrator
from mocksession.session.schemas import Completed, Failed
from mocksession.session.testing import (
    MockBackendClient, MockMicrophone, MockRenderer, EventRecorder,
    accepted, create_mock_session_setup, create_test_session_data,
    no_sleep, rejected, transport_failure
)


def run(orchestrator):
    return asyncio.run(orchestrator.run())


def played_question_ids(renderer):
    return [segment.question.id for segment in renderer.played if segment.is_question]


class TestSuccessfulSession:

    def test_every_answer_accepted(self):
        setup = create_mock_session_setup()
        orchestrator = setup["orchestrator"]
        queue = orchestrator.queue

        result = run(orchestrator)

        assert result.completed
        assert isinstance(orchestrator.state, Completed)
        assert result.answered_questions == 3
        assert result.retries == 0
        # welcome -> q1 -> q2 -> q3 -> outro
        assert queue.advance_count == 3 + 1
        assert queue.insert_count == 0
        assert len(setup["renderer"].played) == 5
        assert played_question_ids(setup["renderer"]) == ["q1", "q2", "q3"]

    def test_segments_play_in_order(self):
        setup = create_mock_session_setup()
        run(setup["orchestrator"])

        kinds = [segment.kind for segment in setup["renderer"].played]
        assert kinds[0] == SegmentKind.WELCOME
        assert kinds[-1] == SegmentKind.OUTRO
        assert all(kind == SegmentKind.QUESTION for kind in kinds[1:-1])

    def test_validation_requests_carry_session_context(self):
        setup = create_mock_session_setup()
        run(setup["orchestrator"])

        calls = setup["backend"].validate_calls
        assert [c.question.id for c in calls] == ["q1", "q2", "q3"]
        payload = calls[0].to_payload()
        assert payload["sessionId"] == "session-123"
        assert payload["jobName"] == "Backend Engineer"
        assert payload["language"] == "en-US"
        assert payload["tag"] == "python"
        assert payload["answer"]

    def test_session_is_finalized_once(self):
        setup = create_mock_session_setup()
        run(setup["orchestrator"])

        assert setup["backend"].finalize_calls == ["session-123"]

    def test_queue_is_cleared_after_completion(self):
        setup = create_mock_session_setup()
        run(setup["orchestrator"])

        assert len(setup["orchestrator"].queue) == 0

    def test_tokens_deducted_per_validation(self):
        setup = create_mock_session_setup()
        result = run(setup["orchestrator"])

        assert result.tokens_spent == 15
        assert setup["account"].balance == 85

    def test_microphone_is_released_after_each_answer(self):
        setup = create_mock_session_setup()
        run(setup["orchestrator"])

        microphone = setup["microphone"]
        assert microphone.open_count == 3
        assert microphone.close_count == 3
        assert not microphone.is_open
        assert not setup["orchestrator"].is_recording


class TestRetries:

    def test_rejected_question_plays_exactly_twice(self):
        # Second question fails once
        setup = create_mock_session_setup(validate_responses=[accepted(), rejected()])
        orchestrator = setup["orchestrator"]

        result = run(orchestrator)

        assert result.completed
        assert played_question_ids(setup["renderer"]) == ["q1", "q2", "q2", "q3"]
        assert orchestrator.queue.insert_count == 1
        assert len(setup["renderer"].played) == 5 + 1
        assert result.retries == 1
        assert result.answered_questions == 3

    def test_retry_segment_starts_with_repeat_phrase(self):
        setup = create_mock_session_setup(validate_responses=[rejected()])
        run(setup["orchestrator"])

        retry = setup["renderer"].played[2]
        assert retry.question.id == "q1"
        assert retry.filler in setup["data"].phrases.repeat_question_phrases
        assert retry.entries[1] == retry.question.phrase

    def test_empty_answer_is_retried_without_backend_call(self):
        microphone = MockMicrophone(chunks_per_open=[[]])
        setup = create_mock_session_setup(microphone=microphone)
        orchestrator = setup["orchestrator"]

        result = run(orchestrator)

        # q1 replays immediately; the cursor never moved past it
        assert played_question_ids(setup["renderer"])[:2] == ["q1", "q1"]
        assert [c.question.id for c in setup["backend"].validate_calls] == ["q1", "q2", "q3"]
        assert result.retries == 1
        assert result.tokens_spent == 15

        submitted = setup["recorder"].of_type(EventType.ANSWER_SUBMITTED)
        assert submitted[0].data["success"] is False
        assert submitted[0].data["reason"] == "empty answer"

    def test_transport_failure_during_validation_is_retried(self):
        setup = create_mock_session_setup(validate_responses=[transport_failure()])
        result = run(setup["orchestrator"])

        assert result.completed
        assert played_question_ids(setup["renderer"]) == ["q1", "q1", "q2", "q3"]
        # Only the three calls the backend answered are charged
        assert result.tokens_spent == 15

    def test_repeated_rejections_keep_reasking(self):
        setup = create_mock_session_setup(validate_responses=[rejected(), rejected(), rejected()])
        result = run(setup["orchestrator"])

        assert played_question_ids(setup["renderer"]) == ["q1", "q1", "q1", "q1", "q2", "q3"]
        assert result.retries == 3

    def test_retry_cap_moves_on(self):
        setup = create_mock_session_setup(
            validate_responses=[rejected(), rejected()],
            max_retries_per_question=1,
        )
        result = run(setup["orchestrator"])

        assert played_question_ids(setup["renderer"]) == ["q1", "q1", "q2", "q3"]
        assert result.retries == 1
        assert result.skipped_questions == 1
        assert result.answered_questions == 2
        assert result.completed


class TestTrainingMode:

    def test_training_requires_success_answer_type(self):
        setup = create_mock_session_setup(
            mode=TRAINING_MODE,
            validate_responses=[accepted(answer_type="PARTIAL")],
        )
        result = run(setup["orchestrator"])

        assert played_question_ids(setup["renderer"]) == ["q1", "q1", "q2", "q3"]
        assert result.retries == 1

    def test_interview_ignores_answer_type(self):
        setup = create_mock_session_setup(validate_responses=[accepted(answer_type="PARTIAL")])
        result = run(setup["orchestrator"])

        assert played_question_ids(setup["renderer"]) == ["q1", "q2", "q3"]
        assert result.retries == 0

    def test_custom_retry_phrase_source(self):
        data = create_test_session_data()
        custom = data.phrases.transition_phrases[0]
        setup = create_mock_session_setup(
            validate_responses=[rejected()],
            retry_phrase_source=lambda: custom,
        )
        run(setup["orchestrator"])

        assert setup["renderer"].played[2].filler == custom


class TestFailures:

    def test_finalize_failure_is_fatal_and_leaves_queue(self):
        setup = create_mock_session_setup(finalize_success=False)
        orchestrator = setup["orchestrator"]

        result = run(orchestrator)

        assert not result.completed
        assert isinstance(orchestrator.state, Failed)
        assert orchestrator.state.index == 4
        assert "Mock finalize failure" in result.error_message
        assert orchestrator.error_message == result.error_message
        # Queue and cursor untouched, nothing played after the outro
        assert len(orchestrator.queue) == 5
        assert orchestrator.cursor == 4
        assert len(setup["renderer"].played) == 5
        assert setup["recorder"].of_type(EventType.SESSION_FAILED)

    def test_finalize_without_session_id_fails(self):
        data = create_test_session_data(session_id=None)
        backend = MockBackendClient(questions=data.questions, phrases=data.phrases, session_id=None)
        event_bus = SessionEventBus()
        orchestrator = SessionOrchestrator(
            data, backend, MockRenderer(), CaptureController(MockMicrophone()),
            event_bus=event_bus, welcome_delay=0, sleep=no_sleep, per_turn_seconds=0.01,
        )

        result = run(orchestrator)

        assert not result.completed
        assert "No session ID" in result.error_message
        assert backend.finalize_calls == []

    def test_failed_session_cannot_run_again(self):
        setup = create_mock_session_setup(finalize_success=False)
        orchestrator = setup["orchestrator"]
        run(orchestrator)

        with pytest.raises(RuntimeError):
            run(orchestrator)

    def test_microphone_failure_skips_questions(self):
        setup = create_mock_session_setup(microphone=MockMicrophone(fail_to_open=True))
        orchestrator = setup["orchestrator"]

        result = run(orchestrator)

        assert result.completed
        assert result.skipped_questions == 3
        assert result.answered_questions == 0
        assert result.retries == 0
        assert setup["backend"].validate_calls == []
        assert orchestrator.metrics.captures_skipped == 3

    def test_missing_session_data_never_starts(self):
        data = create_test_session_data()
        data.phrases = PhraseBank(welcome=None, outro=data.phrases.outro)
        renderer = MockRenderer()

        with pytest.raises(MissingSessionDataError):
            SessionOrchestrator(data, MockBackendClient(), renderer, CaptureController(MockMicrophone()))
        assert renderer.played == []

    def test_renderer_error_propagates_and_releases_microphone(self):
        class BrokenRenderer(MockRenderer):
            async def play(self, segment):
                await super().play(segment)
                if segment.kind == SegmentKind.OUTRO:
                    raise OSError("avatar crashed")

        data = create_test_session_data()
        event_bus = SessionEventBus()
        recorder = EventRecorder(event_bus)
        orchestrator = SessionOrchestrator(
            data, MockBackendClient(), BrokenRenderer(), CaptureController(MockMicrophone()),
            event_bus=event_bus, welcome_delay=0, sleep=no_sleep, per_turn_seconds=0.01,
        )

        with pytest.raises(OSError):
            run(orchestrator)
        assert not orchestrator.is_recording
        assert recorder.of_type(EventType.ERROR_OCCURRED)


class TestTimingAndOutputs:

    def test_per_turn_limit_stops_recording(self):
        data = create_test_session_data()
        backend = MockBackendClient(questions=data.questions, phrases=data.phrases)
        microphone = MockMicrophone()
        orchestrator = SessionOrchestrator(
            data, backend, MockRenderer(), CaptureController(microphone),
            rng=random.Random(0), welcome_delay=0, sleep=no_sleep, per_turn_seconds=0.01,
        )

        result = run(orchestrator)

        assert result.completed
        assert len(backend.validate_calls) == 3
        assert microphone.close_count == 3

    def test_welcome_delay_uses_injected_sleep(self):
        slept = []

        async def fake_sleep(seconds):
            slept.append(seconds)

        setup = create_mock_session_setup(welcome_delay=3.0, sleep=fake_sleep)
        run(setup["orchestrator"])

        assert slept[0] == 3.0

    def test_states_are_reported_in_order(self):
        setup = create_mock_session_setup(tags=("python",))
        run(setup["orchestrator"])

        phases = [e.data["phase"] for e in setup["recorder"].of_type(EventType.STATE_CHANGED)]
        assert phases == [
            "playing_segment",   # welcome
            "playing_segment",   # q1
            "awaiting_capture",
            "validating",
            "playing_segment",   # outro
            "completed",
        ]

    def test_metrics_follow_events(self):
        setup = create_mock_session_setup(validate_responses=[rejected()])
        orchestrator = setup["orchestrator"]
        run(orchestrator)

        metrics = orchestrator.metrics.get_metrics()
        assert metrics["segments_played"] == 6
        assert metrics["captures_started"] == 4
        assert metrics["answers_accepted"] == 3
        assert metrics["answers_rejected"] == 1
        assert metrics["retries_scheduled"] == 1
        assert metrics["tokens_deducted"] == 20
        assert metrics["errors_occurred"] == 0

    def test_remaining_time_starts_from_duration(self):
        data = create_test_session_data(duration_minutes=2)
        orchestrator = SessionOrchestrator(
            data, MockBackendClient(), MockRenderer(), CaptureController(MockMicrophone()),
        )

        assert orchestrator.remaining_seconds == 120
        assert not orchestrator.is_validating
        assert not orchestrator.is_recording
        assert orchestrator.stop_recording() is False
