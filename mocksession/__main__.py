#!/usr/bin/env python3
"""
Main entry point for the mock session runner.
Allows running the package with: python -m mocksession
"""
import sys
import asyncio
import threading
from typing import Optional

from .config import get_config, Config, INTERVIEW_MODE, TRAINING_MODE
from .errors import SetupError
from .infrastructure.api import BackendClient
from .infrastructure.audio.processing import SoundDeviceMicrophone
from .infrastructure.audio.speech import ConsoleAvatarRenderer
from .session import (
    CaptureController, SessionCriteria, SessionLoader, SessionOrchestrator,
    SessionResult, TokenAccount, EventType
)
from .utils import setup_logging


def parse_args(config: Config, argv) -> bool:
    """
    Apply command line flags on top of the loaded configuration.

    Returns:
        Whether phrase audio should be played aloud
    """
    play_audio = config.play_audio
    for arg in argv:
        if arg == "--training":
            config.mode = TRAINING_MODE
        elif arg == "--interview":
            config.mode = INTERVIEW_MODE
        elif arg in ["--text", "--no-audio"]:
            play_audio = False
        elif arg.startswith("--job="):
            config.job_name = arg.split("=", 1)[1]
        elif arg.startswith("--tags="):
            config.tags = [t.strip() for t in arg.split("=", 1)[1].split(",") if t.strip()]
        elif arg.startswith("--questions="):
            try:
                config.num_questions = max(1, int(arg.split("=", 1)[1]))
            except ValueError:
                print("❌ Invalid question count. Use --questions=5")
                sys.exit(1)
        elif arg.startswith("--duration="):
            try:
                config.duration_minutes = max(1, int(arg.split("=", 1)[1]))
            except ValueError:
                print("❌ Invalid duration. Use --duration=15 (minutes)")
                sys.exit(1)
    return play_audio


def build_criteria(config: Config) -> SessionCriteria:
    # Trainings are sized by question count, interviews by minutes
    duration = config.num_questions if config.is_training else config.duration_minutes
    return SessionCriteria(
        job_name=config.job_name,
        duration=duration,
        soft_skills_percentage=config.soft_skills_percentage,
        tags=config.tags,
        difficulty=config.difficulty,
        language=config.language_code,
        voice_id=config.voice_id,
    )


def listen_for_enter(loop: asyncio.AbstractEventLoop, orchestrator: SessionOrchestrator) -> threading.Thread:
    """Stop the current recording whenever the user presses Enter."""
    def _listen():
        for _ in sys.stdin:
            try:
                loop.call_soon_threadsafe(orchestrator.stop_recording)
            except RuntimeError:
                # Loop already closed
                return

    thread = threading.Thread(target=_listen, name="enter-listener", daemon=True)
    thread.start()
    return thread


def attach_console_output(orchestrator: SessionOrchestrator) -> None:
    bus = orchestrator.event_bus

    bus.subscribe(EventType.CAPTURE_STARTED,
                  lambda e: print("🎙️  Recording... press Enter when you have finished answering"))
    bus.subscribe(EventType.CAPTURE_SKIPPED,
                  lambda e: print("⚠️  Microphone unavailable, skipping this question"))

    def on_answer(event):
        if event.data["success"]:
            print("✅ Answer received")
        else:
            print("🔁 Let's try that one again")

    bus.subscribe(EventType.ANSWER_SUBMITTED, on_answer)
    bus.subscribe(EventType.STATE_CHANGED,
                  lambda e: print("🤔 Checking your answer...") if e.data["phase"] == "validating" else None)


async def run_session(config: Config, play_audio: bool) -> Optional[SessionResult]:
    backend = BackendClient(config.api_url, config.auth_token, mode=config.mode)
    account = TokenAccount()
    try:
        loader = SessionLoader(backend, account, config.generation_token_cost)
        print("⏳ Preparing your session...")
        data = await loader.load(
            build_criteria(config),
            config.language_code,
            config.voice_id,
            duration_minutes=config.duration_minutes,
            mode=config.mode,
        )

        orchestrator = SessionOrchestrator(
            data,
            backend,
            ConsoleAvatarRenderer(play_audio=play_audio),
            CaptureController(SoundDeviceMicrophone()),
            account=account,
            welcome_delay=config.welcome_delay_seconds,
            per_turn_seconds=config.per_turn_seconds,
            max_retries_per_question=config.max_retries_per_question,
            validation_token_cost=config.validation_token_cost,
        )
    except SetupError as e:
        print(f"❌ {e}")
        backend.close()
        return None

    attach_console_output(orchestrator)
    listen_for_enter(asyncio.get_running_loop(), orchestrator)

    print(f"\n🎙️  Starting {config.mode} - {len(data.questions)} questions, {config.duration_minutes} minutes")
    print(f"📝 Detailed logs: {config.log_file}")
    print("=" * 50)

    try:
        result = await orchestrator.run()
    finally:
        backend.close()

    print("\n" + "=" * 50)
    if result.completed:
        print("🎯 SESSION COMPLETE")
    else:
        print("🚫 SESSION FAILED")
        print(f"🛑 Reason: {result.error_message}")
    print("=" * 50)
    print(f"✅ Answered: {result.answered_questions}")
    print(f"🔁 Retries: {result.retries}")
    if result.skipped_questions:
        print(f"⏭️  Skipped: {result.skipped_questions}")
    print(f"🪙 Tokens spent: {result.tokens_spent}")
    print(f"⏱️  Time left: {result.remaining_seconds // 60}:{result.remaining_seconds % 60:02d}")
    print(f"📈 Session metrics: {orchestrator.metrics.get_metrics()}")
    return result


def main():
    """Command-line interface for the session orchestrator."""

    # Load configuration from environment
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    play_audio = parse_args(config, sys.argv[1:])

    if play_audio:
        print("🔊 Audio Mode: the interviewer's phrases are played aloud")
        print("   (Use --text to print them only)")
    else:
        print("📝 Text Mode: the interviewer's phrases are displayed as text only")
    print(f"🎯 Mode: {config.mode.title()} for '{config.job_name}'")

    setup_logging(config.log_file, config.log_level)

    try:
        result = asyncio.run(run_session(config, play_audio))
    except KeyboardInterrupt:
        print("\n👋 Session interrupted")
        sys.exit(130)

    if result is None or not result.completed:
        sys.exit(1)


if __name__ == "__main__":
    main()
