"""
Mock Session Configuration System
=================================

This file contains ALL configuration for the mock interview session runner.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional


# =============================================================================
# USER SETTINGS - Edit these to customize a session
# =============================================================================

# Backend
API_URL = "http://localhost:8081"
AUTH_TOKEN = None  # Optional: bearer token for the backend

# Session settings
MODE = "interview"  # Options: interview, training
JOB_NAME = "Software Engineer"
NUM_QUESTIONS = 5
SOFT_SKILLS_PERCENTAGE = 20
DIFFICULTY = "medium"
TAGS: List[str] = []
SESSION_DURATION_MINUTES = 15

# Voice settings
LANGUAGE_CODE = "en-US"
VOICE_ID = "default"
PLAY_AUDIO = True

# Answer settings
PER_TURN_SECONDS = 0.0  # 0 disables the automatic stop; answers end on Enter
MAX_RETRIES_PER_QUESTION = 0  # 0 means unlimited

# Logging
LOG_FILE = "./_sessions/session.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Modes
INTERVIEW_MODE = "interview"
TRAINING_MODE = "training"
VALID_MODES = (INTERVIEW_MODE, TRAINING_MODE)

# Playback
WELCOME_DELAY_SECONDS = 3.0
TIMER_TICK_SECONDS = 1.0
SPEECH_RATE_WPM = 180

# Token costs
VALIDATION_TOKEN_COST = 5
GENERATION_TOKEN_COST = 10

# Training validation marker
SUCCESS_ANSWER_TYPE = "SUCCESS"

# Audio capture
SAMPLE_RATE_CAPTURE = 48000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
FRAME_MS = 30
TARGET_RMS = 0.06

# HTTP
API_TIMEOUT = 60

# Audio players tried in order by the console renderer
AUDIO_PLAYER_COMMANDS = (
    ("afplay",),
    ("ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"),
    ("mpg123", "-q"),
    ("aplay", "-q"),
)


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    api_url: str = API_URL
    auth_token: Optional[str] = AUTH_TOKEN
    mode: str = MODE
    job_name: str = JOB_NAME
    num_questions: int = NUM_QUESTIONS
    soft_skills_percentage: int = SOFT_SKILLS_PERCENTAGE
    difficulty: str = DIFFICULTY
    tags: List[str] = field(default_factory=lambda: list(TAGS))
    duration_minutes: int = SESSION_DURATION_MINUTES
    language_code: str = LANGUAGE_CODE
    voice_id: str = VOICE_ID
    play_audio: bool = PLAY_AUDIO
    per_turn_seconds: float = PER_TURN_SECONDS
    max_retries_per_question: int = MAX_RETRIES_PER_QUESTION
    welcome_delay_seconds: float = WELCOME_DELAY_SECONDS
    validation_token_cost: int = VALIDATION_TOKEN_COST
    generation_token_cost: int = GENERATION_TOKEN_COST
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    @property
    def is_training(self) -> bool:
        return self.mode == TRAINING_MODE


def get_config() -> Config:
    """Load configuration, letting environment variables override the defaults."""
    mode = (os.getenv("MOCKSESSION_MODE") or MODE).strip().lower()
    if mode not in VALID_MODES:
        raise ValueError(f"MOCKSESSION_MODE must be one of {', '.join(VALID_MODES)} (got '{mode}')")

    tags_env = os.getenv("MOCKSESSION_TAGS")
    tags = [t.strip() for t in tags_env.split(",") if t.strip()] if tags_env else list(TAGS)

    return Config(
        api_url=os.getenv("MOCKSESSION_API_URL") or API_URL,
        auth_token=os.getenv("MOCKSESSION_AUTH_TOKEN") or AUTH_TOKEN,
        mode=mode,
        job_name=os.getenv("MOCKSESSION_JOB_NAME") or JOB_NAME,
        num_questions=int(os.getenv("MOCKSESSION_NUM_QUESTIONS", NUM_QUESTIONS)),
        tags=tags,
        duration_minutes=int(os.getenv("MOCKSESSION_DURATION_MINUTES", SESSION_DURATION_MINUTES)),
        language_code=os.getenv("MOCKSESSION_LANGUAGE") or LANGUAGE_CODE,
        voice_id=os.getenv("MOCKSESSION_VOICE_ID") or VOICE_ID,
        play_audio=os.getenv("MOCKSESSION_PLAY_AUDIO", str(PLAY_AUDIO)).lower() in ("1", "true", "yes"),
        per_turn_seconds=float(os.getenv("MOCKSESSION_PER_TURN_SECONDS", PER_TURN_SECONDS)),
        max_retries_per_question=int(os.getenv("MOCKSESSION_MAX_RETRIES", MAX_RETRIES_PER_QUESTION)),
        log_file=os.getenv("MOCKSESSION_LOG_FILE") or LOG_FILE,
        log_level=os.getenv("MOCKSESSION_LOG_LEVEL") or LOG_LEVEL,
    )
