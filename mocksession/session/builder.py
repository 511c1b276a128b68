"""
Builds the initial playback queue from questions and phrase banks.
"""
import random
import logging
from typing import List, Optional, Sequence

from .models import AudioPhrase, PhraseBank, Question, Segment, SessionData
from .queue import SegmentQueue
from ..errors import MissingSessionDataError

logger = logging.getLogger("session_builder")


def check_session_inputs(questions: Optional[Sequence[Question]], phrases: Optional[PhraseBank]) -> None:
    """
    Raise MissingSessionDataError naming every absent or empty input.
    """
    missing = []
    if not questions:
        missing.append("questions")
    if phrases is None:
        missing.append("audio phrases")
    else:
        if not phrases.welcome:
            missing.append("welcome phrase")
        if not phrases.outro:
            missing.append("outro phrase")
        if not phrases.transition_phrases:
            missing.append("transition phrases")
        if not phrases.section_changer_phrases:
            missing.append("section changer phrases")
        if not phrases.repeat_question_phrases:
            missing.append("repeat question phrases")
    if missing:
        raise MissingSessionDataError(missing)


def build_segments(questions: Sequence[Question],
                   phrases: PhraseBank,
                   rng: Optional[random.Random] = None) -> List[Segment]:
    """
    Lay out welcome, questions and outro.

    The first question plays alone. Every later question is prefixed with a
    filler drawn uniformly (with replacement) from the section changer pool
    when its tag differs from the previous question's, otherwise from the
    transition pool.
    """
    check_session_inputs(questions, phrases)
    rng = rng or random.Random()

    segments = [Segment.welcome(phrases.welcome), Segment.for_question(questions[0])]
    for previous, question in zip(questions, questions[1:]):
        is_tag_change = question.tag != previous.tag
        pool = phrases.section_changer_phrases if is_tag_change else phrases.transition_phrases
        filler: AudioPhrase = rng.choice(pool)
        segments.append(Segment.for_question(question, filler))
    segments.append(Segment.outro(phrases.outro))

    logger.info(f"Built {len(segments)} segments for {len(questions)} questions")
    return segments


def build_segment_queue(data: SessionData, rng: Optional[random.Random] = None) -> SegmentQueue:
    """Build the queue for a loaded session."""
    if data is None:
        raise MissingSessionDataError("session data")
    return SegmentQueue(build_segments(data.questions, data.phrases, rng))
