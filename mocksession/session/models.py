"""
Data models for a mock interview session.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class AudioPhrase:
    """A spoken text and its pre-rendered audio (opaque encoded string)."""
    text: str
    audio: str

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['AudioPhrase']:
        if not data:
            return None
        return cls(text=str(data.get("text") or ""), audio=str(data.get("audio") or ""))


@dataclass
class Question:
    """A generated question. Only `score` changes after the session is queued."""
    id: str
    question: str
    tags: Tuple[str, ...] = ()
    soft_skill: bool = False
    audio: str = ""
    score: Optional[float] = None

    @property
    def tag(self) -> str:
        """Topic used for tag-change detection."""
        return self.tags[0] if self.tags else ""

    @property
    def phrase(self) -> AudioPhrase:
        return AudioPhrase(text=self.question, audio=self.audio)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        # Training payloads carry a single "tag", interview payloads a "tags" list
        if data.get("tag"):
            tags: Tuple[str, ...] = (str(data["tag"]),)
        else:
            tags = tuple(str(t) for t in data.get("tags") or ())
        return cls(
            id=str(data.get("id") or ""),
            question=str(data.get("question") or ""),
            tags=tags,
            soft_skill=bool(data.get("softSkill", False)),
            audio=str(data.get("audio") or ""),
            score=data.get("score"),
        )


@dataclass(frozen=True)
class PhraseBank:
    """Read-only filler pools plus the welcome utterance."""
    welcome: Optional[AudioPhrase]
    outro: Optional[AudioPhrase]
    transition_phrases: Tuple[AudioPhrase, ...] = ()
    section_changer_phrases: Tuple[AudioPhrase, ...] = ()
    repeat_question_phrases: Tuple[AudioPhrase, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PhraseBank':
        def pool(key: str) -> Tuple[AudioPhrase, ...]:
            return tuple(p for p in (AudioPhrase.from_dict(d) for d in data.get(key) or ()) if p)

        return cls(
            welcome=AudioPhrase.from_dict(data.get("introPhrase")),
            outro=AudioPhrase.from_dict(data.get("outroPhrase")),
            transition_phrases=pool("transitionPhrases"),
            section_changer_phrases=pool("sectionChangerPhrases"),
            repeat_question_phrases=pool("repeatQuestionPhrases"),
        )


class SegmentKind(str, Enum):
    """Role of a segment in the playback sequence."""
    WELCOME = "welcome"
    QUESTION = "question"
    OUTRO = "outro"


@dataclass(frozen=True)
class Segment:
    """One playback unit holding one or two (text, audio) entries."""
    kind: SegmentKind
    entries: Tuple[AudioPhrase, ...]
    question: Optional[Question] = None

    def __post_init__(self):
        if not self.entries:
            raise ValueError("A segment needs at least one entry")
        if (self.kind == SegmentKind.QUESTION) != (self.question is not None):
            raise ValueError("Only question segments carry a question")

    @classmethod
    def welcome(cls, phrase: AudioPhrase) -> 'Segment':
        return cls(SegmentKind.WELCOME, (phrase,))

    @classmethod
    def outro(cls, phrase: AudioPhrase) -> 'Segment':
        return cls(SegmentKind.OUTRO, (phrase,))

    @classmethod
    def for_question(cls, question: Question, filler: Optional[AudioPhrase] = None) -> 'Segment':
        entries = (filler, question.phrase) if filler else (question.phrase,)
        return cls(SegmentKind.QUESTION, entries, question)

    @property
    def is_question(self) -> bool:
        return self.question is not None

    @property
    def filler(self) -> Optional[AudioPhrase]:
        """The filler phrase spoken before the question, if any."""
        return self.entries[0] if self.is_question and len(self.entries) == 2 else None


@dataclass
class SessionData:
    """Everything needed to start a session, as returned by the loader."""
    session_id: Optional[str]
    questions: List[Question]
    phrases: PhraseBank
    job_name: Optional[str] = None
    language: Optional[str] = None
    duration_minutes: int = 0
    mode: str = "interview"


@dataclass
class SessionResult:
    """Final outcome of a session run."""
    session_id: Optional[str]
    phase: str
    completed: bool = False
    answered_questions: int = 0
    skipped_questions: int = 0
    retries: int = 0
    tokens_spent: int = 0
    remaining_seconds: int = 0
    error_message: Optional[str] = None
