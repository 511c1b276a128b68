"""
Ordered playback queue with its cursor.
"""
import logging
from typing import Iterator, List, Optional

from .models import Segment, SegmentKind

logger = logging.getLogger("segment_queue")


class SegmentQueue:
    """
    Mutable sequence of segments plus the index of the one in play.

    The queue only grows, by splicing a segment in right after the cursor;
    the cursor only moves forward, except that a splice repoints it at the
    new segment.
    """

    def __init__(self, segments: List[Segment]):
        if not segments:
            raise ValueError("A segment queue needs at least one segment")
        self._segments = list(segments)
        self._cursor = 0
        self.advance_count = 0
        self.insert_count = 0

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(list(self._segments))

    def __getitem__(self, index: int) -> Segment:
        return self._segments[index]

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Segment:
        return self._segments[self._cursor]

    @property
    def first_question_index(self) -> Optional[int]:
        for i, segment in enumerate(self._segments):
            if segment.kind == SegmentKind.QUESTION:
                return i
        return None

    def is_last(self, index: Optional[int] = None) -> bool:
        index = self._cursor if index is None else index
        return index == len(self._segments) - 1

    def advance(self) -> int:
        """Move the cursor to the next segment and return the new index."""
        if self.is_last():
            raise IndexError("Cursor is already on the last segment")
        self._cursor += 1
        self.advance_count += 1
        return self._cursor

    def insert_after_cursor(self, segment: Segment) -> int:
        """Splice a segment in right after the cursor and point the cursor at it."""
        position = self._cursor + 1
        self._segments.insert(position, segment)
        self._cursor = position
        self.insert_count += 1
        logger.debug(f"Inserted {segment.kind.value} segment at {position}, queue length {len(self._segments)}")
        return position

    def clear(self) -> None:
        self._segments.clear()
        self._cursor = 0
