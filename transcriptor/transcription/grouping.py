from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .models import TranscriptionSegment, WordTimestamp

PAUSE_THRESHOLD_SECONDS = 2.0


@dataclass(frozen=True)
class DetectedWord:
    """Word-level detection as returned by providers without segment structure."""

    word: str
    start_time: float
    end_time: float
    confidence: Optional[float] = None
    speaker: Optional[str] = None

    def __post_init__(self) -> None:
        if self.start_time < 0 or self.end_time < self.start_time:
            raise ValueError(f"invalid timing for {self.word!r}: {self.start_time}-{self.end_time}")

    def to_timestamp(self) -> WordTimestamp:
        return WordTimestamp(
            word=self.word,
            start_time=self.start_time,
            end_time=self.end_time,
            confidence=self.confidence,
        )


def group_words_into_segments(
    words: Iterable[DetectedWord],
    *,
    pause_threshold: float = PAUSE_THRESHOLD_SECONDS,
) -> list[TranscriptionSegment]:
    """
    Group an ordered word stream into segments.

    A new segment starts whenever the speaker changes or the silence between two
    consecutive words is longer than ``pause_threshold`` seconds. Segment confidence
    is the mean of the word confidences where a missing confidence counts as 0.
    """
    segments: list[TranscriptionSegment] = []
    current: list[DetectedWord] = []
    previous: Optional[DetectedWord] = None

    for word in words:
        if previous is not None:
            gap = word.start_time - previous.end_time
            if word.speaker != current[0].speaker or gap > pause_threshold:
                segments.append(_finalize(current, index=len(segments)))
                current = []
        current.append(word)
        previous = word

    if current:
        segments.append(_finalize(current, index=len(segments)))
    return segments


def _finalize(words: Sequence[DetectedWord], *, index: int) -> TranscriptionSegment:
    confidence = sum(word.confidence or 0.0 for word in words) / len(words)
    return TranscriptionSegment(
        id=f"segment-{index}",
        text=" ".join(word.word for word in words),
        start_time=words[0].start_time,
        end_time=words[-1].end_time,
        confidence=confidence,
        speaker=words[0].speaker,
        words=[word.to_timestamp() for word in words],
    )
