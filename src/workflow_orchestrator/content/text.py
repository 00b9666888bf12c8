"""Text heuristics shared by the content steps."""

from __future__ import annotations

import math
import re

_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"[.!?]+")

WORDS_PER_MINUTE = 200


def word_count(content: str) -> int:
    return len(_WHITESPACE.split(content.strip()))


def words(content: str) -> list[str]:
    """Whitespace-separated tokens, without trimming the content first."""

    return _WHITESPACE.split(content)


def raw_sentence_count(content: str) -> int:
    """Pieces between sentence terminators, blank trailing pieces included."""

    return len(_SENTENCE_END.split(content))


def sentences(content: str) -> list[str]:
    return [s for s in _SENTENCE_END.split(content) if s.strip()]


def reading_time(count: int) -> int:
    """Minutes to read ``count`` words, rounded up."""

    return math.ceil(count / WORDS_PER_MINUTE)
