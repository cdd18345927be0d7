"""
Storage-safe copy of a rewind summary.

``sanitize_summary`` is the only path from an in-memory summary to anything
durable. Free-text evidence (titles, excerpts, quoted phrases) is cleared or
redacted; counts, categorical keys and month/week labels pass through.
"""

import copy
import logging
from dataclasses import replace
from typing import Optional

from chatrewind.insights.wrapped import LIFE_THEMES
from chatrewind.models.rewind import Highlight, RewindSummary
from chatrewind.utils.anonymize import redact

logger = logging.getLogger(__name__)

# Life highlights are titled after the user's own conversation
LIFE_TITLES = {kind: title for kind, title, *_ in LIFE_THEMES}

TRAVEL_TITLE = LIFE_TITLES["travel"]
TRAVEL_LINE = "You planned a trip like it mattered."


def _redact_optional(value: Optional[str]) -> Optional[str]:
    return redact(value) if value else value


def _clear_highlight(highlight: Highlight) -> None:
    highlight.excerpt = None
    highlight.title = redact(highlight.title)


def _clear_life_highlight(highlight: Highlight) -> None:
    highlight.excerpt = None
    highlight.title = LIFE_TITLES.get(highlight.type) or redact(highlight.title)
    if highlight.type == "travel":
        # Trip lines may name a destination
        highlight.line = TRAVEL_LINE


def sanitize_summary(summary: RewindSummary) -> RewindSummary:
    """
    Return a deep copy of ``summary`` with free-text evidence removed.

    Applying this to an already-sanitized summary returns an equal summary.

    Args:
        summary: Summary straight from the pipeline

    Returns:
        New RewindSummary safe to persist
    """
    safe = copy.deepcopy(summary)

    for phrase in safe.frequent_phrases:
        phrase.phrase = redact(phrase.phrase)
    for nickname in safe.nicknames:
        nickname.phrase = redact(nickname.phrase)
    safe.top_word = _redact_optional(safe.top_word)
    for topic in safe.top_topics:
        # Fallback topics are raw vocabulary words
        topic.key = redact(topic.key)
        topic.label = redact(topic.label)

    safe.conversations = [
        replace(
            conversation,
            title=None,
            excerpt=None,
            description=redact(conversation.description),
        )
        for conversation in safe.conversations
    ]

    wrapped = safe.wrapped
    if wrapped is not None:
        if wrapped.comeback is not None:
            wrapped.comeback.excerpt = None
            wrapped.comeback.description = redact(wrapped.comeback.description)
        for highlight in wrapped.life_highlights:
            _clear_life_highlight(highlight)
        for highlight in (*wrapped.rabbit_holes, *wrapped.best_moments):
            _clear_highlight(highlight)

    logger.debug(f"Sanitized summary with {len(safe.conversations)} conversations")
    return safe
