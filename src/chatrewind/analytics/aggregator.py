"""
Rewind aggregation.

Folds classified conversations into one running accumulator and computes the
derived year-in-review statistics on demand. One aggregator instance belongs
to one upload; nothing here is shared between uploads.
"""

from __future__ import annotations

import calendar
import logging
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from chatrewind.config import settings
from chatrewind.models.rewind import (
    ConversationSummary,
    PhraseInsight,
    RewindBehavior,
    RewindSummary,
    TopicInsight,
    WeekInsight,
)
from chatrewind.tagging.classifier import ClassifiedConversation
from chatrewind.tagging.keywords import LATE_NIGHT_HOURS, TOPIC_BUCKETS

logger = logging.getLogger(__name__)

# Minimum samples on each side of the window midpoint before a trend is reported
TREND_MIN_SAMPLES = 5
TREND_MIN_CHANGE_PERCENT = 10


def longest_streak(days: Iterable[date]) -> int:
    """
    Longest run of consecutive calendar days.

    Args:
        days: Active days, in any order, duplicates allowed

    Returns:
        Length of the longest run (0 for no days)
    """
    ordered = sorted(set(days))
    if not ordered:
        return 0
    best = current = 1
    for previous, day in zip(ordered, ordered[1:]):
        if day - previous == timedelta(days=1):
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


def _top_week(counts: Counter) -> Optional[WeekInsight]:
    if not counts:
        return None
    # Highest count, earliest week on ties
    start, count = min(counts.items(), key=lambda item: (-item[1], item[0]))
    if count <= 0:
        return None
    return WeekInsight(week_start=start.isoformat(), count=count)


class RewindAggregator:
    """Stateful accumulator for one upload.

    Call ``add()`` once per classified conversation, then ``summary()`` to
    read the derived statistics. ``summary()`` may be called repeatedly.
    """

    def __init__(
        self,
        now: Optional[datetime] = None,
        days_back: Optional[int] = None,
        top_n: Optional[int] = None,
        phrase_min_count: Optional[int] = None,
        nickname_min_count: Optional[int] = None,
    ):
        self.now = now or datetime.now(timezone.utc)
        if self.now.tzinfo is None:
            self.now = self.now.replace(tzinfo=timezone.utc)
        self.days_back = days_back if days_back is not None else settings.rewind_days_back
        self.top_n = top_n if top_n is not None else settings.rewind_top_n
        self.phrase_min_count = (
            phrase_min_count if phrase_min_count is not None else settings.rewind_phrase_min_count
        )
        self.nickname_min_count = (
            nickname_min_count
            if nickname_min_count is not None
            else settings.rewind_nickname_min_count
        )
        since = self.now - timedelta(days=self.days_back)
        self.midpoint = since + (self.now - since) / 2

        self.conversations: list[ConversationSummary] = []
        self.skipped_conversations = 0

        self.total_user_messages = 0
        self.total_prompt_chars = 0
        self.longest_prompt_chars = 0

        self.word_counts: Counter = Counter()
        self.habit_counts: Counter = Counter()
        self.nickname_counts: Counter = Counter()
        self.topic_counts: Counter = Counter()

        self.active_days: set[date] = set()
        self.day_counts: Counter = Counter()
        self.message_month_counts: Counter = Counter()
        self.chat_month_counts: Counter = Counter()
        self.hour_counts: Counter = Counter()
        self.week_message_counts: Counter = Counter()
        self.week_friction_counts: Counter = Counter()
        self.timestamp_count = 0
        self.late_night_count = 0

        self.early_prompt_chars = 0
        self.early_prompt_count = 0
        self.late_prompt_chars = 0
        self.late_prompt_count = 0

        self.behavior = RewindBehavior()
        self._quick_chat_prompts = 0

    @property
    def total_conversations(self) -> int:
        return len(self.conversations)

    def skip(self) -> None:
        """Record a conversation that could not be classified."""
        self.skipped_conversations += 1

    def add(self, classified: ClassifiedConversation) -> None:
        """
        Fold one classified conversation into the running totals.

        Conversations without in-scope messages are ignored entirely.
        """
        summary = classified.summary
        if summary is None:
            return

        self.conversations.append(summary)
        if summary.topic_key:
            self.topic_counts[summary.topic_key] += 1
        if summary.month:
            self.chat_month_counts[summary.month] += 1

        for stat in classified.messages:
            self.total_user_messages += 1
            self.total_prompt_chars += stat.chars
            self.longest_prompt_chars = max(self.longest_prompt_chars, stat.chars)

            if stat.timestamp is None:
                continue
            day = stat.timestamp.date()
            week = week_start(day)
            self.timestamp_count += 1
            self.active_days.add(day)
            self.day_counts[day] += 1
            self.message_month_counts[stat.timestamp.strftime("%Y-%m")] += 1
            self.hour_counts[stat.timestamp.hour] += 1
            self.week_message_counts[week] += 1
            if stat.friction:
                self.week_friction_counts[week] += 1
            if stat.timestamp.hour in LATE_NIGHT_HOURS:
                self.late_night_count += 1

            if stat.timestamp <= self.midpoint:
                self.early_prompt_chars += stat.chars
                self.early_prompt_count += 1
            else:
                self.late_prompt_chars += stat.chars
                self.late_prompt_count += 1

        self.word_counts.update(classified.word_counts)
        self.habit_counts.update(classified.habit_counts)
        self.nickname_counts.update(classified.nickname_counts)

        behavior = self.behavior
        behavior.swear_count += classified.swear_count
        behavior.spicy_word_count += classified.swear_count + classified.insult_count
        behavior.yelling_message_count += classified.yelling_count
        behavior.question_burst_message_count += classified.question_burst_count
        behavior.exclaim_burst_message_count += classified.exclaim_burst_count
        behavior.again_still_count += classified.again_still_count
        behavior.indecision_count += classified.indecision_count
        if "whiplash" in summary.tags:
            behavior.whiplash_chat_count += 1
        if "quick_question" in summary.tags:
            behavior.quick_question_chat_count += 1
            self._quick_chat_prompts += summary.user_messages

    def summary(self) -> RewindSummary:
        """
        Compute derived statistics from the accumulated state.

        Returns:
            RewindSummary without the wrapped narrative attached
        """
        messages = self.total_user_messages
        return RewindSummary(
            total_conversations=self.total_conversations,
            total_user_messages=messages,
            active_days=len(self.active_days),
            busiest_month=self._busiest_month(),
            peak_hour=self._peak_hour(),
            late_night_percent=(
                round(self.late_night_count / self.timestamp_count * 100)
                if self.timestamp_count
                else 0
            ),
            top_topics=self._top_topics(),
            frequent_phrases=self._top_phrases(self.habit_counts, self.phrase_min_count),
            nicknames=self._top_phrases(self.nickname_counts, self.nickname_min_count),
            top_word=self._top_word(),
            longest_prompt_chars=self.longest_prompt_chars if messages else None,
            avg_prompt_chars=round(self.total_prompt_chars / messages) if messages else None,
            prompt_length_change_percent=self._prompt_trend(),
            longest_streak_days=longest_streak(self.active_days),
            most_active_week=_top_week(self.week_message_counts),
            most_chaotic_week=_top_week(self.week_friction_counts),
            month_counts=dict(sorted(self.chat_month_counts.items())),
            behavior=self._behavior(),
            conversations=list(self.conversations),
            skipped_conversations=self.skipped_conversations,
            days_back=self.days_back,
            generated_at=self.now.isoformat(),
        )

    def _busiest_month(self) -> Optional[str]:
        if not self.message_month_counts:
            return None
        key, _count = min(self.message_month_counts.items(), key=lambda i: (-i[1], i[0]))
        return calendar.month_name[int(key.split("-")[1])]

    def _peak_hour(self) -> Optional[int]:
        if not self.hour_counts:
            return None
        return min(self.hour_counts.items(), key=lambda i: (-i[1], i[0]))[0]

    def _top_word(self) -> Optional[str]:
        ranked = self.word_counts.most_common(1)
        return ranked[0][0] if ranked else None

    def _top_topics(self) -> list[TopicInsight]:
        topics = [
            TopicInsight(key=key, label=label, emoji=emoji, count=self.topic_counts[key])
            for key, label, emoji, _keywords in TOPIC_BUCKETS
            if self.topic_counts[key] > 0
        ]
        topics.sort(key=lambda t: -t.count)
        if topics:
            return topics[: self.top_n]

        # No bucket matched anything; fall back to the most frequent words
        return [
            TopicInsight(key=word, label=word.capitalize(), emoji="✨", count=count)
            for word, count in self.word_counts.most_common(3)
        ]

    def _top_phrases(self, counts: Counter, min_count: int) -> list[PhraseInsight]:
        ranked = sorted(
            ((phrase, count) for phrase, count in counts.items() if count >= min_count),
            key=lambda item: (-item[1], item[0]),
        )
        return [PhraseInsight(phrase=p, count=c) for p, c in ranked[: self.top_n]]

    def _prompt_trend(self) -> Optional[int]:
        if self.early_prompt_count < TREND_MIN_SAMPLES or self.late_prompt_count < TREND_MIN_SAMPLES:
            return None
        avg_early = self.early_prompt_chars / self.early_prompt_count
        avg_late = self.late_prompt_chars / self.late_prompt_count
        if avg_early <= 0:
            return None
        change = (avg_late - avg_early) / avg_early * 100
        if abs(change) < TREND_MIN_CHANGE_PERCENT:
            return None
        return round(change)

    def _behavior(self) -> RewindBehavior:
        habit = self.habit_counts
        behavior = RewindBehavior(**self.behavior.to_dict())
        behavior.please_count = habit["please"]
        behavior.thank_you_count = habit["thank you"]
        behavior.sorry_count = habit["sorry"]
        behavior.can_you_count = habit["can you"]
        behavior.step_by_step_count = habit["step by step"]
        behavior.quick_question_count = habit["quick question"]
        behavior.real_quick_count = habit["real quick"]
        behavior.simple_question_count = habit["simple question"]
        behavior.why_broken_count = habit["why is this broken"]
        behavior.doesnt_work_count = habit["doesn't work"]
        behavior.broken_count = behavior.why_broken_count + behavior.doesnt_work_count
        behavior.wtf_count = habit["wtf"]
        if behavior.quick_question_chat_count:
            behavior.quick_question_chat_avg_prompts = round(
                self._quick_chat_prompts / behavior.quick_question_chat_count
            )
        return behavior
