"""Rule-based classifier turning one raw conversation into a summary."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

from chatrewind.models.rewind import ConversationSummary
from chatrewind.tagging import keywords as kw
from chatrewind.utils.anonymize import PLACEHOLDER_TOKENS, anonymize, is_placeholder_only

logger = logging.getLogger(__name__)

TITLE_WEIGHT = 2
EXCERPT_CHARS = 140

INTENT_PHRASES = {
    "build": "Building",
    "debug": "Debugging",
    "write": "Writing",
    "plan": "Planning",
    "learn": "Learning about",
    "decide": "Deciding on",
    "vent": "Venting about",
    "brainstorm": "Brainstorming",
    "other": "Chatting about",
}

TOPIC_SUBJECTS = {
    "coding": "code",
    "writing": "words",
    "learning": "new topics",
    "planning": "plans",
    "travel": "a trip",
    "career": "career moves",
    "creative": "creative ideas",
}


@dataclass
class MessageStat:
    """Per-message observation handed to the aggregator. Carries no text."""

    timestamp: Optional[datetime]
    chars: int
    friction: bool = False
    win: bool = False


@dataclass
class ClassifiedConversation:
    """Classifier output: the summary plus contributions to global counters.

    ``summary`` is None when the conversation had no in-scope user messages;
    every counter is empty in that case.
    """

    summary: Optional[ConversationSummary]
    messages: list[MessageStat] = field(default_factory=list)
    word_counts: Counter = field(default_factory=Counter)
    habit_counts: Counter = field(default_factory=Counter)
    nickname_counts: Counter = field(default_factory=Counter)
    stack_counts: Counter = field(default_factory=Counter)
    swear_count: int = 0
    insult_count: int = 0
    yelling_count: int = 0
    question_burst_count: int = 0
    exclaim_burst_count: int = 0
    again_still_count: int = 0
    indecision_count: int = 0

    @property
    def included(self) -> bool:
        return self.summary is not None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an export timestamp into an aware UTC datetime.

    Args:
        value: Epoch seconds (or milliseconds when > 1e12), or an ISO-8601 string

    Returns:
        Parsed datetime, or None if the value is missing or unparseable
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        try:
            parsed = date_parser.isoparse(value.strip())
        except (ValueError, TypeError, OverflowError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return None


def _as_dict(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def extract_messages(conversation: dict) -> list[dict]:
    """
    Flatten a conversation into its message records.

    The tree form (``mapping`` of node id -> node) is treated as an unordered
    collection; no parent/child order is reconstructed.

    Args:
        conversation: Raw conversation object

    Returns:
        Message dicts in no guaranteed order
    """
    nested = _as_dict(conversation.get("conversation"))
    mapping = _as_dict(conversation.get("mapping"))
    if mapping is None and nested is not None:
        mapping = _as_dict(nested.get("mapping"))

    if mapping is not None:
        messages = []
        for node in mapping.values():
            message = _as_dict(node.get("message")) if isinstance(node, dict) else None
            if message:
                messages.append(message)
        return messages

    direct = conversation.get("messages")
    if direct is None and nested is not None:
        direct = nested.get("messages")
    if isinstance(direct, list):
        return [m for m in direct if isinstance(m, dict)]
    return []


def message_role(message: dict) -> Optional[str]:
    author = _as_dict(message.get("author"))
    nested = _as_dict(message.get("message"))
    nested_author = _as_dict(nested.get("author")) if nested else None
    if author and author.get("role"):
        return author.get("role")
    if nested_author and nested_author.get("role"):
        return nested_author.get("role")
    if isinstance(message.get("author"), str):
        return message["author"]
    return message.get("role")


def message_text(message: dict) -> Optional[str]:
    """Extract text from ``{parts: [...]}``, ``{text: ...}`` or a bare string."""
    nested = _as_dict(message.get("message"))
    content = message.get("content")
    if content is None and nested is not None:
        content = nested.get("content")
    if not content:
        return None

    if isinstance(content, dict):
        parts = content.get("parts")
        if isinstance(parts, list):
            joined = " ".join(p for p in parts if isinstance(p, str)).strip()
            return joined or None
        text = content.get("text")
        if isinstance(text, str):
            return text.strip() or None
        return None
    if isinstance(content, str):
        return content.strip() or None
    return None


def is_yelling(text: str) -> bool:
    """All-caps message: at least 12 letters, at least 75% uppercase."""
    letters = [c for c in text if c.isascii() and c.isalpha()]
    if len(letters) < 12:
        return False
    upper = sum(1 for c in letters if c.isupper())
    return upper / len(letters) >= 0.75


def tokenize(lowered: str) -> list[str]:
    tokens = []
    for token in kw.TOKEN_SPLIT_PATTERN.split(lowered):
        token = token.strip("'-")
        if len(token) < 3 or token.isdigit():
            continue
        if token in kw.STOPWORDS or token in PLACEHOLDER_TOKENS:
            continue
        tokens.append(token)
    return tokens


def _pick_winner(scores: Counter, order: list[str], default: Optional[str]) -> Optional[str]:
    """Highest score wins; ``default`` gets a +1 bump; ties go to table order."""
    scores = Counter(scores)
    if default is not None:
        scores[default] += 1
    best: Optional[str] = None
    best_score = 0
    for key in order:
        if scores[key] > best_score:
            best = key
            best_score = scores[key]
    return best


class ConversationClassifier:
    """Scores one conversation's user messages against the keyword tables.

    The classifier is deterministic and holds no state between calls apart
    from the lookback window it was built with.
    """

    def __init__(self, now: Optional[datetime] = None, days_back: int = 365):
        self.now = now or datetime.now(timezone.utc)
        if self.now.tzinfo is None:
            self.now = self.now.replace(tzinfo=timezone.utc)
        self.days_back = days_back
        self.since = self.now - timedelta(days=days_back)

    def classify(self, conversation: Any, index: int = 0) -> ClassifiedConversation:
        """
        Classify one raw conversation.

        Args:
            conversation: Parsed conversation object from the export
            index: Position in the export, used when the conversation has no id

        Returns:
            ClassifiedConversation; its summary is None if nothing was in scope
        """
        result = ClassifiedConversation(summary=None)
        if not isinstance(conversation, dict):
            return result

        conversation_time = parse_timestamp(conversation.get("create_time"))

        topic_scores: Counter = Counter()
        intent_scores: Counter = Counter()
        deliverable_scores: Counter = Counter()
        theme_scores: Counter = Counter()
        stack_counts: Counter = Counter()

        title_raw = conversation.get("title")
        title: Optional[str] = None
        if isinstance(title_raw, str) and title_raw.strip():
            title = anonymize(title_raw).sanitized or None
        if title:
            self._score_text(
                title.lower(),
                TITLE_WEIGHT,
                topic_scores,
                intent_scores,
                deliverable_scores,
                theme_scores,
                stack_counts,
            )

        local_habits: Counter = Counter()
        stats: list[MessageStat] = []
        first_excerpt: Optional[tuple] = None
        indecision_total = 0
        spicy_in_chat = 0

        for position, message in enumerate(extract_messages(conversation)):
            try:
                if message_role(message) != "user":
                    continue

                nested = _as_dict(message.get("message"))
                created_at = (
                    parse_timestamp(message.get("create_time"))
                    or (parse_timestamp(nested.get("create_time")) if nested else None)
                    or conversation_time
                )
                if created_at is not None and created_at < self.since:
                    continue

                raw_text = message_text(message)
                if not raw_text:
                    continue
                sanitized = anonymize(raw_text).sanitized.strip()
                if not sanitized or is_placeholder_only(sanitized):
                    continue
            except (TypeError, ValueError, AttributeError) as e:
                logger.debug(f"Skipping malformed message node {position}: {type(e).__name__}")
                continue

            lowered = sanitized.lower()
            self._score_text(
                lowered,
                1,
                topic_scores,
                intent_scores,
                deliverable_scores,
                theme_scores,
                stack_counts,
            )

            for phrase, pattern in kw.HABIT_PATTERNS.items():
                hits = len(pattern.findall(lowered))
                if hits:
                    local_habits[phrase] += hits

            for pattern in kw.NICKNAME_PATTERNS:
                for match in pattern.finditer(lowered):
                    result.nickname_counts[match.group(1)] += 1

            swears = len(kw.SWEAR_PATTERN.findall(lowered))
            insults = len(kw.SPICY_WORD_PATTERN.findall(lowered))
            result.swear_count += swears
            result.insult_count += insults
            spicy_in_chat += swears + insults

            yelling = is_yelling(sanitized)
            question_burst = bool(kw.QUESTION_BURST_PATTERN.search(sanitized))
            exclaim_burst = bool(kw.EXCLAIM_BURST_PATTERN.search(sanitized))
            punctuation_burst = bool(kw.PUNCTUATION_BURST_PATTERN.search(sanitized))
            again_still = bool(kw.AGAIN_STILL_PATTERN.search(lowered))
            result.yelling_count += int(yelling)
            result.question_burst_count += int(question_burst)
            result.exclaim_burst_count += int(exclaim_burst)
            result.again_still_count += int(again_still)

            indecision_hits = len(kw.INDECISION_PATTERN.findall(lowered))
            indecision_total += indecision_hits

            friction = (
                bool(kw.TROUBLE_PATTERN.search(lowered))
                or swears > 0
                or yelling
                or punctuation_burst
                or again_still
            )
            win = bool(kw.WIN_PATTERN.search(lowered))

            result.word_counts.update(tokenize(lowered))
            stats.append(
                MessageStat(timestamp=created_at, chars=len(sanitized), friction=friction, win=win)
            )

            sort_key = (created_at is None, created_at or self.now, position)
            if first_excerpt is None or sort_key < first_excerpt[0]:
                first_excerpt = (sort_key, sanitized[:EXCERPT_CHARS])

        if not stats:
            return ClassifiedConversation(summary=None)

        result.habit_counts = local_habits
        result.stack_counts = stack_counts
        result.indecision_count = indecision_total
        result.messages = stats
        result.summary = self._summarize(
            conversation=conversation,
            index=index,
            title=title,
            excerpt=first_excerpt[1] if first_excerpt else None,
            stats=stats,
            topic_scores=topic_scores,
            intent_scores=intent_scores,
            deliverable_scores=deliverable_scores,
            theme_scores=theme_scores,
            stack_counts=stack_counts,
            habits=local_habits,
            indecision=indecision_total,
            spicy=spicy_in_chat,
        )
        return result

    def _score_text(
        self,
        lowered: str,
        weight: int,
        topic_scores: Counter,
        intent_scores: Counter,
        deliverable_scores: Counter,
        theme_scores: Counter,
        stack_counts: Counter,
    ) -> None:
        for key, patterns in kw.TOPIC_PATTERNS.items():
            hits = sum(1 for p in patterns if p.search(lowered))
            if hits:
                topic_scores[key] += hits * weight

        for intent, pattern in kw.INTENT_PATTERNS.items():
            hits = len(pattern.findall(lowered))
            if hits:
                intent_scores[intent] += hits * weight

        for deliverable, pattern in kw.DELIVERABLE_PATTERNS.items():
            hits = len(pattern.findall(lowered))
            if hits:
                deliverable_scores[deliverable] += hits * weight

        for theme, (_label, pattern) in kw.PROJECT_THEMES.items():
            hits = len(pattern.findall(lowered))
            if hits:
                theme_scores[theme] += hits * weight

        for term, pattern in kw.STACK_TERMS.items():
            hits = len(pattern.findall(lowered))
            if hits:
                stack_counts[term] += hits * weight

    def _summarize(
        self,
        conversation: dict,
        index: int,
        title: Optional[str],
        excerpt: Optional[str],
        stats: list[MessageStat],
        topic_scores: Counter,
        intent_scores: Counter,
        deliverable_scores: Counter,
        theme_scores: Counter,
        stack_counts: Counter,
        habits: Counter,
        indecision: int,
        spicy: int,
    ) -> ConversationSummary:
        topic_key = _pick_winner(topic_scores, [key for key, *_ in kw.TOPIC_BUCKETS], None)
        theme_key = _pick_winner(theme_scores, list(kw.PROJECT_THEMES), None)
        intent = (
            _pick_winner(intent_scores, kw.INTENTS, kw.TOPIC_DEFAULT_INTENT.get(topic_key))
            or "other"
        )
        deliverable = (
            _pick_winner(
                deliverable_scores, kw.DELIVERABLES, kw.TOPIC_DEFAULT_DELIVERABLE.get(topic_key)
            )
            or "other"
        )

        # Node order is not chronological; order by timestamp where known
        ordered = sorted(
            enumerate(stats),
            key=lambda pair: (pair[1].timestamp is None, pair[1].timestamp or self.now, pair[0]),
        )
        comeback = False
        seen_friction = False
        for _pos, stat in ordered:
            if stat.win and seen_friction:
                comeback = True
            if stat.friction:
                seen_friction = True

        message_count = len(stats)
        friction = sum(1 for s in stats if s.friction)
        wins = sum(1 for s in stats if s.win)
        mood = self._mood(message_count, friction, wins, indecision, comeback)

        stack = [term for term, _count in stack_counts.most_common()]
        primary_stack = next((t for t in stack if t not in kw.GENERIC_STACK_TERMS), None)

        timestamps = [s.timestamp for s in stats if s.timestamp is not None]
        first = min(timestamps) if timestamps else None
        last = max(timestamps) if timestamps else None
        duration = int((last - first).total_seconds() // 60) if first and last else None

        chars = [s.chars for s in stats]
        tags = {intent, deliverable, mood}
        if topic_key:
            tags.add(topic_key)
        if theme_key:
            tags.add(theme_key)
        if comeback:
            tags.add("comeback")
        if first is not None and first.hour in kw.LATE_NIGHT_HOURS:
            tags.add("late_night")
        if message_count >= 20:
            tags.add("marathon")
        elif message_count <= 2:
            tags.add("quick")
        if spicy and any(habits.get(p) for p in kw.POLITE_HABITS):
            tags.add("whiplash")
        if any(habits.get(p) for p in kw.QUICK_HABITS):
            tags.add("quick_question")

        conversation_id = conversation.get("id") or conversation.get("conversation_id")
        return ConversationSummary(
            id=str(conversation_id) if conversation_id else f"conversation-{index}",
            topic_key=topic_key,
            theme_key=theme_key,
            month=first.strftime("%Y-%m") if first else None,
            started_at=first.isoformat() if first else None,
            description=self._describe(intent, theme_key, topic_key, primary_stack),
            user_messages=message_count,
            avg_prompt_chars=round(sum(chars) / message_count),
            max_prompt_chars=max(chars),
            duration_minutes=duration,
            intent=intent,
            deliverable=deliverable,
            mood=mood,
            tags=sorted(tags),
            stack=stack,
            win_signals=wins,
            friction_signals=friction,
            indecision_signals=indecision,
            comeback=comeback,
            habit_counts=dict(habits),
            title=title,
            excerpt=excerpt,
        )

    @staticmethod
    def _mood(messages: int, friction: int, wins: int, indecision: int, comeback: bool) -> str:
        if friction >= 2 and friction / messages >= 0.35 and wins == 0:
            return "frustrated"
        if wins >= 2 and friction == 0:
            return "flow"
        if indecision >= 3:
            return "uncertain"
        if comeback:
            return "excited"
        return "neutral"

    @staticmethod
    def _describe(
        intent: str,
        theme_key: Optional[str],
        topic_key: Optional[str],
        primary_stack: Optional[str],
    ) -> str:
        if theme_key:
            subject = kw.PROJECT_THEMES[theme_key][0]
        elif topic_key:
            subject = TOPIC_SUBJECTS[topic_key]
        else:
            subject = "whatever came up"
        line = f"{INTENT_PHRASES[intent]} {subject}"
        if primary_stack:
            line += f" with {primary_stack}"
        return line
