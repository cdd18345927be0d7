"""
Rewind data models.

Plain dataclasses describing per-conversation classification results, the
aggregate year-in-review summary and the narrative layer derived from it.
All records serialize to JSON-ready dicts via ``to_dict()``; ``RewindSummary``
can be rebuilt from such a dict with ``from_dict()``.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional


def _pick(cls, data: dict[str, Any]) -> dict[str, Any]:
    """Keep only keys that are fields of ``cls``."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class TopicInsight:
    """A topic bucket and how many conversations it won."""

    key: str
    label: str
    emoji: str
    count: int


@dataclass
class PhraseInsight:
    """A habit phrase or nickname with its occurrence count."""

    phrase: str
    count: int


@dataclass
class WeekInsight:
    """A Monday-aligned ISO week and its score."""

    week_start: str  # YYYY-MM-DD of the Monday
    count: int


@dataclass
class RewindBehavior:
    """Global behavioral counters. Only ever incremented."""

    please_count: int = 0
    thank_you_count: int = 0
    sorry_count: int = 0
    can_you_count: int = 0
    step_by_step_count: int = 0
    quick_question_count: int = 0
    real_quick_count: int = 0
    simple_question_count: int = 0
    why_broken_count: int = 0
    doesnt_work_count: int = 0
    broken_count: int = 0
    wtf_count: int = 0
    swear_count: int = 0
    spicy_word_count: int = 0
    yelling_message_count: int = 0
    question_burst_message_count: int = 0
    exclaim_burst_message_count: int = 0
    again_still_count: int = 0
    indecision_count: int = 0
    whiplash_chat_count: int = 0
    quick_question_chat_count: int = 0
    quick_question_chat_avg_prompts: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ConversationSummary:
    """Classification result for one conversation with in-scope messages."""

    id: str
    topic_key: Optional[str]
    theme_key: Optional[str]
    month: Optional[str]  # YYYY-MM of the earliest in-scope message
    started_at: Optional[str]  # ISO timestamp of the earliest in-scope message
    description: str
    user_messages: int
    avg_prompt_chars: int
    max_prompt_chars: int
    duration_minutes: Optional[int]
    intent: str
    deliverable: str
    mood: str
    tags: list[str] = field(default_factory=list)
    stack: list[str] = field(default_factory=list)
    win_signals: int = 0
    friction_signals: int = 0
    indecision_signals: int = 0
    comeback: bool = False
    habit_counts: dict[str, int] = field(default_factory=dict)

    # Private free text; cleared before persistence
    title: Optional[str] = None
    excerpt: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationSummary":
        return cls(**_pick(cls, data))


@dataclass
class ProjectHighlight:
    """A cluster of related conversations presented as one project."""

    name: str
    theme_key: Optional[str]
    stack_term: Optional[str]
    chats: int
    messages: int
    months_active: int
    first_month: Optional[str]
    last_month: Optional[str]
    intensity: str  # 'obsessive', 'steady', 'light'
    status: str  # 'recurring', 'shipped', 'abandoned', 'unknown'
    wins: int = 0
    friction: int = 0


@dataclass
class BossFight:
    """A recurring friction pattern."""

    key: str
    label: str
    count: int


@dataclass
class WinEntry:
    """A category of wins with its tally."""

    key: str
    label: str
    count: int


@dataclass
class ComebackHighlight:
    """The biggest friction-then-win conversation."""

    conversation_id: str
    month: Optional[str]
    description: str
    friction: int
    wins: int
    excerpt: Optional[str] = None  # Private


@dataclass
class TimelineHighlights:
    """Month-level extremes of the year."""

    flow_months: list[str] = field(default_factory=list)
    friction_months: list[str] = field(default_factory=list)
    villain_month: Optional[str] = None
    villain_score: int = 0
    indecision_month: Optional[str] = None
    longest_streak_days: int = 0


@dataclass
class Highlight:
    """A narrative highlight that may quote the user."""

    type: str
    title: str
    line: str
    month: Optional[str] = None
    count: int = 0
    excerpt: Optional[str] = None  # Private


@dataclass
class Archetype:
    """Persona archetype picked from the topic and chaos decision table."""

    key: str
    title: str
    line: str


@dataclass
class WrappedSummary:
    """Narrative view derived from a finished RewindSummary."""

    projects: list[ProjectHighlight] = field(default_factory=list)
    boss_fights: list[BossFight] = field(default_factory=list)
    wins: list[WinEntry] = field(default_factory=list)
    comeback: Optional[ComebackHighlight] = None
    timeline: TimelineHighlights = field(default_factory=TimelineHighlights)
    weird_stack: Optional[str] = None
    archetype: Optional[Archetype] = None
    forecast: list[str] = field(default_factory=list)
    closing_line: Optional[str] = None
    life_highlights: list[Highlight] = field(default_factory=list)
    rabbit_holes: list[Highlight] = field(default_factory=list)
    best_moments: list[Highlight] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WrappedSummary":
        comeback = data.get("comeback")
        archetype = data.get("archetype")
        return cls(
            projects=[ProjectHighlight(**_pick(ProjectHighlight, p)) for p in data.get("projects", [])],
            boss_fights=[BossFight(**_pick(BossFight, b)) for b in data.get("boss_fights", [])],
            wins=[WinEntry(**_pick(WinEntry, w)) for w in data.get("wins", [])],
            comeback=ComebackHighlight(**_pick(ComebackHighlight, comeback)) if comeback else None,
            timeline=TimelineHighlights(**_pick(TimelineHighlights, data.get("timeline") or {})),
            weird_stack=data.get("weird_stack"),
            archetype=Archetype(**_pick(Archetype, archetype)) if archetype else None,
            forecast=list(data.get("forecast", [])),
            closing_line=data.get("closing_line"),
            life_highlights=[Highlight(**_pick(Highlight, h)) for h in data.get("life_highlights", [])],
            rabbit_holes=[Highlight(**_pick(Highlight, h)) for h in data.get("rabbit_holes", [])],
            best_moments=[Highlight(**_pick(Highlight, h)) for h in data.get("best_moments", [])],
        )


@dataclass
class RewindSummary:
    """Aggregate root of a year-in-review."""

    total_conversations: int = 0
    total_user_messages: int = 0
    active_days: int = 0
    busiest_month: Optional[str] = None  # Month name, e.g. "March"
    peak_hour: Optional[int] = None
    late_night_percent: int = 0
    top_topics: list[TopicInsight] = field(default_factory=list)
    frequent_phrases: list[PhraseInsight] = field(default_factory=list)
    nicknames: list[PhraseInsight] = field(default_factory=list)
    top_word: Optional[str] = None
    longest_prompt_chars: Optional[int] = None
    avg_prompt_chars: Optional[int] = None
    prompt_length_change_percent: Optional[int] = None
    longest_streak_days: int = 0
    most_active_week: Optional[WeekInsight] = None
    most_chaotic_week: Optional[WeekInsight] = None
    month_counts: dict[str, int] = field(default_factory=dict)
    behavior: RewindBehavior = field(default_factory=RewindBehavior)
    conversations: list[ConversationSummary] = field(default_factory=list)
    wrapped: Optional[WrappedSummary] = None
    skipped_conversations: int = 0
    days_back: int = 365
    generated_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RewindSummary":
        """Rebuild a summary from ``to_dict()`` output (e.g. stored JSON)."""
        values = _pick(cls, data)
        values["top_topics"] = [TopicInsight(**_pick(TopicInsight, t)) for t in data.get("top_topics", [])]
        values["frequent_phrases"] = [
            PhraseInsight(**_pick(PhraseInsight, p)) for p in data.get("frequent_phrases", [])
        ]
        values["nicknames"] = [PhraseInsight(**_pick(PhraseInsight, p)) for p in data.get("nicknames", [])]
        for key in ("most_active_week", "most_chaotic_week"):
            week = data.get(key)
            values[key] = WeekInsight(**_pick(WeekInsight, week)) if week else None
        values["month_counts"] = dict(data.get("month_counts", {}))
        values["behavior"] = RewindBehavior(**_pick(RewindBehavior, data.get("behavior") or {}))
        values["conversations"] = [
            ConversationSummary.from_dict(c) for c in data.get("conversations", [])
        ]
        wrapped = data.get("wrapped")
        values["wrapped"] = WrappedSummary.from_dict(wrapped) if wrapped else None
        return cls(**values)


@dataclass
class Banger:
    """A scored, shareable one-line summary candidate."""

    id: str
    category: str
    line1: str
    score: int
    shareable: bool
    line2: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
