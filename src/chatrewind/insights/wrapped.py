"""
Narrative synthesis for the year-in-review.

Turns a finished RewindSummary into ranked highlight records: projects,
recurring friction ("boss fights"), wins, timeline extremes, a persona
archetype and a couple of forward-looking lines. Everything is derived from
counts and categorical fields; nothing is invented when the counts are zero.
"""

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from chatrewind.models.rewind import (
    Archetype,
    BossFight,
    ComebackHighlight,
    ConversationSummary,
    Highlight,
    ProjectHighlight,
    RewindSummary,
    TimelineHighlights,
    WinEntry,
    WrappedSummary,
)
from chatrewind.tagging.keywords import (
    GENERIC_STACK_TERMS,
    INTENTS,
    PROJECT_THEMES,
    TOPIC_LABELS,
    WEIRD_STACK_TERMS,
)

logger = logging.getLogger(__name__)

MAX_PROJECTS = 5
MAX_BOSS_FIGHTS = 3
MAX_WINS = 3
MAX_HIGHLIGHTS = 3

PROJECT_MIN_CHATS = 2
OBSESSIVE_CHATS = 15
STEADY_CHATS = 5
RECURRING_WITHIN_DAYS = 45
ABANDONED_MIN_CHATS = 6

TIMELINE_MIN_CHATS = 10
RABBIT_HOLE_MIN_PROMPTS = 20
HIGH_CHAOS_MIN = 10
RECENT_DAYS = 92

INTENT_SESSIONS = {
    "build": "Build sessions",
    "debug": "Debugging sessions",
    "write": "Writing sessions",
    "plan": "Planning sessions",
    "learn": "Study sessions",
    "decide": "Decision sessions",
    "brainstorm": "Brainstorms",
    "other": "Misc chats",
}

BOSS_FIGHT_LABELS = {
    "trouble": "Things that refused to work",
    "again_still": "The same problem, again",
    "punctuation": "??? and !!! bursts",
    "shouting": "CAPS LOCK episodes",
    "indecision": "Decision paralysis",
}

WIN_LABELS = {
    "shipped": "Projects shipped",
    "comebacks": "Comebacks",
    "flow": "Flow-state chats",
    "signals": "Times it finally worked",
}

ARCHETYPES = {
    "builder": ("The Builder", "You showed up with projects and left with things that exist."),
    "debugger": ("The Debugger", "Every error message was a personal invitation."),
    "tinkerer": ("The Tinkerer", "You poked at code until it poked back."),
    "editor": ("The Editor", "You made the words behave, draft after draft."),
    "student": ("The Eternal Student", "You kept asking until it clicked."),
    "strategist": ("The Strategist", "Chaos went in, checklists came out."),
    "explorer": ("The Explorer", "You planned trips like the itinerary was the destination."),
    "climber": ("The Climber", "You rehearsed your next career move here."),
    "dreamer": ("The Dreamer", "Ideas first, questions later."),
    "generalist": ("The Generalist", "A little bit of everything, all year long."),
}

TOPIC_ARCHETYPES = {
    "writing": "editor",
    "learning": "student",
    "planning": "strategist",
    "travel": "explorer",
    "career": "climber",
    "creative": "dreamer",
}

FORECASTS = {
    "build": "Next year: more things shipped, fewer half-finished tabs.",
    "debug": "Next year: the bugs get smarter. So do you.",
    "write": "Next year: fewer drafts, louder voice.",
    "plan": "Next year: the plan finally meets the calendar.",
    "learn": "Next year: you explain it to someone else.",
    "decide": "Next year: you pick one. Probably.",
    "vent": "Next year: less venting, more doing.",
    "brainstorm": "Next year: one of those ideas gets real.",
    "other": "Next year: more questions nobody else would answer.",
}

LIFE_THEMES = [
    # (type, title, topic_key, theme_key, line template)
    ("travel", "Trip planning", "travel", "trip", "You planned a trip across {count} chats."),
    ("career", "The job hunt", "career", "job_hunt", "You prepped your next move in {count} chats."),
    ("fitness", "Getting fit", None, "fitness", "You trained with a chatbot coach {count} times."),
]


def _month_cutoff(now: datetime, days: int) -> str:
    return (now - timedelta(days=days)).strftime("%Y-%m")


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _primary_stack(conversation: ConversationSummary) -> Optional[str]:
    return next((t for t in conversation.stack if t not in GENERIC_STACK_TERMS), None)


def _cluster_label(conversation: ConversationSummary) -> tuple[str, str, Optional[str]]:
    """Return (cluster key, display label, theme key) for a conversation."""
    if conversation.theme_key:
        label = PROJECT_THEMES[conversation.theme_key][0]
        return conversation.theme_key, label[0].upper() + label[1:], conversation.theme_key
    if conversation.topic_key:
        return conversation.topic_key, TOPIC_LABELS[conversation.topic_key][0], None
    key = f"intent:{conversation.intent}"
    return key, INTENT_SESSIONS.get(conversation.intent, "Misc chats"), None


def _rank(counts: dict[str, int], order: list[str], limit: int) -> list[tuple[str, int]]:
    """Positive counts, highest first, table order on ties."""
    ranked = sorted(
        ((key, counts[key]) for key in order if counts.get(key, 0) > 0),
        key=lambda item: -item[1],
    )
    return ranked[:limit]


class WrappedGenerator:
    """Builds the narrative layer from a finished summary.

    ``now`` anchors recency checks (recurring projects, the recent quarter).
    It defaults to the summary's ``generated_at`` so regenerating from stored
    JSON gives the same result.
    """

    def __init__(self, now: Optional[datetime] = None):
        self.now = now

    def generate(self, summary: RewindSummary) -> WrappedSummary:
        """
        Derive the wrapped summary.

        Args:
            summary: Aggregated rewind statistics

        Returns:
            WrappedSummary; empty lists and None fields where evidence is absent
        """
        now = self.now or _parse_iso(summary.generated_at) or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        conversations = summary.conversations
        projects = self._projects(conversations, now)
        boss_fights = self._boss_fights(summary)
        archetype = self._archetype(summary, projects)
        forecast = self._forecast(conversations, boss_fights, now)

        wrapped = WrappedSummary(
            projects=projects,
            boss_fights=boss_fights,
            wins=self._wins(conversations, projects),
            comeback=self._comeback(conversations),
            timeline=self._timeline(summary),
            weird_stack=self._weird_stack(conversations),
            archetype=archetype,
            forecast=forecast,
            closing_line=self._closing_line(archetype, boss_fights),
            life_highlights=self._life_highlights(conversations),
            rabbit_holes=self._rabbit_holes(conversations),
            best_moments=self._best_moments(conversations),
        )
        logger.debug(
            f"Wrapped: {len(wrapped.projects)} projects, "
            f"{len(wrapped.boss_fights)} boss fights, archetype="
            f"{archetype.key if archetype else None}"
        )
        return wrapped

    def _projects(
        self, conversations: list[ConversationSummary], now: datetime
    ) -> list[ProjectHighlight]:
        clusters: dict[tuple, list[ConversationSummary]] = defaultdict(list)
        labels: dict[tuple, tuple[str, Optional[str]]] = {}
        for conversation in conversations:
            if conversation.intent == "vent":
                continue
            key, label, theme_key = _cluster_label(conversation)
            stack = _primary_stack(conversation)
            clusters[(key, stack)].append(conversation)
            labels[(key, stack)] = (label, theme_key)

        projects = []
        for (key, stack), members in clusters.items():
            if len(members) < PROJECT_MIN_CHATS:
                continue
            label, theme_key = labels[(key, stack)]
            months = sorted({c.month for c in members if c.month})
            wins = sum(c.win_signals for c in members)
            friction = sum(c.friction_signals for c in members)
            started = [t for t in (_parse_iso(c.started_at) for c in members) if t]
            last_activity = max(started) if started else None
            chats = len(members)

            if chats >= OBSESSIVE_CHATS:
                intensity = "obsessive"
            elif chats >= STEADY_CHATS:
                intensity = "steady"
            else:
                intensity = "light"

            if last_activity is not None and now - last_activity <= timedelta(
                days=RECURRING_WITHIN_DAYS
            ):
                status = "recurring"
            elif wins > 0 and wins >= friction:
                status = "shipped"
            elif friction > 0 and friction >= 2 * wins and chats >= ABANDONED_MIN_CHATS:
                status = "abandoned"
            else:
                status = "unknown"

            projects.append(
                ProjectHighlight(
                    name=f"{label} ({stack})" if stack else label,
                    theme_key=theme_key,
                    stack_term=stack,
                    chats=chats,
                    messages=sum(c.user_messages for c in members),
                    months_active=len(months),
                    first_month=months[0] if months else None,
                    last_month=months[-1] if months else None,
                    intensity=intensity,
                    status=status,
                    wins=wins,
                    friction=friction,
                )
            )

        projects.sort(key=lambda p: (-p.messages, -p.chats, p.name))
        return projects[:MAX_PROJECTS]

    def _boss_fights(self, summary: RewindSummary) -> list[BossFight]:
        b = summary.behavior
        counts = {
            "trouble": b.broken_count + b.wtf_count,
            "again_still": b.again_still_count,
            "punctuation": b.question_burst_message_count + b.exclaim_burst_message_count,
            "shouting": b.yelling_message_count,
            "indecision": b.indecision_count,
        }
        return [
            BossFight(key=key, label=BOSS_FIGHT_LABELS[key], count=count)
            for key, count in _rank(counts, list(BOSS_FIGHT_LABELS), MAX_BOSS_FIGHTS)
        ]

    def _wins(
        self, conversations: list[ConversationSummary], projects: list[ProjectHighlight]
    ) -> list[WinEntry]:
        counts = {
            "shipped": sum(1 for p in projects if p.status == "shipped"),
            "comebacks": sum(1 for c in conversations if c.comeback),
            "flow": sum(1 for c in conversations if c.mood == "flow"),
            "signals": sum(c.win_signals for c in conversations),
        }
        return [
            WinEntry(key=key, label=WIN_LABELS[key], count=count)
            for key, count in _rank(counts, list(WIN_LABELS), MAX_WINS)
        ]

    def _comeback(self, conversations: list[ConversationSummary]) -> Optional[ComebackHighlight]:
        candidates = [c for c in conversations if c.comeback]
        if not candidates:
            return None
        best = max(candidates, key=lambda c: (c.friction_signals, c.win_signals, c.user_messages))
        return ComebackHighlight(
            conversation_id=best.id,
            month=best.month,
            description=best.description,
            friction=best.friction_signals,
            wins=best.win_signals,
            excerpt=best.excerpt,
        )

    def _timeline(self, summary: RewindSummary) -> TimelineHighlights:
        chats: Counter = Counter()
        wins: Counter = Counter()
        friction: Counter = Counter()
        indecision: Counter = Counter()
        for c in summary.conversations:
            if not c.month:
                continue
            chats[c.month] += 1
            wins[c.month] += c.win_signals
            friction[c.month] += c.friction_signals
            indecision[c.month] += c.indecision_signals

        months = sorted(chats)
        flow_months = [
            m for m in months if chats[m] >= TIMELINE_MIN_CHATS and wins[m] > friction[m]
        ]
        friction_months = [
            m for m in months if chats[m] >= TIMELINE_MIN_CHATS and friction[m] > wins[m]
        ]

        villain_month = None
        villain_score = 0
        for m in months:
            if friction[m] + indecision[m] == 0:
                continue
            score = 3 * friction[m] + 2 * indecision[m] + chats[m]
            if score > villain_score:
                villain_month, villain_score = m, score

        indecision_month = None
        best_ratio = 0.0
        for m in months:
            ratio = indecision[m] / chats[m]
            if ratio > best_ratio:
                indecision_month, best_ratio = m, ratio

        return TimelineHighlights(
            flow_months=flow_months,
            friction_months=friction_months,
            villain_month=villain_month,
            villain_score=villain_score,
            indecision_month=indecision_month,
            longest_streak_days=summary.longest_streak_days,
        )

    def _weird_stack(self, conversations: list[ConversationSummary]) -> Optional[str]:
        counts: Counter = Counter()
        for c in conversations:
            counts.update(t for t in c.stack if t in WEIRD_STACK_TERMS)
        if not counts:
            return None
        return min(counts.items(), key=lambda i: (-i[1], i[0]))[0]

    def _archetype(
        self, summary: RewindSummary, projects: list[ProjectHighlight]
    ) -> Optional[Archetype]:
        if summary.total_conversations == 0:
            return None

        b = summary.behavior
        chaos = (
            b.broken_count
            + b.wtf_count
            + b.swear_count
            + b.yelling_message_count
            + b.question_burst_message_count
            + b.exclaim_burst_message_count
        )
        high_chaos = chaos >= HIGH_CHAOS_MIN and chaos * 4 >= summary.total_conversations
        top_topic = summary.top_topics[0].key if summary.top_topics else None

        if top_topic == "coding":
            if len(projects) >= 3:
                key = "builder"
            elif high_chaos:
                key = "debugger"
            else:
                key = "tinkerer"
        else:
            key = TOPIC_ARCHETYPES.get(top_topic, "generalist")

        title, line = ARCHETYPES[key]
        return Archetype(key=key, title=title, line=line)

    def _forecast(
        self,
        conversations: list[ConversationSummary],
        boss_fights: list[BossFight],
        now: datetime,
    ) -> list[str]:
        cutoff = _month_cutoff(now, RECENT_DAYS)
        recent = [c for c in conversations if c.month and c.month >= cutoff]

        lines = []
        intents = Counter(c.intent for c in recent)
        if intents:
            order = INTENTS + ["other"]
            intent = min(intents, key=lambda i: (-intents[i], order.index(i)))
            lines.append(FORECASTS[intent])

        themes = Counter(c.theme_key for c in recent if c.theme_key)
        if themes:
            theme = min(themes, key=lambda t: (-themes[t], list(PROJECT_THEMES).index(t)))
            label = PROJECT_THEMES[theme][0]
            lines.append(f"{label[0].upper()}{label[1:]} is not done with you yet.")

        if boss_fights:
            lines.append(f"Sequel incoming: {boss_fights[0].label.lower()}.")
        return lines

    @staticmethod
    def _closing_line(
        archetype: Optional[Archetype], boss_fights: list[BossFight]
    ) -> Optional[str]:
        if archetype is None:
            return None
        if boss_fights:
            return f"{archetype.title}: survived {boss_fights[0].label.lower()} and kept going."
        return f"{archetype.title}: {archetype.line}"

    def _life_highlights(self, conversations: list[ConversationSummary]) -> list[Highlight]:
        highlights = []
        for kind, title, topic_key, theme_key, template in LIFE_THEMES:
            members = [
                c
                for c in conversations
                if (topic_key and c.topic_key == topic_key) or c.theme_key == theme_key
            ]
            if not members:
                continue
            lead = max(members, key=lambda c: c.user_messages)
            highlights.append(
                Highlight(
                    type=kind,
                    title=lead.title or title,
                    line=template.format(count=len(members)),
                    month=lead.month,
                    count=len(members),
                    excerpt=lead.excerpt,
                )
            )
        return highlights

    def _rabbit_holes(self, conversations: list[ConversationSummary]) -> list[Highlight]:
        deep = [c for c in conversations if c.user_messages >= RABBIT_HOLE_MIN_PROMPTS]
        deep.sort(key=lambda c: (-c.user_messages, c.id))
        return [
            Highlight(
                type="rabbit_hole",
                title=c.description,
                line=f"{c.user_messages} prompts deep.",
                month=c.month,
                count=c.user_messages,
                excerpt=c.excerpt,
            )
            for c in deep[:MAX_HIGHLIGHTS]
        ]

    def _best_moments(self, conversations: list[ConversationSummary]) -> list[Highlight]:
        good = [c for c in conversations if c.win_signals > 0 and (c.comeback or c.mood == "flow")]
        good.sort(key=lambda c: (-c.win_signals, -c.user_messages, c.id))
        return [
            Highlight(
                type="comeback" if c.comeback else "flow",
                title=c.description,
                line="Broke it, then fixed it." if c.comeback else "Everything just worked.",
                month=c.month,
                count=c.win_signals,
                excerpt=c.excerpt,
            )
            for c in good[:MAX_HIGHLIGHTS]
        ]


def build_wrapped(summary: RewindSummary, now: Optional[datetime] = None) -> WrappedSummary:
    """Convenience wrapper around ``WrappedGenerator.generate``."""
    return WrappedGenerator(now=now).generate(summary)
