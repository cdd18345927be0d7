"""
Banger generation: short, quotable one-liners ranked for sharing.

Each eligible statistic yields a candidate with phrasing picked by spice
level. Scores grow with the underlying count (coarse steps) and favour short
lines. Swear words are never quoted, and nicknames are only quoted when the
caller opts in and the spice level is above mild.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from chatrewind.models.rewind import Banger, PhraseInsight, RewindSummary

logger = logging.getLogger(__name__)

PAGE_SIZE = 7
SHARE_SIZE = 3

SHAREABLE_LINE1_CHARS = 92
SHAREABLE_TOTAL_CHARS = 160

# Share-set buckets, in pick order. Categories in different buckets never overlap.
SHARE_BUCKETS = [
    ("persona", ("identity", "nickname", "whiplash", "politeness", "quick")),
    ("chaos", ("contradiction", "rage")),
    ("pattern", ("style", "rhythm", "topics", "growth")),
]

# Categories that reveal nicknames, profanity or friction
SENSITIVE_CATEGORIES = frozenset({"nickname", "rage", "whiplash", "contradiction"})

WHY_BROKEN = "why is this broken"
DOESNT_WORK = "doesn't work"


class SpiceLevel(str, Enum):
    """Phrasing intensity."""

    MILD = "mild"
    SPICY = "spicy"
    SAVAGE = "savage"


@dataclass
class BangerSet:
    """Ranked page view, curated share set and every candidate."""

    page: list[Banger] = field(default_factory=list)
    share: list[Banger] = field(default_factory=list)
    all: list[Banger] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "page": [b.to_dict() for b in self.page],
            "share": [b.to_dict() for b in self.share],
            "all": [b.to_dict() for b in self.all],
        }


def score_from_count(count: int) -> int:
    """Step function approximating log growth."""
    if count <= 0:
        return 0
    for threshold, score in (
        (2000, 40),
        (800, 36),
        (300, 32),
        (120, 28),
        (50, 24),
        (20, 20),
        (10, 16),
        (5, 12),
    ):
        if count >= threshold:
            return score
    return 8


def score_from_length(text: str) -> int:
    if len(text) <= 64:
        return 10
    if len(text) <= 88:
        return 6
    if len(text) <= 110:
        return 2
    return -6


def is_shareable(line1: str, line2: Optional[str] = None) -> bool:
    total = len(line1) + (len(line2) if line2 else 0)
    return len(line1) <= SHAREABLE_LINE1_CHARS and total <= SHAREABLE_TOTAL_CHARS


def format_count(count: int) -> str:
    return f"{count:,}"


def format_hour(hour: int) -> str:
    display = 12 if hour % 12 == 0 else hour % 12
    return f"{display} {'AM' if hour < 12 else 'PM'}"


def quote(phrase: str) -> str:
    return f'"{phrase}"'


TOPIC_ROASTS = {
    "coding": (
        "You didn't browse. You built.",
        "You didn't browse. You built.",
        "You treated AI like a co-builder and a stress ball.",
    ),
    "writing": (
        "You came here to make the words behave.",
        "You came here to make the words behave.",
        "You rewrote the same thing until it finally sounded like you.",
    ),
    "planning": (
        "You turned chaos into checklists.",
        "You turned chaos into checklists.",
        "You didn't want ideas. You wanted a plan with timestamps.",
    ),
    "learning": (
        "You kept asking until it clicked.",
        "You kept asking until it clicked.",
        "You refused to be confused in peace.",
    ),
    "career": (
        "You rehearsed your next move here.",
        "You rehearsed your next move here.",
        "You workshopped your life like it had a deadline.",
    ),
    "travel": (
        "You planned it like a pro.",
        "You planned it like a pro.",
        "You planned it like you're allergic to surprises.",
    ),
    "creative": (
        "You played with ideas until something stuck.",
        "You played with ideas until something stuck.",
        "You used AI like a sandbox. Then you built castles.",
    ),
}
DEFAULT_ROAST = (
    "You came here to think out loud.",
    "You came here to think out loud.",
    "You came here to argue with yourself (with a witness).",
)


def _top_nickname(nicknames: list[PhraseInsight]) -> Optional[PhraseInsight]:
    if not nicknames:
        return None
    top = nicknames[0]
    phrase = top.phrase.strip()
    if not phrase or len(phrase.split()) > 4:
        return None
    return top


class BangerGenerator:
    """Builds ranked banger candidates for one spice level."""

    def __init__(self, spice: SpiceLevel = SpiceLevel.SPICY, include_sensitive: bool = False):
        self.spice = SpiceLevel(spice)
        self.include_sensitive = include_sensitive and self.spice is not SpiceLevel.MILD
        self._candidates: list[Banger] = []

    def _pick(self, mild: str, spicy: str, savage: str) -> str:
        return {SpiceLevel.MILD: mild, SpiceLevel.SPICY: spicy, SpiceLevel.SAVAGE: savage}[
            self.spice
        ]

    def _add(self, id: str, category: str, line1: str, score: int, line2: Optional[str] = None):
        self._candidates.append(
            Banger(
                id=id,
                category=category,
                line1=line1,
                line2=line2,
                score=score,
                shareable=is_shareable(line1, line2),
            )
        )

    def generate(self, summary: RewindSummary) -> BangerSet:
        """
        Build, score and rank candidates.

        Args:
            summary: Rewind summary (raw or sanitized)

        Returns:
            BangerSet with the page, share and full candidate lists
        """
        self._candidates = []
        b = summary.behavior
        pick = self._pick

        prompts_per_chat = (
            round(summary.total_user_messages / summary.total_conversations)
            if summary.total_conversations
            else 0
        )
        has_chaos = any(
            (
                b.spicy_word_count,
                b.broken_count,
                b.wtf_count,
                b.yelling_message_count,
                b.exclaim_burst_message_count,
                b.question_burst_message_count,
            )
        )

        broken_phrases = sorted(
            (
                (phrase, count)
                for phrase, count in (
                    (WHY_BROKEN, b.why_broken_count),
                    (DOESNT_WORK, b.doesnt_work_count),
                )
                if count > 0
            ),
            key=lambda item: -item[1],
        )
        broken_phrase = broken_phrases[0][0] if broken_phrases else DOESNT_WORK
        if b.why_broken_count > 0 and b.doesnt_work_count > 0:
            broken_evidence = (
                f"{quote(WHY_BROKEN)}/{quote(DOESNT_WORK)} "
                f"x {format_count(b.broken_count)}"
            )
        else:
            broken_evidence = (
                f"{quote(broken_phrase)} x "
                f"{format_count(broken_phrases[0][1] if broken_phrases else b.broken_count)}"
            )

        if summary.active_days > 0:
            line1 = pick(
                "You didn't try AI. You built with it.",
                "You didn't try AI. You lived here.",
                "This wasn't curiosity. This was dependency (productive edition).",
            )
            self._add(
                "identity",
                "identity",
                line1,
                30 + score_from_count(summary.active_days) + score_from_length(line1),
                f"{format_count(summary.active_days)} days you showed up.",
            )

        nickname = _top_nickname(summary.nicknames)
        if nickname is not None and nickname.count >= 2:
            if self.include_sensitive:
                line1 = pick(
                    "You gave AI a nickname.",
                    f"Top nickname you gave me: {quote(nickname.phrase)}.",
                    f"You called me {quote(nickname.phrase)}. Then asked for help anyway.",
                )
            else:
                line1 = pick(
                    "You gave AI a nickname.",
                    "You gave me a nickname. We kept it censored.",
                    "You called me something. Then asked for help anyway.",
                )
            self._add(
                "nickname",
                "nickname",
                line1,
                82 + score_from_count(nickname.count) + score_from_length(line1),
                f"({format_count(nickname.count)}x)",
            )

        if b.whiplash_chat_count > 0:
            line1 = pick(
                "You had a moment. Then you recovered. Then you asked again.",
                "You snapped -> apologized -> asked for help anyway.",
                "You got spicy -> apologized -> kept asking anyway.",
            )
            self._add(
                "whiplash",
                "whiplash",
                line1,
                95 + score_from_count(b.whiplash_chat_count) + score_from_length(line1),
                f"({format_count(b.whiplash_chat_count)} chats)",
            )

        if b.please_count >= 10:
            please = quote("please")
            count = format_count(b.please_count)
            line1 = pick(
                f"You said {please} a lot. Manners.",
                f"You said {please} {count} times. Polite... until it didn't work."
                if has_chaos
                else f"You said {please} {count} times. Polite mode stayed on.",
                f"You said {please} {count} times. Then you stopped pretending."
                if has_chaos
                else f"You said {please} {count} times. Polite on purpose.",
            )
            self._add(
                "please",
                "politeness",
                line1,
                70 + score_from_count(b.please_count) + 12 + score_from_length(line1),
                f"({please} x {count})",
            )

        quick_phrases = sorted(
            (
                ("quick question", b.quick_question_count),
                ("real quick", b.real_quick_count),
                ("simple question", b.simple_question_count),
            ),
            key=lambda item: -item[1],
        )
        quick_phrase, quick_count = quick_phrases[0]
        if quick_count > 0:
            line1 = pick(
                f"{quote(quick_phrase)} wasn't quick.",
                f"{quote(quick_phrase)} was never quick.",
                f"{quote(quick_phrase)}. That was a lie.",
            )
            if b.quick_question_chat_count > 0 and b.quick_question_chat_avg_prompts > 0:
                line2 = (
                    f"({format_count(b.quick_question_chat_count)} chats, "
                    f"~{format_count(b.quick_question_chat_avg_prompts)} prompts each)"
                )
            else:
                line2 = f"({quote(quick_phrase)} x {format_count(quick_count)})"
            self._add(
                "quick",
                "quick",
                line1,
                78 + score_from_count(quick_count) + 18 + score_from_length(line1),
                line2,
            )

        if b.step_by_step_count > 0 and b.broken_count > 0:
            step = quote("step by step")
            line1 = pick(
                f"You love {step}. Until it breaks.",
                f"You love {step}... until it's {quote(broken_phrase)}.",
                f"You asked for {step}. Then went straight to {quote(broken_phrase)}.",
            )
            self._add(
                "stepbroken",
                "contradiction",
                line1,
                86
                + score_from_count(b.broken_count)
                + score_from_count(b.step_by_step_count)
                + score_from_length(line1),
                f"({step} x {format_count(b.step_by_step_count)} | {broken_evidence})",
            )

        if b.broken_count >= 3:
            line1 = pick(
                "You hit fix-it mode.",
                f"You went straight to {quote(broken_phrase)}.",
                f"You didn't ask. You accused. ({quote(broken_phrase)})",
            )
            self._add(
                "broken",
                "rage",
                line1,
                84 + score_from_count(b.broken_count) + 18 + score_from_length(line1),
                f"({broken_evidence})",
            )

        if b.wtf_count >= 2:
            wtf = quote("wtf")
            line1 = pick(
                f"You had {wtf} moments.",
                f"You had {wtf} moments. Understandable.",
                f"{wtf} showed up. Repeatedly.",
            )
            self._add(
                "wtf",
                "rage",
                line1,
                80 + score_from_count(b.wtf_count) + 18 + score_from_length(line1),
                f"({wtf} x {format_count(b.wtf_count)})",
            )

        if b.yelling_message_count > 0:
            line1 = pick(
                "CAPS LOCK appeared. Emotion was present.",
                "CAPS LOCK appeared. Emotion was present.",
                "CAPS LOCK appeared. Peace was never an option.",
            )
            self._add(
                "caps",
                "rage",
                line1,
                74 + score_from_count(b.yelling_message_count) + score_from_length(line1),
                f"({format_count(b.yelling_message_count)} times)",
            )

        if b.question_burst_message_count > 0:
            line1 = pick(
                'You hit the "???" key.',
                'You hit the "???" key.',
                'You hit the "???" key like it owed you money.',
            )
            self._add(
                "qburst",
                "rage",
                line1,
                66 + score_from_count(b.question_burst_message_count) + score_from_length(line1),
                f"({format_count(b.question_burst_message_count)} times)",
            )

        if b.exclaim_burst_message_count > 0:
            line1 = pick(
                'You hit the "!!!" key.',
                'You hit the "!!!" key.',
                'You hit the "!!!" key with feeling.',
            )
            self._add(
                "eburst",
                "rage",
                line1,
                64 + score_from_count(b.exclaim_burst_message_count) + score_from_length(line1),
                f"({format_count(b.exclaim_burst_message_count)} times)",
            )

        if b.swear_count > 0:
            line1 = pick(
                "You swore a little. It happens.",
                "You swore a bit. We noticed.",
                "You swore. And then asked for help anyway.",
            )
            self._add(
                "swears",
                "rage",
                line1,
                60 + score_from_count(b.swear_count) + score_from_length(line1),
                f"({format_count(b.swear_count)} times)",
            )

        if prompts_per_chat > 0:
            line1 = pick(
                "You don't ask once. You iterate.",
                "One answer was never enough.",
                "You didn't chat. You negotiated.",
            )
            self._add(
                "iterate",
                "style",
                line1,
                48 + score_from_count(prompts_per_chat) + score_from_length(line1),
                f"(~{format_count(prompts_per_chat)} prompts per chat)",
            )

        if summary.peak_hour is not None:
            late = summary.late_night_percent
            line1 = pick(
                f"Late-night chats: {late}%.",
                f"Late-night chats: {late}%. You spiral offline, apparently.",
                f"Late-night chats: {late}%. Your demons didn't get Wi-Fi.",
            )
            self._add(
                "latenight",
                "rhythm",
                line1,
                44 + score_from_count(late) + score_from_length(line1),
                f"(prime time: {format_hour(summary.peak_hour)})",
            )

        if summary.top_topics:
            top = summary.top_topics[0]
            line1 = pick(*TOPIC_ROASTS.get(top.key, DEFAULT_ROAST))
            self._add(
                "toptopic",
                "topics",
                line1,
                46 + score_from_count(top.count) + score_from_length(line1),
                f"(top vibe: {top.label})",
            )

        if summary.busiest_month:
            month = summary.busiest_month
            line1 = pick(
                f"{month} was your busiest month.",
                f"{month} was unhinged.",
                f"{month} was a cry for help (productive edition).",
            )
            self._add(
                "busiest",
                "rhythm",
                line1,
                38 + score_from_length(line1),
                "(something was happening)",
            )

        if summary.prompt_length_change_percent is not None:
            pct = abs(summary.prompt_length_change_percent)
            longer = summary.prompt_length_change_percent > 0
            line1 = pick(
                "You started adding more detail." if longer else "You got more concise over time.",
                "More context. More control."
                if longer
                else "Early-year: essays. End-of-year: commands.",
                "You started bringing receipts." if longer else "Fewer words. More intent.",
            )
            self._add(
                "growth",
                "growth",
                line1,
                36 + score_from_count(pct) + score_from_length(line1),
                f"(prompts got {pct}% {'longer' if longer else 'shorter'})",
            )

        ranked = sorted(self._candidates, key=lambda c: -c.score)
        result = BangerSet(page=ranked[:PAGE_SIZE], share=self._share(ranked), all=ranked)
        logger.debug(f"Generated {len(ranked)} banger candidates at spice={self.spice.value}")
        return result

    def _share(self, ranked: list[Banger]) -> list[Banger]:
        """Greedy pick of one shareable line per bucket, then fill from unused categories."""
        eligible = [
            c
            for c in ranked
            if c.shareable
            and not (self.spice is SpiceLevel.MILD and c.category in SENSITIVE_CATEGORIES)
        ]

        share: list[Banger] = []
        used: set[str] = set()
        for _bucket, categories in SHARE_BUCKETS:
            choice = next((c for c in eligible if c.category in categories), None)
            if choice is not None:
                share.append(choice)
                used.add(choice.category)

        for candidate in eligible:
            if len(share) >= SHARE_SIZE:
                break
            if candidate.category in used:
                continue
            share.append(candidate)
            used.add(candidate.category)

        return sorted(share[:SHARE_SIZE], key=lambda c: -c.score)


def generate_bangers(
    summary: RewindSummary,
    spice: SpiceLevel = SpiceLevel.SPICY,
    include_sensitive: bool = False,
) -> BangerSet:
    """Convenience wrapper around ``BangerGenerator.generate``."""
    return BangerGenerator(spice=spice, include_sensitive=include_sensitive).generate(summary)
