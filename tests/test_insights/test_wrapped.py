"""
Tests for the wrapped narrative generator.
"""

from typing import Optional

import pytest

from chatrewind.insights.wrapped import FORECASTS, WrappedGenerator, build_wrapped
from chatrewind.models.rewind import (
    ConversationSummary,
    RewindBehavior,
    RewindSummary,
    TopicInsight,
)


def conversation(id: str, month: Optional[str] = "2025-06", **fields) -> ConversationSummary:
    """ConversationSummary with neutral defaults."""
    values = dict(
        id=id,
        topic_key=None,
        theme_key=None,
        month=month,
        started_at=f"{month}-15T12:00:00+00:00" if month else None,
        description="Chatting about whatever came up",
        user_messages=2,
        avg_prompt_chars=20,
        max_prompt_chars=30,
        duration_minutes=None,
        intent="other",
        deliverable="other",
        mood="neutral",
    )
    values.update(fields)
    return ConversationSummary(**values)


def many(prefix: str, count: int, **fields) -> list[ConversationSummary]:
    return [conversation(f"{prefix}-{i}", **fields) for i in range(count)]


def rewind(conversations=(), top_topic: Optional[str] = None, now=None, **fields) -> RewindSummary:
    conversations = list(conversations)
    values = dict(
        total_conversations=len(conversations),
        total_user_messages=sum(c.user_messages for c in conversations),
        conversations=conversations,
        top_topics=[TopicInsight(key=top_topic, label=top_topic, emoji="", count=1)]
        if top_topic
        else [],
        generated_at=now.isoformat() if now else None,
    )
    values.update(fields)
    return RewindSummary(**values)


class TestProjects:
    """Tests for project clustering, intensity and status."""

    @pytest.fixture
    def projects(self, now):
        conversations = (
            many("web", 3, theme_key="web_app", stack=["React"], month="2025-12")
            + many("auto", 2, theme_key="automation", month="2025-03", win_signals=2, friction_signals=1)
            + many("essay", 6, topic_key="writing", month="2025-02", friction_signals=2)
            + many("study", 2, intent="learn", month="2025-01")
            + many("game", 1, theme_key="game")
            + many("rant", 3, intent="vent")
        )
        return WrappedGenerator(now=now).generate(rewind(conversations)).projects

    def test_clusters(self, projects):
        assert [p.name for p in projects] == [
            "Writing & Storytelling",
            "A web app (React)",
            "An automation",
            "Study sessions",
        ]

    def test_status(self, projects):
        status = {p.name: p.status for p in projects}

        assert status == {
            "Writing & Storytelling": "abandoned",
            "A web app (React)": "recurring",
            "An automation": "shipped",
            "Study sessions": "unknown",
        }

    def test_fields(self, projects):
        web = projects[1]

        assert web.theme_key == "web_app"
        assert web.stack_term == "React"
        assert web.chats == 3
        assert web.messages == 6
        assert web.months_active == 1
        assert web.first_month == web.last_month == "2025-12"
        assert projects[0].intensity == "steady"
        assert web.intensity == "light"

    def test_obsessive(self, now):
        projects = build_wrapped(rewind(many("py", 15, topic_key="coding", stack=["Git", "Python"])), now=now).projects

        assert projects[0].intensity == "obsessive"
        assert projects[0].name == "Coding & Scripts (Python)"

    def test_capped(self, now):
        themes = ["web_app", "mobile_app", "data_pipeline", "automation", "job_hunt", "side_business", "fitness"]
        conversations = [c for theme in themes for c in many(theme, 2, theme_key=theme)]

        assert len(build_wrapped(rewind(conversations), now=now).projects) == 5


class TestBossFightsAndWins:
    """Tests for recurring friction and wins."""

    def test_boss_fights_ranked(self, now):
        behavior = RewindBehavior(broken_count=3, wtf_count=1, again_still_count=2, indecision_count=5)

        fights = build_wrapped(rewind(behavior=behavior), now=now).boss_fights

        assert [(f.key, f.count) for f in fights] == [
            ("indecision", 5),
            ("trouble", 4),
            ("again_still", 2),
        ]

    def test_no_boss_fights_without_friction(self, now):
        assert build_wrapped(rewind(), now=now).boss_fights == []

    def test_wins(self, now):
        conversations = [
            conversation("a", intent="debug", comeback=True, win_signals=1, friction_signals=1),
            conversation("b", intent="build", mood="flow", win_signals=2),
        ]

        wins = build_wrapped(rewind(conversations), now=now).wins

        assert [(w.key, w.count) for w in wins] == [("signals", 3), ("comebacks", 1), ("flow", 1)]

    def test_comeback_picks_biggest_struggle(self, now):
        conversations = [
            conversation("small", comeback=True, friction_signals=1, win_signals=1),
            conversation("big", comeback=True, friction_signals=4, win_signals=1, excerpt="ugh"),
            conversation("none", friction_signals=9),
        ]

        comeback = build_wrapped(rewind(conversations), now=now).comeback

        assert comeback.conversation_id == "big"
        assert comeback.friction == 4
        assert comeback.excerpt == "ugh"


class TestTimeline:
    """Tests for month-level extremes."""

    def test_extremes(self, now):
        conversations = (
            many("may", 10, month="2025-05", win_signals=1)
            + many("jul", 10, month="2025-07", friction_signals=2)
            + many("aug", 2, month="2025-08", indecision_signals=1)
            + many("sep", 3, month="2025-09", win_signals=1)
        )

        timeline = build_wrapped(rewind(conversations, longest_streak_days=4), now=now).timeline

        assert timeline.flow_months == ["2025-05"]
        assert timeline.friction_months == ["2025-07"]
        assert timeline.villain_month == "2025-07"
        assert timeline.villain_score == 70
        assert timeline.indecision_month == "2025-08"
        assert timeline.longest_streak_days == 4

    def test_no_villain_without_friction(self, now):
        timeline = build_wrapped(rewind(many("calm", 12, win_signals=1)), now=now).timeline

        assert timeline.villain_month is None
        assert timeline.indecision_month is None


class TestPersona:
    """Tests for weird stack, archetype, forecast and closing line."""

    def test_weird_stack(self, now):
        conversations = many("c", 2, stack=["COBOL"]) + many("l", 2, stack=["Lua", "Python"])

        assert build_wrapped(rewind(conversations), now=now).weird_stack == "COBOL"

    def test_builder(self, now):
        conversations = [
            c for theme in ("web_app", "automation", "game") for c in many(theme, 2, theme_key=theme)
        ]

        archetype = build_wrapped(rewind(conversations, top_topic="coding"), now=now).archetype

        assert archetype.key == "builder"

    def test_debugger(self, now):
        summary = rewind(
            top_topic="coding", total_conversations=4, behavior=RewindBehavior(broken_count=10)
        )

        assert build_wrapped(summary, now=now).archetype.key == "debugger"

    def test_tinkerer(self, now):
        summary = rewind(top_topic="coding", total_conversations=100, behavior=RewindBehavior(broken_count=10))

        assert build_wrapped(summary, now=now).archetype.key == "tinkerer"

    @pytest.mark.parametrize(
        "topic,key", [("travel", "explorer"), ("writing", "editor"), (None, "generalist")]
    )
    def test_topic_archetypes(self, now, topic, key):
        summary = rewind(top_topic=topic, total_conversations=1)

        assert build_wrapped(summary, now=now).archetype.key == key

    def test_no_archetype_when_empty(self, now):
        wrapped = build_wrapped(rewind(), now=now)

        assert wrapped.archetype is None
        assert wrapped.closing_line is None
        assert wrapped.forecast == []
        assert wrapped.projects == []
        assert wrapped.comeback is None

    def test_forecast_uses_recent_quarter(self, now):
        conversations = (
            many("recent", 2, month="2025-12", intent="debug", theme_key="web_app")
            + many("recent-build", 1, month="2025-11", intent="build")
            + many("old", 5, month="2025-01", intent="plan", theme_key="trip")
        )
        summary = rewind(conversations, behavior=RewindBehavior(broken_count=1))

        forecast = build_wrapped(summary, now=now).forecast

        assert forecast == [
            FORECASTS["debug"],
            "A web app is not done with you yet.",
            "Sequel incoming: things that refused to work.",
        ]

    def test_closing_line(self, now):
        summary = rewind(top_topic="travel", total_conversations=1, behavior=RewindBehavior(wtf_count=2))

        closing = build_wrapped(summary, now=now).closing_line

        assert closing == "The Explorer: survived things that refused to work and kept going."


class TestHighlights:
    """Tests for life highlights, rabbit holes and best moments."""

    def test_life_highlight_quotes_lead_chat(self, now):
        conversations = [
            conversation("t1", topic_key="travel", user_messages=4, title="Lisbon in May", excerpt="flights?"),
            conversation("t2", topic_key="travel", user_messages=2),
        ]

        highlights = build_wrapped(rewind(conversations), now=now).life_highlights

        assert len(highlights) == 1
        travel = highlights[0]
        assert travel.type == "travel"
        assert travel.title == "Lisbon in May"
        assert travel.line == "You planned a trip across 2 chats."
        assert travel.excerpt == "flights?"

    def test_rabbit_holes(self, now):
        conversations = [
            conversation("deep", user_messages=25, description="Debugging code"),
            conversation("shallow", user_messages=19),
        ]

        holes = build_wrapped(rewind(conversations), now=now).rabbit_holes

        assert [(h.title, h.line, h.count) for h in holes] == [("Debugging code", "25 prompts deep.", 25)]

    def test_best_moments(self, now):
        conversations = [
            conversation("back", comeback=True, win_signals=1, friction_signals=1),
            conversation("flow", mood="flow", win_signals=2),
            conversation("meh", win_signals=3),
        ]

        moments = build_wrapped(rewind(conversations), now=now).best_moments

        assert [m.type for m in moments] == ["flow", "comeback"]


class TestAnchor:
    """Tests for the reference time."""

    def test_defaults_to_generated_at(self, now):
        summary = rewind(many("web", 3, theme_key="web_app", month="2025-12"), now=now)

        assert build_wrapped(summary).to_dict() == build_wrapped(summary, now=now).to_dict()
        assert build_wrapped(summary).projects[0].status == "recurring"
