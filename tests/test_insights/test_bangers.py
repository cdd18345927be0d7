"""
Tests for banger generation.
"""

import pytest

from chatrewind.insights.bangers import (
    PAGE_SIZE,
    SENSITIVE_CATEGORIES,
    BangerGenerator,
    SpiceLevel,
    format_count,
    format_hour,
    generate_bangers,
    is_shareable,
    score_from_count,
    score_from_length,
)
from chatrewind.models.rewind import PhraseInsight, RewindBehavior, RewindSummary, TopicInsight


@pytest.fixture
def chaotic_summary() -> RewindSummary:
    """A year with plenty of profanity, rage and a nickname."""
    return RewindSummary(
        total_conversations=200,
        total_user_messages=800,
        active_days=100,
        busiest_month="March",
        peak_hour=23,
        late_night_percent=40,
        top_topics=[TopicInsight(key="coding", label="Coding & Scripts", emoji="", count=120)],
        nicknames=[PhraseInsight(phrase="toaster", count=9)],
        prompt_length_change_percent=35,
        behavior=RewindBehavior(
            please_count=30,
            swear_count=50,
            spicy_word_count=60,
            why_broken_count=12,
            doesnt_work_count=8,
            broken_count=20,
            wtf_count=10,
            yelling_message_count=5,
            question_burst_message_count=7,
            step_by_step_count=3,
            whiplash_chat_count=4,
            quick_question_count=5,
            quick_question_chat_count=2,
            quick_question_chat_avg_prompts=6,
        ),
    )


@pytest.fixture
def small_summary() -> RewindSummary:
    return RewindSummary(
        total_conversations=10,
        total_user_messages=30,
        active_days=10,
        behavior=RewindBehavior(why_broken_count=5, broken_count=5),
    )


class TestScoring:
    """Tests for scoring and formatting helpers."""

    @pytest.mark.parametrize(
        "count,score", [(0, 0), (1, 8), (4, 8), (5, 12), (20, 20), (799, 32), (2000, 40)]
    )
    def test_score_from_count(self, count, score):
        assert score_from_count(count) == score

    def test_score_from_length(self):
        assert score_from_length("x" * 64) == 10
        assert score_from_length("x" * 65) == 6
        assert score_from_length("x" * 110) == 2
        assert score_from_length("x" * 111) == -6

    def test_is_shareable(self):
        assert is_shareable("x" * 92)
        assert not is_shareable("x" * 93)
        assert is_shareable("x" * 80, "y" * 80)
        assert not is_shareable("x" * 80, "y" * 81)

    def test_formatting(self):
        assert format_count(1234) == "1,234"
        assert format_hour(0) == "12 AM"
        assert format_hour(12) == "12 PM"
        assert format_hour(13) == "1 PM"


class TestRanking:
    """Tests for page, share and candidate lists."""

    def test_empty_summary(self):
        result = generate_bangers(RewindSummary())

        assert result.page == []
        assert result.share == []
        assert result.all == []

    def test_lists_are_ranked(self, chaotic_summary):
        result = generate_bangers(chaotic_summary)
        scores = [b.score for b in result.all]

        assert scores == sorted(scores, reverse=True)
        assert result.page == result.all[:PAGE_SIZE]
        assert len(result.share) == 3
        assert all(b.shareable for b in result.share)
        assert len({b.category for b in result.share}) == 3

    def test_share_takes_one_per_bucket(self, small_summary):
        result = generate_bangers(small_summary, spice=SpiceLevel.SPICY)

        assert [b.id for b in result.share] == ["broken", "iterate", "identity"]
        assert result.share[0].line1 == 'You went straight to "why is this broken".'

    def test_mild_share_without_chaos_bucket(self, small_summary):
        result = generate_bangers(small_summary, spice=SpiceLevel.MILD)

        assert [b.id for b in result.share] == ["iterate", "identity"]

    def test_to_dict(self, small_summary):
        data = generate_bangers(small_summary).to_dict()

        assert set(data) == {"page", "share", "all"}
        assert data["share"][0]["id"] == "broken"


class TestSensitivity:
    """Tests for spice levels and sensitive content."""

    def test_mild_share_excludes_rage_and_nickname(self, chaotic_summary):
        result = generate_bangers(chaotic_summary, spice=SpiceLevel.MILD)

        assert result.share
        assert not {b.category for b in result.share} & {"rage", "nickname"}
        assert not {b.category for b in result.share} & SENSITIVE_CATEGORIES

    def test_nickname_not_quoted_by_default(self, chaotic_summary):
        result = generate_bangers(chaotic_summary, spice=SpiceLevel.SAVAGE)

        nickname = next(b for b in result.all if b.category == "nickname")
        assert "toaster" not in nickname.line1

    def test_nickname_quoted_when_opted_in(self, chaotic_summary):
        result = generate_bangers(chaotic_summary, spice=SpiceLevel.SPICY, include_sensitive=True)

        nickname = next(b for b in result.all if b.category == "nickname")
        assert nickname.line1 == 'Top nickname you gave me: "toaster".'

    def test_mild_ignores_opt_in(self, chaotic_summary):
        generator = BangerGenerator(spice=SpiceLevel.MILD, include_sensitive=True)

        assert not generator.include_sensitive
        assert all("toaster" not in b.line1 for b in generator.generate(chaotic_summary).all)

    def test_phrasing_follows_spice(self, small_summary):
        lines = {
            spice: next(b for b in generate_bangers(small_summary, spice=spice).all if b.id == "identity").line1
            for spice in SpiceLevel
        }

        assert lines[SpiceLevel.MILD] == "You didn't try AI. You built with it."
        assert lines[SpiceLevel.SPICY] == "You didn't try AI. You lived here."
        assert len(set(lines.values())) == 3


class TestEvidence:
    """Tests for the second line of individual candidates."""

    def test_broken_evidence_combines_phrases(self, chaotic_summary):
        result = generate_bangers(chaotic_summary)

        broken = next(b for b in result.all if b.id == "broken")
        assert broken.line2 == '("why is this broken"/"doesn\'t work" x 20)'

    def test_quick_question_chat_average(self, chaotic_summary):
        quick = next(b for b in generate_bangers(chaotic_summary).all if b.id == "quick")

        assert quick.line1 == '"quick question" was never quick.'
        assert quick.line2 == "(2 chats, ~6 prompts each)"

    def test_growth_and_rhythm(self, chaotic_summary):
        by_id = {b.id: b for b in generate_bangers(chaotic_summary).all}

        assert by_id["growth"].line2 == "(prompts got 35% longer)"
        assert by_id["latenight"].line2 == "(prime time: 11 PM)"
        assert by_id["busiest"].line1 == "March was unhinged."
