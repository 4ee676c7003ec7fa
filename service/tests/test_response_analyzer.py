"""
Tests for keyword analysis of advisor replies.
"""

import pytest

from lenddesk.services.response_analyzer import DEFAULT_NEXT_STEPS, KeywordResponseAnalyzer


@pytest.fixture
def analyzer():
    return KeywordResponseAnalyzer()


class TestSuggestedActions:

    def test_schedule_call(self, analyzer):
        actions = analyzer.extract_suggested_actions(
            "I can set up an appointment with one of our officers.", "hello"
        )
        assert [a.type for a in actions] == ["schedule_call"]
        assert actions[0].description == "Schedule consultation call with loan officer"

    def test_user_text_counts_too(self, analyzer):
        actions = analyzer.extract_suggested_actions("Sure.", "How do I apply?")
        assert [a.type for a in actions] == ["create_task"]

    def test_multiple_rules_in_fixed_order(self, analyzer):
        reply = "This deal is complex. I'll send you information and we can schedule a call."
        actions = analyzer.extract_suggested_actions(reply, "")
        assert [a.type for a in actions] == ["schedule_call", "send_email", "escalate"]

    def test_no_keywords(self, analyzer):
        assert analyzer.extract_suggested_actions("Thanks!", "ok") == []


class TestNextSteps:

    def test_numbered_and_bulleted_lines(self, analyzer):
        reply = (
            "Here is what we need:\n"
            "1. Upload the **rent roll**\n"
            "2) Share two months of bank statements\n"
            "- Book a call with your loan officer\n"
            "* Sign the term sheet\n"
        )
        assert analyzer.extract_next_steps(reply) == [
            "Upload the rent roll",
            "Share two months of bank statements",
            "Book a call with your loan officer",
        ]

    def test_defaults_when_no_list(self, analyzer):
        assert analyzer.extract_next_steps("Rates start around 7.5% today.") == DEFAULT_NEXT_STEPS

    def test_years_are_not_list_items(self, analyzer):
        """A sentence that starts with a number but no list marker is not a step."""
        assert analyzer.extract_next_steps("2024 was a big year for DSCR.") == DEFAULT_NEXT_STEPS


class TestConfidence:

    def test_base_for_mid_length_reply(self, analyzer):
        reply = "x" * 100
        assert analyzer.calculate_confidence(reply, "hello there") == pytest.approx(0.7)

    def test_loan_keywords_raise(self, analyzer):
        reply = "x" * 100
        assert analyzer.calculate_confidence(reply, "What rate on a DSCR loan?") == pytest.approx(0.85)

    def test_hedging_lowers(self, analyzer):
        reply = "I'm not sure, maybe we could look at a bridge product for this one."
        assert analyzer.calculate_confidence(reply, "hi") == pytest.approx(0.5)

    def test_long_reply_raises_short_reply_lowers(self, analyzer):
        assert analyzer.calculate_confidence("y" * 201, "hi") == pytest.approx(0.8)
        assert analyzer.calculate_confidence("Okay.", "hi") == pytest.approx(0.6)

    def test_clamped(self, analyzer):
        many_keywords = "loan rate dscr flip bridge commercial financing mortgage"
        assert analyzer.calculate_confidence("z" * 300, many_keywords) == 0.95

        hedge_everything = "not sure maybe i think might be i don't know"
        assert analyzer.calculate_confidence(hedge_everything, "") == 0.1
