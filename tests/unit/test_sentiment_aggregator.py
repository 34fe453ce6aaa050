"""
Unit Tests for Sentiment Aggregator

Tests the rolling sentiment rule and ownership of the sentence list.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "conversation_copilot", "src"))

from conversation_copilot.conversation_state import ConfidenceScores, SentenceSentiment, SentimentScore
from conversation_copilot.sentiment_aggregator import SentimentAggregator, default_sentiment


def make_sentence(positive: float, negative: float, neutral: float, text: str = "sentence") -> SentenceSentiment:
    return SentenceSentiment(
        text=text,
        sentiment=SentimentScore(
            label="neutral",
            score=max(positive, negative, neutral),
            confidence=ConfidenceScores(positive=positive, negative=negative, neutral=neutral),
        ),
    )


class TestSentimentAggregator:
    """Test suite for SentimentAggregator."""

    @pytest.fixture
    def aggregator(self):
        return SentimentAggregator()

    def test_empty_aggregate_is_default_neutral(self, aggregator):
        rolling = aggregator.snapshot()

        assert rolling.overall.label == "neutral"
        assert rolling.overall.score == 0.5
        assert rolling.overall.confidence.to_dict() == {"positive": 0.33, "negative": 0.33, "neutral": 0.34}
        assert rolling.all_sentences == []

    def test_compute_overall_of_empty_list_matches_default(self):
        assert SentimentAggregator.compute_overall([]) == default_sentiment()

    def test_positive_dominant(self, aggregator):
        rolling = aggregator.append_sentence(make_sentence(0.8, 0.1, 0.1))

        assert rolling.overall.label == "positive"
        assert rolling.overall.score == pytest.approx(0.8)

    def test_negative_dominant(self, aggregator):
        rolling = aggregator.append_sentence(make_sentence(0.1, 0.7, 0.2))

        assert rolling.overall.label == "negative"
        assert rolling.overall.score == pytest.approx(0.7)

    def test_tied_positive_negative_is_mixed(self, aggregator):
        """Positive and negative tied above neutral -> mixed with their average."""
        rolling = aggregator.append_sentence(make_sentence(0.4, 0.4, 0.2))

        assert rolling.overall.label == "mixed"
        assert rolling.overall.score == pytest.approx(0.4)

    def test_close_positive_negative_beats_neutral_label(self, aggregator):
        """Mixed is checked before neutral even when neutral has the highest mean."""
        rolling = aggregator.append_sentence(make_sentence(0.3, 0.25, 0.45))

        assert rolling.overall.label == "mixed"
        assert rolling.overall.score == pytest.approx(0.275)

    def test_neutral_when_gap_is_wide(self, aggregator):
        rolling = aggregator.append_sentence(make_sentence(0.3, 0.05, 0.65))

        assert rolling.overall.label == "neutral"
        assert rolling.overall.score == pytest.approx(0.65)

    def test_averages_over_all_sentences(self, aggregator):
        aggregator.append_sentence(make_sentence(0.9, 0.05, 0.05))
        rolling = aggregator.append_sentence(make_sentence(0.1, 0.8, 0.1))

        assert len(rolling.all_sentences) == 2
        assert rolling.overall.confidence.positive == pytest.approx(0.5)
        assert rolling.overall.confidence.negative == pytest.approx(0.425)
        assert rolling.overall.confidence.neutral == pytest.approx(0.075)
        # 0.5 vs 0.425 is within 0.1 but positive still beats both others
        assert rolling.overall.label == "positive"

    def test_sentence_count_never_decreases(self, aggregator):
        counts = []
        for i in range(5):
            aggregator.append_sentence(make_sentence(0.2, 0.2, 0.6, text=f"s{i}"))
            counts.append(aggregator.sentence_count)

        assert counts == [1, 2, 3, 4, 5]

    def test_snapshot_is_a_copy(self, aggregator):
        aggregator.append_sentence(make_sentence(0.6, 0.2, 0.2))

        rolling = aggregator.snapshot()
        rolling.all_sentences.clear()
        rolling.overall.label = "negative"

        assert aggregator.sentence_count == 1
        assert aggregator.snapshot().overall.label == "positive"

    def test_sentence_cap_refuses_appends(self):
        aggregator = SentimentAggregator(max_sentences=2)
        aggregator.append_sentence(make_sentence(0.8, 0.1, 0.1, text="a"))
        aggregator.append_sentence(make_sentence(0.8, 0.1, 0.1, text="b"))

        rolling = aggregator.append_sentence(make_sentence(0.0, 1.0, 0.0, text="c"))

        assert [s.text for s in rolling.all_sentences] == ["a", "b"]
        assert rolling.overall.label == "positive"
