"""
Rolling Sentiment Aggregation

Folds per-sentence sentiment results into a conversation-wide aggregate.

Algorithm:
- Average the positive/negative/neutral confidences over all sentences
- Positive wins if its mean beats both others
- Negative wins if its mean beats both others
- Otherwise, if positive and negative are within 0.1 of each other -> mixed
- Otherwise neutral
"""

import logging
from typing import Optional, List

from conversation_copilot.conversation_state import (
    ConfidenceScores,
    RollingSentiment,
    SentenceSentiment,
    SentimentScore,
)

logger = logging.getLogger(__name__)


def default_sentiment() -> SentimentScore:
    """Neutral score reported before any sentence has been seen."""
    return SentimentScore(
        label="neutral",
        score=0.5,
        confidence=ConfidenceScores(positive=0.33, negative=0.33, neutral=0.34),
    )


class SentimentAggregator:
    """
    Owns the append-only sentence list and recomputes the rolling overall
    sentiment from the full list on every append.
    """

    # Positive/negative means closer than this are reported as mixed
    MIXED_THRESHOLD = 0.1

    def __init__(self, max_sentences: Optional[int] = None):
        """
        Args:
            max_sentences: Optional cap on retained sentences (None = unbounded).
                Appends beyond the cap are refused, never evicting history.
        """
        self.max_sentences = max_sentences
        self._sentences: List[SentenceSentiment] = []
        self._overall = default_sentiment()

    @property
    def sentence_count(self) -> int:
        return len(self._sentences)

    def append_sentence(self, sentence: SentenceSentiment) -> RollingSentiment:
        """
        Add one sentence and recompute the rolling aggregate.

        Args:
            sentence: Sentence text with its provider sentiment

        Returns:
            Snapshot of the updated RollingSentiment
        """
        if self.max_sentences is not None and len(self._sentences) >= self.max_sentences:
            logger.warning(
                f"⚠️ [SentimentAggregator] Sentence cap ({self.max_sentences}) reached - "
                "keeping previous aggregate"
            )
            return self.snapshot()

        self._sentences.append(sentence)
        self._overall = self.compute_overall(self._sentences)
        logger.debug(
            f"📈 [SentimentAggregator] {len(self._sentences)} sentences -> "
            f"{self._overall.label} ({self._overall.score:.2f})"
        )
        return self.snapshot()

    def snapshot(self) -> RollingSentiment:
        """Read-only copy of the current rolling sentiment."""
        return RollingSentiment(
            overall=SentimentScore(
                label=self._overall.label,
                score=self._overall.score,
                confidence=ConfidenceScores(**self._overall.confidence.to_dict()),
            ),
            all_sentences=list(self._sentences),
        )

    @classmethod
    def compute_overall(cls, sentences: List[SentenceSentiment]) -> SentimentScore:
        """
        Deterministic aggregate of a sentence list.

        Args:
            sentences: All sentences seen so far (may be empty)

        Returns:
            SentimentScore carrying the label, headline score and mean confidences
        """
        if not sentences:
            return default_sentiment()

        count = len(sentences)
        avg_positive = sum(s.sentiment.confidence.positive for s in sentences) / count
        avg_negative = sum(s.sentiment.confidence.negative for s in sentences) / count
        avg_neutral = sum(s.sentiment.confidence.neutral for s in sentences) / count

        # Order matters: mixed only breaks positive/negative near-ties
        if avg_positive > avg_negative and avg_positive > avg_neutral:
            label, score = "positive", avg_positive
        elif avg_negative > avg_positive and avg_negative > avg_neutral:
            label, score = "negative", avg_negative
        elif abs(avg_positive - avg_negative) < cls.MIXED_THRESHOLD:
            label, score = "mixed", (avg_positive + avg_negative) / 2
        else:
            label, score = "neutral", avg_neutral

        return SentimentScore(
            label=label,
            score=score,
            confidence=ConfidenceScores(
                positive=avg_positive,
                negative=avg_negative,
                neutral=avg_neutral,
            ),
        )
