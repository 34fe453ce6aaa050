"""
Conversation State Data Model

Defines the dataclasses that hold the live state of one advisor/client
conversation: utterances, sentiment, guidance tasks, recommendation alerts
and the per-session counters.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from datetime import datetime


# Shown in the transcript box before anything has been said
TRANSCRIPT_PLACEHOLDER = "Speak to your microphone or copy/paste conversation transcript here"


@dataclass(frozen=True)
class Utterance:
    """One recognized speech segment."""
    text: str
    sequence_number: int


@dataclass
class ConfidenceScores:
    """Per-class confidences reported by the sentiment provider (0-1 each)."""
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"positive": self.positive, "negative": self.negative, "neutral": self.neutral}


@dataclass
class SentimentScore:
    """Sentiment label with its headline score and class confidences."""
    label: str = "neutral"
    score: float = 0.5
    confidence: ConfidenceScores = field(default_factory=ConfidenceScores)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "score": self.score,
            "confidence": self.confidence.to_dict(),
        }


@dataclass
class SentenceSentiment:
    """A single sentence with the sentiment the provider assigned to it."""
    text: str
    sentiment: SentimentScore
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "sentiment": self.sentiment.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class CurrentSentiment:
    """Sentiment of the most recent utterance, replaced on every utterance."""
    text: str = ""
    overall: SentimentScore = field(default_factory=SentimentScore)
    sentences: List[SentenceSentiment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "overall": self.overall.to_dict(),
            "sentences": [s.to_dict() for s in self.sentences],
        }


@dataclass
class RollingSentiment:
    """Aggregate over every sentence seen so far in the conversation."""
    overall: SentimentScore
    all_sentences: List[SentenceSentiment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall.to_dict(),
            "all_sentences": [s.to_dict() for s in self.all_sentences],
        }


@dataclass
class GuidanceTask:
    """One question from the conversation template, addressed or not."""
    id: str
    question_text: str
    status: str  # "pending" or "completed"
    answer_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question_text": self.question_text,
            "status": self.status,
            "answer_text": self.answer_text,
        }


@dataclass
class RecommendationAlert:
    """A generated recommendation surfaced to the advisor as a notification."""
    id: str
    content: str
    priority: str = "medium"
    timestamp: datetime = field(default_factory=datetime.now)
    is_read: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "priority": self.priority,
            "timestamp": self.timestamp.isoformat(),
            "is_read": self.is_read,
        }


@dataclass
class ConversationCounters:
    """Counters that drive the guidance/recommendation cadence."""
    transcript_event_count: int = 0
    is_generating_recommendation: bool = False
