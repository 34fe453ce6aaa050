"""
Session State Data Model

Defines the ConversationSession dataclass: the single owner of all mutable
state for one live conversation.
"""

import json
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from datetime import datetime

from conversation_copilot.conversation_state import (
    ConversationCounters,
    CurrentSentiment,
    GuidanceTask,
    Utterance,
)
from conversation_copilot.conversation_templates import DEFAULT_TEMPLATE
from conversation_copilot.providers import EnrichmentResult
from conversation_copilot.recommendation_alerts import RecommendationAlertManager
from conversation_copilot.sentiment_aggregator import SentimentAggregator

# Panel fragments no longer than these carry only their label, not content
MIN_ENTITY_CHARS = 12
MIN_KEY_PHRASE_CHARS = 15
MIN_PII_CHARS = 21


@dataclass
class ConversationSession:
    """Live state of one advisor/client conversation."""
    session_id: str
    question_template: str = DEFAULT_TEMPLATE
    guidance_enabled: bool = True
    recommendations_enabled: bool = True
    max_transcript_chars: Optional[int] = None
    transcript: str = ""
    is_recording: bool = False
    counters: ConversationCounters = field(default_factory=ConversationCounters)
    current_sentiment: CurrentSentiment = field(default_factory=CurrentSentiment)
    sentiment: SentimentAggregator = field(default_factory=SentimentAggregator)
    alerts: RecommendationAlertManager = field(default_factory=RecommendationAlertManager)
    # Guidance output, replaced wholesale on every guidance pass
    completed_tasks: List[GuidanceTask] = field(default_factory=list)
    pending_tasks: List[GuidanceTask] = field(default_factory=list)
    guidance_completed_text: str = ""
    guidance_pending_text: str = ""
    recommendation: str = ""
    insights_output: str = ""
    # Accumulated NLP panels
    key_phrases_text: str = ""
    entities_text: str = ""
    pii_text: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    last_updated: datetime = field(default_factory=datetime.now)

    def append_utterance(self, text: str) -> Utterance:
        """Add a recognized utterance to the transcript and count it."""
        self.transcript = f"{self.transcript}\n{text}" if self.transcript else text
        if self.max_transcript_chars is not None and len(self.transcript) > self.max_transcript_chars:
            # Keep the most recent part of the conversation
            self.transcript = self.transcript[-self.max_transcript_chars:]
        self.counters.transcript_event_count += 1
        self.last_updated = datetime.now()
        return Utterance(text=text, sequence_number=self.counters.transcript_event_count)

    def append_nlp_panels(self, enrichment: EnrichmentResult) -> None:
        """Accumulate key phrases, entities and PII for the side panels."""
        if len(enrichment.entities) > MIN_ENTITY_CHARS:
            self.entities_text += enrichment.entities

        key_phrases = json.dumps(enrichment.key_phrases)
        if len(key_phrases) > MIN_KEY_PHRASE_CHARS:
            self.key_phrases_text += "\n" + key_phrases

        if len(enrichment.pii_redacted) > MIN_PII_CHARS:
            self.pii_text += "\n" + enrichment.pii_redacted

    def set_guidance(
        self,
        completed: List[GuidanceTask],
        pending: List[GuidanceTask],
        completed_text: str = "",
        pending_text: str = "",
    ) -> None:
        self.completed_tasks = list(completed)
        self.pending_tasks = list(pending)
        self.guidance_completed_text = completed_text
        self.guidance_pending_text = pending_text
        self.last_updated = datetime.now()

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view of the session for the UI layer."""
        return {
            "session_id": self.session_id,
            "is_recording": self.is_recording,
            "transcript": self.transcript,
            "transcript_event_count": self.counters.transcript_event_count,
            "is_generating_recommendation": self.counters.is_generating_recommendation,
            "guidance_enabled": self.guidance_enabled,
            "recommendations_enabled": self.recommendations_enabled,
            "question_template": self.question_template,
            "sentiment": {
                "current": self.current_sentiment.to_dict(),
                "rolling": self.sentiment.snapshot().to_dict(),
            },
            "guidance": {
                "completed": [t.to_dict() for t in self.completed_tasks],
                "pending": [t.to_dict() for t in self.pending_tasks],
            },
            "recommendation": self.recommendation,
            "alerts": self.alerts.to_dict(),
            "insights_output": self.insights_output,
            "nlp": {
                "key_phrases": self.key_phrases_text,
                "entities": self.entities_text,
                "pii": self.pii_text,
            },
            "created_at": self.created_at.isoformat(),
            "last_updated": self.last_updated.isoformat(),
        }
