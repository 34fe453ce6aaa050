"""
Collaborator Contracts

Narrow interfaces for the external NLP and generative-AI services the
conversation pipeline calls. Implementations live in openai_providers.py;
tests pass in-memory fakes.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Protocol

from conversation_copilot.conversation_state import SentenceSentiment, SentimentScore

NO_KEY_PHRASES = "NoKP"
NO_ENTITIES = "NoEnt"
NO_PII = "NoPII"


@dataclass
class SentimentAnalysis:
    """Document-level sentiment plus per-sentence results for one utterance."""
    overall: SentimentScore
    sentences: List[SentenceSentiment] = field(default_factory=list)


@dataclass
class EnrichmentResult:
    """NLP enrichment of a single utterance."""
    key_phrases: str
    entities: str
    pii_redacted: str
    sentiment: Optional[SentimentAnalysis] = None

    @property
    def is_unavailable(self) -> bool:
        return self.key_phrases == NO_KEY_PHRASES and self.entities == NO_ENTITIES


def unavailable_enrichment() -> EnrichmentResult:
    """Sentinel substituted when the enrichment provider fails."""
    return EnrichmentResult(key_phrases=NO_KEY_PHRASES, entities=NO_ENTITIES, pii_redacted=NO_PII)


class NLPEnrichmentProvider(Protocol):
    async def enrich(self, utterance_text: str) -> EnrichmentResult:
        """Key phrases, entities, PII redaction and sentiment for one utterance."""
        ...


class GuidanceProvider(Protocol):
    async def generate_guidance(self, full_transcript: str, question_template: str) -> str:
        """Free-text addressed/unaddressed answer for the question template."""
        ...


class RecommendationProvider(Protocol):
    async def generate_recommendation(self, full_transcript: str) -> str:
        """Free-text investment recommendation for the whole conversation."""
        ...


class InsightProvider(Protocol):
    async def complete_custom_prompt(self, full_transcript: str, custom_prompt: str) -> str:
        """Answer an advisor-written instruction over the transcript."""
        ...
