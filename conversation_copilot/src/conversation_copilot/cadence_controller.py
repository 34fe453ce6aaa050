"""
Guidance / Recommendation Cadence

Decides, per recognized utterance, whether the live-guidance and the
recommendation paths should run, and guards recommendation generation so
only one request is in flight per conversation.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from conversation_copilot.conversation_state import ConversationCounters

logger = logging.getLogger(__name__)


@dataclass
class CadenceDecision:
    """Result of a cadence check for one utterance."""
    run_guidance: bool
    run_recommendation: bool
    reason: str


class CadenceController:
    """
    Modulo-based trigger policy.

    - Guidance every 2nd utterance
    - Recommendation every 4th utterance once the transcript is longer than
      150 characters, only when recommendations are enabled and none is
      already being generated
    """

    GUIDANCE_EVERY = 2
    RECOMMENDATION_EVERY = 4
    MIN_TRANSCRIPT_LENGTH = 150

    def should_trigger_guidance(self, count: int) -> bool:
        return count % self.GUIDANCE_EVERY == 0

    def should_trigger_recommendation(self, count: int, transcript_length: int, enabled: bool) -> bool:
        return (
            enabled
            and count % self.RECOMMENDATION_EVERY == 0
            and transcript_length > self.MIN_TRANSCRIPT_LENGTH
        )

    def evaluate(
        self,
        count: int,
        transcript_length: int,
        counters: ConversationCounters,
        guidance_enabled: bool = True,
        recommendations_enabled: bool = True,
    ) -> CadenceDecision:
        """
        Check both paths for one utterance.

        Args:
            count: Event number of the utterance being handled
            transcript_length: Length of the accumulated transcript
            counters: Session counters (consulted for the in-flight flag)
            guidance_enabled: Whether the guidance path is switched on
            recommendations_enabled: Whether the recommendation path is switched on

        Returns:
            CadenceDecision for this utterance
        """
        run_guidance = guidance_enabled and self.should_trigger_guidance(count)
        run_recommendation = self.should_trigger_recommendation(
            count, transcript_length, recommendations_enabled
        )

        if run_recommendation and counters.is_generating_recommendation:
            logger.info(f"⏳ [CadenceController] Recommendation already in flight - skipping event #{count}")
            return CadenceDecision(
                run_guidance=run_guidance,
                run_recommendation=False,
                reason="recommendation already in flight",
            )

        return CadenceDecision(
            run_guidance=run_guidance,
            run_recommendation=run_recommendation,
            reason=f"event #{count}, transcript {transcript_length} chars",
        )


@contextmanager
def recommendation_slot(counters: ConversationCounters) -> Iterator[bool]:
    """
    Single-slot lock around recommendation generation.

    Yields True when the slot was acquired, False when another generation
    already holds it. The flag is released on every exit path.
    """
    if counters.is_generating_recommendation:
        yield False
        return

    counters.is_generating_recommendation = True
    try:
        yield True
    finally:
        counters.is_generating_recommendation = False
