"""
Utterance Ingestion Pipeline

Top-level driver for a live conversation:

1. Each recognized utterance is appended to the transcript and counted
2. The single new utterance is sent for NLP enrichment (fail-open)
3. Sentiment state is updated
4. The cadence controller decides whether live guidance and/or a new
   recommendation should be generated; those passes run as background
   tasks so the next utterance is never blocked

Stopping the conversation runs one final guidance and recommendation pass.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Optional, Set, Awaitable, TypeVar, Dict, Any

from conversation_copilot.cadence_controller import CadenceController, recommendation_slot
from conversation_copilot.conversation_state import (
    CurrentSentiment,
    SentenceSentiment,
)
from conversation_copilot.guidance_parser import GuidanceResponseParser, ParsedGuidance
from conversation_copilot.providers import (
    EnrichmentResult,
    GuidanceProvider,
    InsightProvider,
    NLPEnrichmentProvider,
    RecommendationProvider,
    unavailable_enrichment,
)
from conversation_copilot.recommendation_outcomes import (
    describe_failure,
    interpret_response,
    is_alertable,
    validate_transcript,
)
from conversation_copilot.session_state import ConversationSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConversationPipeline:
    """
    Wires one ConversationSession to its enrichment, guidance and
    recommendation collaborators.
    """

    def __init__(
        self,
        session: ConversationSession,
        enrichment_provider: NLPEnrichmentProvider,
        guidance_provider: GuidanceProvider,
        recommendation_provider: RecommendationProvider,
        insight_provider: Optional[InsightProvider] = None,
        cadence: Optional[CadenceController] = None,
        parser: Optional[GuidanceResponseParser] = None,
        timeout_seconds: Optional[float] = 60.0
    ):
        """
        Args:
            session: State owner for this conversation
            enrichment_provider: NLP enrichment collaborator
            guidance_provider: Live guidance LLM collaborator
            recommendation_provider: Recommendation LLM collaborator
            insight_provider: Custom-prompt collaborator (optional)
            cadence: Trigger policy (default CadenceController)
            parser: Guidance parser (default addressed/unaddressed template)
            timeout_seconds: Per provider call timeout (None disables it)
        """
        self.session = session
        self.enrichment_provider = enrichment_provider
        self.guidance_provider = guidance_provider
        self.recommendation_provider = recommendation_provider
        self.insight_provider = insight_provider
        self.cadence = cadence or CadenceController()
        self.parser = parser or GuidanceResponseParser()
        self.timeout_seconds = timeout_seconds
        self._accepting = True
        self._background_tasks: Set[asyncio.Task] = set()

    # ==================== Session lifecycle ====================

    def start(self) -> None:
        """Begin accepting utterances."""
        self._accepting = True
        self.session.is_recording = True
        logger.info(f"🎙️ [Pipeline] Session {self.session.session_id[:20]} started")

    async def stop(self) -> None:
        """
        Stop accepting utterances and flush: one last guidance pass and one
        last recommendation pass, regardless of the utterance cadence.

        In-flight provider calls are not cancelled; this waits for them.
        Stopping an already stopped session does nothing.
        """
        if not self._accepting:
            logger.info(f"⏸️ [Pipeline] Session {self.session.session_id[:20]} already stopped")
            return

        self._accepting = False
        self.session.is_recording = False
        logger.info(
            f"🛑 [Pipeline] Session {self.session.session_id[:20]} stopped after "
            f"{self.session.counters.transcript_event_count} utterances - running final passes"
        )

        if self.session.guidance_enabled:
            self._dispatch(self.run_guidance(), "final guidance")
        if self.session.recommendations_enabled:
            self._dispatch(self.generate_recommendation(), "final recommendation")

        await self.wait_for_background_tasks()

    @property
    def is_accepting(self) -> bool:
        return self._accepting

    async def wait_for_background_tasks(self) -> None:
        """Wait until every dispatched guidance/recommendation pass has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel outstanding background work and alert timers."""
        for task in list(self._background_tasks):
            task.cancel()
        self.session.alerts.close()

    # ==================== Utterance handling ====================

    async def on_utterance_recognized(self, utterance_text: str) -> None:
        """
        Handle one recognized utterance. Never raises on provider failure.

        Args:
            utterance_text: Recognized speech text (empty/no-match is ignored)
        """
        if not self._accepting:
            logger.warning(f"⚠️ [Pipeline] Session {self.session.session_id[:20]} is stopped - utterance dropped")
            return

        if not utterance_text or not utterance_text.strip():
            logger.debug("[Pipeline] Empty or no-match recognition event ignored")
            return

        text = utterance_text.strip()
        utterance = self.session.append_utterance(text)
        logger.info(
            f"🗣️ [Pipeline] Utterance #{utterance.sequence_number} "
            f"({len(text)} chars, transcript {len(self.session.transcript)} chars)"
        )

        enrichment = await self._enrich(text)
        self.session.append_nlp_panels(enrichment)
        self._apply_sentiment(text, enrichment)

        decision = self.cadence.evaluate(
            count=utterance.sequence_number,
            transcript_length=len(self.session.transcript),
            counters=self.session.counters,
            guidance_enabled=self.session.guidance_enabled,
            recommendations_enabled=self.session.recommendations_enabled,
        )
        if decision.run_recommendation:
            self._dispatch(self.generate_recommendation(), "recommendation")
        if decision.run_guidance:
            self._dispatch(self.run_guidance(), "guidance")

    async def _enrich(self, text: str) -> EnrichmentResult:
        start_time = time.time()
        try:
            result = await self._call(self.enrichment_provider.enrich(text))
        except Exception as e:
            elapsed = time.time() - start_time
            logger.error(f"❌ [Pipeline] Enrichment failed after {elapsed:.2f}s: {e} - using unavailable result")
            return unavailable_enrichment()

        if result is None:
            return unavailable_enrichment()
        return result

    def _apply_sentiment(self, text: str, enrichment: EnrichmentResult) -> None:
        analysis = enrichment.sentiment
        if analysis is None:
            return

        self.session.current_sentiment = CurrentSentiment(
            text=text,
            overall=analysis.overall,
            sentences=list(analysis.sentences),
        )

        # One utterance contributes its first sentence to the rolling aggregate
        if analysis.sentences:
            first = analysis.sentences[0]
            self.session.sentiment.append_sentence(
                SentenceSentiment(text=first.text, sentiment=first.sentiment, timestamp=datetime.now())
            )

    # ==================== Guidance path ====================

    async def run_guidance(self) -> Optional[ParsedGuidance]:
        """
        Re-evaluate the question template against the full transcript and
        replace the task lists. On provider failure the previous lists stay.
        """
        transcript = self.session.transcript
        start_time = time.time()
        try:
            raw_text = await self._call(
                self.guidance_provider.generate_guidance(transcript, self.session.question_template)
            )
        except Exception as e:
            elapsed = time.time() - start_time
            logger.error(f"❌ [Pipeline] Live guidance failed after {elapsed:.2f}s: {e}")
            return None

        parsed = self.parser.parse(raw_text or "")
        self.session.set_guidance(
            completed=parsed.completed,
            pending=parsed.pending,
            completed_text=parsed.sections.completed_text if parsed.sections else "",
            pending_text=parsed.sections.pending_text if parsed.sections else "",
        )
        logger.info(
            f"📋 [Pipeline] Guidance updated: {len(parsed.completed)} addressed, "
            f"{len(parsed.pending)} pending"
        )
        return parsed

    # ==================== Recommendation path ====================

    async def generate_recommendation(self) -> Optional[str]:
        """
        Produce a recommendation for the full transcript.

        Returns:
            The recommendation state text, or None when another generation
            was already in flight.
        """
        with recommendation_slot(self.session.counters) as acquired:
            if not acquired:
                logger.info("⏳ [Pipeline] Recommendation already being generated - skipping")
                return None

            transcript = self.session.transcript
            check = validate_transcript(transcript)
            if not check.ok:
                logger.info("📝 [Pipeline] Transcript not ready for recommendations")
                self.session.recommendation = check.message
                return check.message

            start_time = time.time()
            try:
                raw_text = await self._call(self.recommendation_provider.generate_recommendation(transcript))
            except Exception as e:
                elapsed = time.time() - start_time
                logger.error(f"❌ [Pipeline] Recommendation failed after {elapsed:.2f}s: {e}")
                self.session.recommendation = describe_failure(e)
                return self.session.recommendation

            recommendation_text = interpret_response(raw_text)
            self.session.recommendation = recommendation_text

        if is_alertable(recommendation_text):
            self.session.alerts.record(recommendation_text)
        else:
            logger.info("⏸️ [Pipeline] Recommendation is a waiting/error state - no alert")
        return recommendation_text

    # ==================== Custom insights ====================

    async def run_custom_prompt(self, custom_prompt: str) -> str:
        """Run an advisor-written instruction over the transcript."""
        if self.insight_provider is None:
            self.session.insights_output = "Custom insights are not configured for this session."
            return self.session.insights_output

        try:
            text = await self._call(
                self.insight_provider.complete_custom_prompt(self.session.transcript, custom_prompt)
            )
            self.session.insights_output = (text or "").replace("\n\n", "", 1)
        except Exception as e:
            logger.error(f"❌ [Pipeline] Custom prompt failed: {e}")
            self.session.insights_output = f"Error occurred while generating insights: {e}"
        return self.session.insights_output

    def set_template(self, question_template: str) -> None:
        """Replace the question list checked by the next guidance pass."""
        self.session.question_template = question_template
        logger.info(f"📝 [Pipeline] Question template replaced ({len(question_template)} chars)")

    def snapshot(self) -> Dict[str, Any]:
        state = self.session.snapshot()
        state["is_accepting"] = self._accepting
        state["background_tasks"] = len(self._background_tasks)
        return state

    # ==================== Helpers ====================

    async def _call(self, awaitable: Awaitable[T]) -> T:
        if self.timeout_seconds is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)

    def _dispatch(self, coro, name: str) -> asyncio.Task:
        """Run a pass in the background and keep a handle to it."""
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(lambda t: self._on_task_done(t, name))
        logger.debug(f"🚀 [Pipeline] Dispatched {name} pass")
        return task

    def _on_task_done(self, task: asyncio.Task, name: str) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            logger.info(f"🛑 [Pipeline] {name} pass cancelled")
        elif task.exception() is not None:
            logger.error(f"❌ [Pipeline] {name} pass crashed: {task.exception()}")
