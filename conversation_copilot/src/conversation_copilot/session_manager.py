"""
Session Manager

Keeps the live conversations of this process in memory, one
ConversationPipeline (and its ConversationSession) per session id.
"""

import logging
import uuid
from typing import Optional, Dict, List

from conversation_copilot.config import CopilotSettings
from conversation_copilot.conversation_templates import DEFAULT_TEMPLATE
from conversation_copilot.ingestion_pipeline import ConversationPipeline
from conversation_copilot.providers import (
    GuidanceProvider,
    InsightProvider,
    NLPEnrichmentProvider,
    RecommendationProvider,
)
from conversation_copilot.recommendation_alerts import RecommendationAlertManager
from conversation_copilot.sentiment_aggregator import SentimentAggregator
from conversation_copilot.session_state import ConversationSession

logger = logging.getLogger(__name__)


class SessionManager:
    """
    In-memory registry of conversation pipelines.

    Sessions are independent; nothing is persisted across restarts.
    """

    def __init__(
        self,
        enrichment_provider: NLPEnrichmentProvider,
        guidance_provider: GuidanceProvider,
        recommendation_provider: RecommendationProvider,
        insight_provider: Optional[InsightProvider] = None,
        settings: Optional[CopilotSettings] = None
    ):
        """
        Initialize SessionManager.

        Args:
            enrichment_provider: Shared NLP enrichment collaborator
            guidance_provider: Shared live-guidance collaborator
            recommendation_provider: Shared recommendation collaborator
            insight_provider: Shared custom-prompt collaborator (optional)
            settings: Runtime settings (defaults to CopilotSettings())
        """
        self.enrichment_provider = enrichment_provider
        self.guidance_provider = guidance_provider
        self.recommendation_provider = recommendation_provider
        self.insight_provider = insight_provider
        self.settings = settings or CopilotSettings()
        self._pipelines: Dict[str, ConversationPipeline] = {}

    def create_session(
        self,
        question_template: Optional[str] = None,
        guidance_enabled: Optional[bool] = None,
        recommendations_enabled: Optional[bool] = None,
        session_id: Optional[str] = None
    ) -> ConversationPipeline:
        """
        Create and start a new conversation.

        Flags left as None fall back to the settings.
        """
        session_id = session_id or f"conv_{uuid.uuid4().hex}"
        if session_id in self._pipelines:
            raise ValueError(f"Session {session_id} already exists")

        session = ConversationSession(
            session_id=session_id,
            question_template=question_template or DEFAULT_TEMPLATE,
            guidance_enabled=(
                self.settings.guidance_enabled if guidance_enabled is None else guidance_enabled
            ),
            recommendations_enabled=(
                self.settings.recommendations_enabled
                if recommendations_enabled is None else recommendations_enabled
            ),
            max_transcript_chars=self.settings.max_transcript_chars,
            sentiment=SentimentAggregator(max_sentences=self.settings.max_rolling_sentences),
            alerts=RecommendationAlertManager(hide_after_seconds=self.settings.alert_hide_seconds),
        )
        pipeline = ConversationPipeline(
            session=session,
            enrichment_provider=self.enrichment_provider,
            guidance_provider=self.guidance_provider,
            recommendation_provider=self.recommendation_provider,
            insight_provider=self.insight_provider,
            timeout_seconds=self.settings.provider_timeout_seconds,
        )
        pipeline.start()
        self._pipelines[session_id] = pipeline
        logger.info(f"✅ [SessionManager] Created session {session_id}")
        return pipeline

    def get_session(self, session_id: str) -> Optional[ConversationPipeline]:
        return self._pipelines.get(session_id)

    def list_sessions(self) -> List[str]:
        return list(self._pipelines.keys())

    def delete_session(self, session_id: str) -> bool:
        """
        Discard a session, cancelling its background work and timers.

        Returns:
            True if deleted, False if the id was unknown
        """
        pipeline = self._pipelines.pop(session_id, None)
        if pipeline is None:
            return False
        pipeline.close()
        logger.info(f"🗑️ [SessionManager] Deleted session {session_id}")
        return True

    async def close(self) -> None:
        """Drain and close every session (server shutdown)."""
        for session_id in list(self._pipelines.keys()):
            pipeline = self._pipelines.pop(session_id)
            await pipeline.wait_for_background_tasks()
            pipeline.close()
        logger.info("👋 [SessionManager] All sessions closed")
