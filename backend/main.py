"""
FastAPI Backend for the Conversation Copilot

Provides REST API endpoints for:
- Creating and discarding live conversation sessions
- Ingesting recognized utterances
- Reading sentiment, guidance, recommendation and alert state
- Custom insight prompts over the transcript
"""

from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Optional, List, Dict, Any
import os
import sys
import logging
import signal

from lib.logger import setup_logging, get_logger

setup_logging(level=logging.INFO, use_colors=True)

logger = get_logger("backend.main")

# Add the conversation_copilot package to Python path
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)

package_src = os.path.join(project_root, 'conversation_copilot', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from conversation_copilot.config import CopilotSettings
from conversation_copilot.ingestion_pipeline import ConversationPipeline
from conversation_copilot.openai_providers import OpenAICopilotProvider
from conversation_copilot.session_manager import SessionManager

settings = CopilotSettings.from_env()

# Singleton SessionManager, created on first use so a missing API key only
# affects the endpoints that need the providers
_session_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """Get or create the process-wide SessionManager."""
    global _session_manager
    if _session_manager is None:
        try:
            provider = OpenAICopilotProvider(model=settings.openai_model)
        except ValueError as e:
            logger.error("Copilot providers not configured", error=e)
            raise HTTPException(status_code=503, detail=f"Copilot providers not configured: {e}")
        _session_manager = SessionManager(
            enrichment_provider=provider,
            guidance_provider=provider,
            recommendation_provider=provider,
            insight_provider=provider,
            settings=settings,
        )
    return _session_manager


app = FastAPI(
    title="Conversation Copilot API",
    description="Live guidance, sentiment and recommendations for advisor/client conversations",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== Pydantic Models ====================

class CreateSessionRequest(BaseModel):
    question_template: Optional[str] = None
    guidance_enabled: Optional[bool] = None
    recommendations_enabled: Optional[bool] = None


class SessionCreated(BaseModel):
    session_id: str
    is_recording: bool
    guidance_enabled: bool
    recommendations_enabled: bool


class UtteranceRequest(BaseModel):
    text: str
    # Wait for any guidance/recommendation pass this utterance triggered
    wait: bool = False


class UtteranceAccepted(BaseModel):
    session_id: str
    transcript_event_count: int
    is_generating_recommendation: bool


class TemplateRequest(BaseModel):
    question_template: str


class InsightRequest(BaseModel):
    prompt: str


class InsightResponse(BaseModel):
    session_id: str
    output: str


class AlertSummary(BaseModel):
    session_id: str
    unread_count: int
    history: List[Dict[str, Any]]


# ==================== Helpers ====================

def _get_pipeline(session_id: str, manager: SessionManager) -> ConversationPipeline:
    pipeline = manager.get_session(session_id)
    if pipeline is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return pipeline


def _alert_summary(pipeline: ConversationPipeline) -> AlertSummary:
    alerts = pipeline.session.alerts
    return AlertSummary(
        session_id=pipeline.session.session_id,
        unread_count=alerts.unread_count,
        history=[a.to_dict() for a in alerts.history],
    )


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Conversation Copilot API",
        "version": "1.0.0",
        "openai_configured": bool(os.getenv("OPENAI_API_KEY")),
        "active_sessions": len(_session_manager.list_sessions()) if _session_manager else 0,
    }


@app.post("/api/sessions", response_model=SessionCreated)
async def create_session(
    request: Optional[CreateSessionRequest] = None,
    manager: SessionManager = Depends(get_session_manager)
):
    """Start a new conversation."""
    request = request or CreateSessionRequest()
    pipeline = manager.create_session(
        question_template=request.question_template,
        guidance_enabled=request.guidance_enabled,
        recommendations_enabled=request.recommendations_enabled,
    )
    session = pipeline.session
    logger.success("Session created", data={
        "session_id": session.session_id,
        "guidance_enabled": session.guidance_enabled,
        "recommendations_enabled": session.recommendations_enabled,
    })
    return SessionCreated(
        session_id=session.session_id,
        is_recording=session.is_recording,
        guidance_enabled=session.guidance_enabled,
        recommendations_enabled=session.recommendations_enabled,
    )


@app.get("/api/sessions")
async def list_sessions(manager: SessionManager = Depends(get_session_manager)):
    return {"sessions": manager.list_sessions()}


@app.get("/api/sessions/{session_id}/state")
async def get_state(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Get the full state snapshot of a conversation."""
    pipeline = _get_pipeline(session_id, manager)
    return pipeline.snapshot()


@app.post("/api/sessions/{session_id}/utterances", response_model=UtteranceAccepted)
async def ingest_utterance(
    session_id: str,
    utterance: UtteranceRequest,
    manager: SessionManager = Depends(get_session_manager)
):
    """
    Ingest one recognized utterance.

    Guidance and recommendation passes run in the background unless
    `wait` is set.
    """
    pipeline = _get_pipeline(session_id, manager)
    if not pipeline.is_accepting:
        logger.warning("Utterance for a stopped session rejected", data={"session_id": session_id})
        raise HTTPException(status_code=409, detail="Session is stopped")

    logger.request("POST", f"/api/sessions/{session_id}/utterances", session_id=session_id,
                   data={"chars": len(utterance.text)})

    await pipeline.on_utterance_recognized(utterance.text)
    if utterance.wait:
        await pipeline.wait_for_background_tasks()

    counters = pipeline.session.counters
    return UtteranceAccepted(
        session_id=session_id,
        transcript_event_count=counters.transcript_event_count,
        is_generating_recommendation=counters.is_generating_recommendation,
    )


@app.post("/api/sessions/{session_id}/stop")
async def stop_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Stop recording and run the final guidance/recommendation passes."""
    pipeline = _get_pipeline(session_id, manager)
    if not pipeline.is_accepting:
        logger.warning("Stop requested for a stopped session", data={"session_id": session_id})
        raise HTTPException(status_code=409, detail="Session is already stopped")
    try:
        await pipeline.stop()
    except Exception as e:
        logger.error("Error stopping session", error=e, data={"session_id": session_id})
        raise HTTPException(status_code=500, detail=f"Error stopping session: {str(e)}")
    return pipeline.snapshot()


@app.put("/api/sessions/{session_id}/template")
async def replace_template(
    session_id: str,
    request: TemplateRequest,
    manager: SessionManager = Depends(get_session_manager)
):
    pipeline = _get_pipeline(session_id, manager)
    if not request.question_template.strip():
        raise HTTPException(status_code=400, detail="Question template cannot be empty")
    pipeline.set_template(request.question_template)
    return {"session_id": session_id, "question_template": pipeline.session.question_template}


@app.post("/api/sessions/{session_id}/alerts/read-all", response_model=AlertSummary)
async def mark_all_alerts_read(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    pipeline = _get_pipeline(session_id, manager)
    pipeline.session.alerts.mark_all_read()
    return _alert_summary(pipeline)


@app.post("/api/sessions/{session_id}/alerts/{alert_id}/read", response_model=AlertSummary)
async def mark_alert_read(
    session_id: str,
    alert_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    """Mark one recommendation alert as read."""
    pipeline = _get_pipeline(session_id, manager)
    if not any(a.id == alert_id for a in pipeline.session.alerts.history):
        raise HTTPException(status_code=404, detail="Alert not found")
    pipeline.session.alerts.mark_read(alert_id)
    return _alert_summary(pipeline)


@app.post("/api/sessions/{session_id}/alerts/{alert_id}/unread", response_model=AlertSummary)
async def mark_alert_unread(
    session_id: str,
    alert_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    """Flag a recommendation alert as unread again."""
    pipeline = _get_pipeline(session_id, manager)
    if not pipeline.session.alerts.mark_unread(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
    logger.debug("Alert marked unread", data={"session_id": session_id, "alert_id": alert_id})
    return _alert_summary(pipeline)


@app.post("/api/sessions/{session_id}/insights", response_model=InsightResponse)
async def run_insights(
    session_id: str,
    request: InsightRequest,
    manager: SessionManager = Depends(get_session_manager)
):
    """Run a custom analytics prompt over the transcript."""
    pipeline = _get_pipeline(session_id, manager)
    if not request.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt cannot be empty")
    output = await pipeline.run_custom_prompt(request.prompt)
    return InsightResponse(session_id=session_id, output=output)


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Discard a session and cancel its background work."""
    if not manager.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "deleted", "session_id": session_id}


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event - drain and close every live session."""
    if _session_manager is not None:
        await _session_manager.close()
        logger.info("🛑 All conversation sessions closed")


if __name__ == "__main__":
    import uvicorn

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.section("SERVER SHUTDOWN", {"reason": "signal received"})
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    logger.section("SERVER STARTUP", {
        "model": settings.openai_model,
        "guidance_enabled": settings.guidance_enabled,
        "recommendations_enabled": settings.recommendations_enabled,
        "provider_timeout_seconds": settings.provider_timeout_seconds,
    })
    try:
        uvicorn.run(app, host="0.0.0.0", port=8000)
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
