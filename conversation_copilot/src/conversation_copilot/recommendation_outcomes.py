"""
Recommendation Outcomes

Everything between "a recommendation pass was triggered" and "an alert is
recorded": transcript validation before the provider is called, mapping of
provider responses and provider failures to advisor-facing text, and the
filter that keeps error/waiting states out of the alert history.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import openai

from conversation_copilot.conversation_state import TRANSCRIPT_PLACEHOLDER

WAITING_SENTINEL = "***Waiting for More Client Information***"
PROVIDER_ERROR_MARKER = "Error generating recommendation:"

MIN_TRANSCRIPT_CHARS = 50
MIN_MEANINGFUL_CHARS = 30

WAITING_MESSAGE = (
    f"{WAITING_SENTINEL}\n\n"
    "Please ensure you have captured sufficient conversation content including client's financial goals, "
    "risk tolerance, investment timeline, and current financial situation before generating recommendations."
)

START_CONVERSATION_MESSAGE = (
    "🎤 **Start Your Conversation**\n\n"
    "Please start recording your conversation or paste a conversation transcript to generate "
    "personalized investment recommendations."
)

MORE_CONTENT_MESSAGE = (
    "📝 **More Content Needed**\n\n"
    "The current transcript appears to have limited content. Please ensure you have a substantial "
    "conversation about:\n\n"
    "• Financial goals and objectives\n"
    "• Investment timeline\n"
    "• Risk tolerance\n"
    "• Current financial situation\n\n"
    "Then try generating recommendations again."
)

SERVICE_UNAVAILABLE_MESSAGE = (
    "⚠️ **Service Temporarily Unavailable**\n\n"
    "The investment recommendation service is currently experiencing issues. This could be due to:\n\n"
    "• API rate limits\n"
    "• Network connectivity issues\n"
    "• Service configuration problems\n\n"
    "Please try again in a few moments, or continue with other features while we resolve this issue."
)

NO_RESPONSE_MESSAGE = (
    "⚠️ **No Response Received**\n\n"
    "No response was received from the recommendation service. Please check your internet connection "
    "and try again."
)

CONNECTION_ERROR_MESSAGE = (
    "🌐 **Connection Error**\n\n"
    "Unable to connect to the recommendation service. Please check your internet connection and try again."
)

TIMEOUT_MESSAGE = (
    "⏱️ **Request Timeout**\n\n"
    "The recommendation request is taking longer than expected. The service may be busy. "
    "Please try again in a moment."
)

VALIDATION_ERROR_MESSAGE = (
    "📝 **Input Validation Error**\n\n"
    "There may be an issue with the conversation transcript format. Please ensure you have a meaningful "
    "conversation recorded before generating recommendations."
)

SERVICE_BUSY_MESSAGE = (
    "🚦 **Service Busy**\n\n"
    "The recommendation service is currently handling many requests. Please wait a few moments and try again."
)

SERVICE_ERROR_MESSAGE = (
    "⚙️ **Service Error**\n\n"
    "The recommendation service is temporarily experiencing technical difficulties. Please try again later."
)

# Markers of non-recommendation states that must never become alerts
_NON_ALERT_MARKERS = (
    "Error",
    WAITING_SENTINEL,
    "Start Your Conversation",
    "More Content Needed",
    # Status headers that do not contain "Error"
    "Service Temporarily Unavailable",
    "No Response Received",
    "Request Timeout",
    "Service Busy",
)


@dataclass
class TranscriptCheck:
    """Result of validating a transcript before asking for a recommendation."""
    ok: bool
    message: Optional[str] = None


def validate_transcript(transcript: str) -> TranscriptCheck:
    """
    Decide whether a transcript is worth sending to the recommendation provider.

    Checks, in order: minimum length, placeholder text, meaningful
    (non-whitespace) content.
    """
    if not transcript or len(transcript) < MIN_TRANSCRIPT_CHARS:
        return TranscriptCheck(ok=False, message=WAITING_MESSAGE)

    if transcript == TRANSCRIPT_PLACEHOLDER:
        return TranscriptCheck(ok=False, message=START_CONVERSATION_MESSAGE)

    meaningful = len("".join(transcript.split()))
    if meaningful < MIN_MEANINGFUL_CHARS:
        return TranscriptCheck(ok=False, message=MORE_CONTENT_MESSAGE)

    return TranscriptCheck(ok=True)


def interpret_response(raw_text: Optional[str]) -> str:
    """Map the provider's raw answer to the text shown to the advisor."""
    if raw_text is None or not raw_text.strip():
        return NO_RESPONSE_MESSAGE
    if PROVIDER_ERROR_MARKER in raw_text:
        return SERVICE_UNAVAILABLE_MESSAGE
    return raw_text


def describe_failure(error: BaseException) -> str:
    """Map a provider exception to an advisor-facing message."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, openai.APITimeoutError)):
        return TIMEOUT_MESSAGE
    if isinstance(error, openai.APIConnectionError):
        return CONNECTION_ERROR_MESSAGE
    if isinstance(error, openai.RateLimitError):
        return SERVICE_BUSY_MESSAGE
    if isinstance(error, openai.BadRequestError):
        return VALIDATION_ERROR_MESSAGE
    if isinstance(error, openai.APIStatusError) and error.status_code >= 500:
        return SERVICE_ERROR_MESSAGE

    details = str(error) or type(error).__name__
    return (
        "⚠️ **Recommendation Error**\n\n"
        "An unexpected error occurred while generating recommendations.\n\n"
        f"**Error Details:** {details}\n\n"
        "Please try again or contact support if the issue persists."
    )


def is_alertable(recommendation_text: str) -> bool:
    """True when the text is a real recommendation rather than an error or waiting state."""
    return not any(marker in recommendation_text for marker in _NON_ALERT_MARKERS)
