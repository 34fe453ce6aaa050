"""
Copilot Settings

Environment-driven configuration (a .env file is picked up via python-dotenv).
"""

import os
from dataclasses import dataclass, field
from typing import Optional, List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return int(value)


@dataclass
class CopilotSettings:
    """Runtime settings shared by every conversation session."""
    openai_model: str = "gpt-4o-mini"
    provider_timeout_seconds: float = 60.0
    guidance_enabled: bool = True
    recommendations_enabled: bool = True
    alert_hide_seconds: float = 5.0
    # None keeps the transcript / sentence list unbounded
    max_transcript_chars: Optional[int] = None
    max_rolling_sentences: Optional[int] = None
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    @classmethod
    def from_env(cls) -> "CopilotSettings":
        """Build settings from COPILOT_* / OPENAI_* environment variables."""
        origins = os.getenv("COPILOT_CORS_ORIGINS")
        return cls(
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            provider_timeout_seconds=float(os.getenv("COPILOT_PROVIDER_TIMEOUT", "60")),
            guidance_enabled=_env_bool("COPILOT_GUIDANCE_ENABLED", True),
            recommendations_enabled=_env_bool("COPILOT_RECOMMENDATIONS_ENABLED", True),
            alert_hide_seconds=float(os.getenv("COPILOT_ALERT_HIDE_SECONDS", "5")),
            max_transcript_chars=_env_optional_int("COPILOT_MAX_TRANSCRIPT_CHARS"),
            max_rolling_sentences=_env_optional_int("COPILOT_MAX_ROLLING_SENTENCES"),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins else ["http://localhost:3000"]
            ),
        )
