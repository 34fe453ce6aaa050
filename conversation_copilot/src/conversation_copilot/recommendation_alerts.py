"""
Recommendation Alert Management

Keeps the most-recent-first history of recommendation alerts for a
conversation, their read/unread state, and the transient "new
recommendation" banner that hides itself after a few seconds.
"""

import asyncio
import logging
import random
import string
import time
from datetime import datetime
from typing import Dict, List, Optional

from conversation_copilot.conversation_state import RecommendationAlert

logger = logging.getLogger(__name__)


class RecommendationAlertManager:
    """
    Classifies and records recommendation alerts.

    Priority keywords (case-insensitive):
    - "urgent", "immediate", "critical" -> high
    - "consider", "potential" -> low
    - anything else -> medium
    """

    HIGH_PRIORITY_KEYWORDS = ("urgent", "immediate", "critical")
    LOW_PRIORITY_KEYWORDS = ("consider", "potential")

    def __init__(self, hide_after_seconds: float = 5.0):
        """
        Args:
            hide_after_seconds: How long the alert banner stays visible after a new alert
        """
        self.hide_after_seconds = hide_after_seconds
        self._history: List[RecommendationAlert] = []
        self._unread_count = 0
        self.show_alert = False
        self.last_recommendation_time: Optional[datetime] = None
        self._hide_handles: List[asyncio.TimerHandle] = []

    @classmethod
    def classify(cls, content: str) -> str:
        """Assign a priority from keywords in the recommendation text."""
        lowered = content.lower()
        if any(keyword in lowered for keyword in cls.HIGH_PRIORITY_KEYWORDS):
            return "high"
        if any(keyword in lowered for keyword in cls.LOW_PRIORITY_KEYWORDS):
            return "low"
        return "medium"

    @staticmethod
    def _new_alert_id() -> str:
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
        return f"rec_{int(time.time() * 1000)}_{suffix}"

    def record(self, content: str, priority: Optional[str] = None) -> RecommendationAlert:
        """
        Record a new recommendation alert.

        Args:
            content: Recommendation text (already screened for error/waiting states)
            priority: Explicit priority, classified from content when omitted

        Returns:
            The newly created alert
        """
        alert = RecommendationAlert(
            id=self._new_alert_id(),
            content=content,
            priority=priority or self.classify(content),
        )
        self._history.insert(0, alert)
        self._unread_count += 1
        self.last_recommendation_time = alert.timestamp
        self.show_alert = True
        self._schedule_hide()

        logger.info(
            f"🔔 [AlertManager] New {alert.priority}-priority recommendation "
            f"({self._unread_count} unread)"
        )
        return alert

    def _schedule_hide(self) -> None:
        # Each alert gets its own one-shot timer; later alerts do not extend earlier ones
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[AlertManager] No running event loop - alert banner will not auto-hide")
            return

        handle = loop.call_later(self.hide_after_seconds, self._hide_alert)
        self._hide_handles.append(handle)

    def _hide_alert(self) -> None:
        self.show_alert = False
        now = asyncio.get_running_loop().time()
        self._hide_handles = [h for h in self._hide_handles if h.when() > now]

    def mark_read(self, alert_id: str) -> bool:
        """
        Mark one alert read.

        Returns:
            True if the alert exists (whether or not it was already read)
        """
        for alert in self._history:
            if alert.id == alert_id:
                if not alert.is_read:
                    alert.is_read = True
                    self._unread_count = max(0, self._unread_count - 1)
                return True
        logger.warning(f"⚠️ [AlertManager] Unknown alert id: {alert_id}")
        return False

    def mark_unread(self, alert_id: str) -> bool:
        """Mark one alert unread again."""
        for alert in self._history:
            if alert.id == alert_id:
                if alert.is_read:
                    alert.is_read = False
                    self._unread_count += 1
                return True
        logger.warning(f"⚠️ [AlertManager] Unknown alert id: {alert_id}")
        return False

    def mark_all_read(self) -> None:
        for alert in self._history:
            alert.is_read = True
        self._unread_count = 0

    @property
    def unread_count(self) -> int:
        return self._unread_count

    @property
    def history(self) -> List[RecommendationAlert]:
        """Most-recent-first copy of the alert history."""
        return list(self._history)

    @property
    def latest(self) -> Optional[RecommendationAlert]:
        return self._history[0] if self._history else None

    def close(self) -> None:
        """Cancel pending banner timers."""
        for handle in self._hide_handles:
            handle.cancel()
        self._hide_handles.clear()

    def to_dict(self) -> Dict:
        return {
            "history": [alert.to_dict() for alert in self._history],
            "unread_count": self._unread_count,
            "show_alert": self.show_alert,
            "last_recommendation_time": (
                self.last_recommendation_time.isoformat() if self.last_recommendation_time else None
            ),
        }
