"""
Notification gateway contract for recovery lifecycle events
"""

from typing import Any, Dict, List, Optional

from .config import NotificationSettings
from .logging_adapter import get_safe_logger
from .models import DisasterEvent, RecoveryExecution

logger = get_safe_logger("dr_automation.notifications")


class NotificationGateway:
    """Base notification gateway; delivery is implemented by subclasses"""

    async def send_disaster_notification(self, event: DisasterEvent, execution: RecoveryExecution) -> bool:
        """Announce a detected disaster and the recovery started for it"""
        raise NotImplementedError

    async def send_recovery_completion(self, execution: RecoveryExecution) -> bool:
        """Announce the terminal state of a recovery"""
        raise NotImplementedError


class LoggingNotificationGateway(NotificationGateway):
    """
    Records notifications as structured log events and keeps them in memory.

    Default gateway when no delivery integration is wired in.
    """

    def __init__(self, settings: Optional[NotificationSettings] = None):
        self.settings = settings or NotificationSettings()
        self.sent: List[Dict[str, Any]] = []

    def _targets(self) -> Dict[str, Any]:
        return {
            "channels": list(self.settings.channels),
            "recipients": list(self.settings.recipients),
            "webhook_url": self.settings.webhook_url,
            "slack_channel": self.settings.slack_channel,
        }

    async def send_disaster_notification(self, event: DisasterEvent, execution: RecoveryExecution) -> bool:
        payload = {
            "kind": "disaster_detected",
            "event": event.to_dict(),
            "recovery_id": execution.id,
            **self._targets(),
        }
        self.sent.append(payload)
        logger.warning(
            "disaster_notification",
            event_id=event.id,
            recovery_id=execution.id,
            severity=event.severity.value,
            impact=event.estimated_impact,
            channels=payload["channels"],
        )
        return True

    async def send_recovery_completion(self, execution: RecoveryExecution) -> bool:
        payload = {
            "kind": "recovery_completed",
            "recovery_id": execution.id,
            "status": execution.status.value,
            "progress": execution.progress,
            "metrics": execution.metrics.to_dict(),
            **self._targets(),
        }
        self.sent.append(payload)
        logger.info(
            "recovery_completion_notification",
            recovery_id=execution.id,
            status=execution.status.value,
            channels=payload["channels"],
        )
        return True
