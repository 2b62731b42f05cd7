"""
Disaster event construction and severity classification
"""

import uuid
from typing import Iterable, Optional, Union

from .clock import Clock, SystemClock
from .logging_adapter import get_safe_logger
from .models import DisasterEvent, DisasterType, Severity

logger = get_safe_logger("dr_automation.events")


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def classify_severity(failing_systems: int) -> Severity:
    """Severity of an automatic event from the number of failing subsystems"""
    if failing_systems >= 3:
        return Severity.CRITICAL
    if failing_systems == 2:
        return Severity.HIGH
    return Severity.MEDIUM


def estimate_impact(severity: Severity, affected_systems: Iterable[str]) -> str:
    count = len(list(affected_systems))
    noun = "system" if count == 1 else "systems"
    return f"{severity.value.upper()} impact on {count} {noun}"


class DisasterEventFactory:
    """Builds immutable DisasterEvent records for manual and automatic triggers"""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()

    def manual(
        self,
        disaster_type: Union[DisasterType, str],
        description: str,
        affected_systems: Iterable[str],
        severity: Union[Severity, str, None] = None,
    ) -> DisasterEvent:
        """Event declared by an operator; severity defaults to high"""
        resolved_severity = Severity(severity) if severity is not None else Severity.HIGH
        systems = list(affected_systems)
        event = DisasterEvent(
            id=generate_id("disaster"),
            type=DisasterType(disaster_type),
            severity=resolved_severity,
            detected_at=self.clock.now(),
            description=description,
            affected_systems=systems,
            estimated_impact=estimate_impact(resolved_severity, systems),
            auto_recovery_triggered=False,
        )
        logger.error(
            "disaster_event_triggered_manually",
            event_id=event.id,
            type=event.type.value,
            severity=event.severity.value,
            affected_systems=systems,
        )
        return event

    def automatic(self, failing_systems: Iterable[str]) -> DisasterEvent:
        """Event raised by the health monitor after sustained probe failures"""
        systems = list(failing_systems)
        severity = classify_severity(len(systems))
        event = DisasterEvent(
            id=generate_id("disaster"),
            type=DisasterType.SYSTEM_FAILURE,
            severity=severity,
            detected_at=self.clock.now(),
            description=f"Automatic recovery triggered due to {len(systems)} failed health checks",
            affected_systems=systems,
            estimated_impact=estimate_impact(severity, systems),
            auto_recovery_triggered=True,
        )
        logger.error(
            "disaster_event_detected",
            event_id=event.id,
            severity=severity.value,
            failing_systems=systems,
        )
        return event
