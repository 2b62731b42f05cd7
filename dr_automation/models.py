"""
Runtime data model for disaster recovery executions
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class DisasterType(str, Enum):
    """Types of disaster events"""
    SYSTEM_FAILURE = "system_failure"
    DATA_CORRUPTION = "data_corruption"
    SECURITY_BREACH = "security_breach"
    NATURAL_DISASTER = "natural_disaster"
    MANUAL_TRIGGER = "manual_trigger"


class Severity(str, Enum):
    """Disaster severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class StepType(str, Enum):
    """Recovery step handler types"""
    DATABASE = "database"
    FILES = "files"
    CONFIGURATION = "configuration"
    SERVICE = "service"
    VALIDATION = "validation"
    CUSTOM = "custom"


class ExecutionStatus(str, Enum):
    """Recovery execution status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED)


class StepStatus(str, Enum):
    """Per-step execution status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.SKIPPED)


class LogLevel(str, Enum):
    """Recovery log levels"""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class DisasterEvent:
    """A detected or declared incident; never mutated after creation"""
    id: str
    type: DisasterType
    severity: Severity
    detected_at: datetime
    description: str
    affected_systems: List[str]
    estimated_impact: str
    auto_recovery_triggered: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "detected_at": _iso(self.detected_at),
            "description": self.description,
            "affected_systems": list(self.affected_systems),
            "estimated_impact": self.estimated_impact,
            "auto_recovery_triggered": self.auto_recovery_triggered,
        }


@dataclass(frozen=True)
class RecoveryLog:
    """Append-only log entry attached to a recovery execution"""
    timestamp: datetime
    level: LogLevel
    message: str
    step_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "level": self.level.value,
            "message": self.message,
            "step_id": self.step_id,
            "details": self.details,
        }


@dataclass
class RecoveryStepExecution:
    """Runtime record for one configured step"""
    step_id: str
    status: StepStatus = StepStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration: Optional[float] = None  # milliseconds
    retry_count: int = 0
    output: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "duration": self.duration,
            "retry_count": self.retry_count,
            "output": self.output,
            "error": self.error,
        }


@dataclass
class ExecutionMetrics:
    total_steps: int = 0
    completed_steps: int = 0
    failed_steps: int = 0
    estimated_time_remaining: float = 0.0  # minutes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_steps": self.total_steps,
            "completed_steps": self.completed_steps,
            "failed_steps": self.failed_steps,
            "estimated_time_remaining": self.estimated_time_remaining,
        }


@dataclass
class RecoveryExecution:
    """
    Aggregate root for one recovery run.

    Owned and mutated by the orchestrator only; callers receive deep copies.
    The ``steps`` list is fixed at creation, one entry per configured step.
    """
    id: str
    disaster_event_id: str
    started_at: datetime
    steps: List[RecoveryStepExecution]
    status: ExecutionStatus = ExecutionStatus.PENDING
    completed_at: Optional[datetime] = None
    current_step: Optional[str] = None
    progress: int = 0
    logs: List[RecoveryLog] = field(default_factory=list)
    metrics: ExecutionMetrics = field(default_factory=ExecutionMetrics)

    def step(self, step_id: str) -> Optional[RecoveryStepExecution]:
        for step_execution in self.steps:
            if step_execution.step_id == step_id:
                return step_execution
        return None

    def count(self, status: StepStatus) -> int:
        return sum(1 for s in self.steps if s.status == status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "disaster_event_id": self.disaster_event_id,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "current_step": self.current_step,
            "progress": self.progress,
            "steps": [s.to_dict() for s in self.steps],
            "logs": [entry.to_dict() for entry in self.logs],
            "metrics": self.metrics.to_dict(),
        }
