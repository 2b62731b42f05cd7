"""
Disaster Recovery Automation

Health-driven detection of subsystem failure and dependency-aware,
retryable execution of ordered recovery runbooks.
"""

from .clock import Clock, ManualClock, SystemClock
from .config import (
    BackupSources,
    DisasterRecoveryConfig,
    DisasterRecoverySettings,
    NotificationSettings,
    RecoveryStep,
    build_config,
    load_config,
)
from .core.exceptions import (
    ConfigurationError,
    DisasterRecoveryError,
    RecoveryNotFound,
    StepExecutionError,
)
from .events import DisasterEventFactory
from .health_monitor import HealthMonitor
from .models import (
    DisasterEvent,
    DisasterType,
    ExecutionStatus,
    RecoveryExecution,
    RecoveryLog,
    RecoveryStepExecution,
    Severity,
    StepStatus,
    StepType,
)
from .notifications import LoggingNotificationGateway, NotificationGateway
from .orchestrator import RecoveryOrchestrator
from .step_executor import CallableStepHandler, SimulatedStepHandler, StepExecutor, StepHandler

__all__ = [
    # Service
    "RecoveryOrchestrator",
    "HealthMonitor",
    "DisasterEventFactory",

    # Configuration
    "DisasterRecoveryConfig",
    "DisasterRecoverySettings",
    "RecoveryStep",
    "NotificationSettings",
    "BackupSources",
    "build_config",
    "load_config",

    # Step dispatch
    "StepExecutor",
    "StepHandler",
    "CallableStepHandler",
    "SimulatedStepHandler",

    # Collaborators
    "NotificationGateway",
    "LoggingNotificationGateway",
    "Clock",
    "SystemClock",
    "ManualClock",

    # Records
    "DisasterEvent",
    "DisasterType",
    "Severity",
    "StepType",
    "ExecutionStatus",
    "StepStatus",
    "RecoveryExecution",
    "RecoveryStepExecution",
    "RecoveryLog",

    # Errors
    "DisasterRecoveryError",
    "ConfigurationError",
    "RecoveryNotFound",
    "StepExecutionError",
]

__version__ = "1.0.0"
