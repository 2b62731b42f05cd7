"""
Core components for the disaster recovery engine

This module contains the exception hierarchy shared by every component.
"""

from .exceptions import (
    DisasterRecoveryError,
    ConfigurationError,
    RecoveryNotFound,
    ServiceNotRunning,
    ProbeFailure,
    StepExecutionError,
    StepTimeoutError,
    UnknownStepType,
    CriticalStepFailure,
    OrchestrationFault,
)

__all__ = [
    "DisasterRecoveryError",
    "ConfigurationError",
    "RecoveryNotFound",
    "ServiceNotRunning",
    "ProbeFailure",
    "StepExecutionError",
    "StepTimeoutError",
    "UnknownStepType",
    "CriticalStepFailure",
    "OrchestrationFault",
]
