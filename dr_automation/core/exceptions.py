"""
Core exceptions for the disaster recovery engine

This module defines the exception hierarchy used throughout the package.
"""

from typing import Optional, Dict, Any


class DisasterRecoveryError(Exception):
    """Base exception for all disaster recovery errors"""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class ConfigurationError(DisasterRecoveryError):
    """Configuration-related errors"""
    pass


class RecoveryNotFound(DisasterRecoveryError):
    """Unknown recovery execution id"""

    def __init__(self, recovery_id: str):
        super().__init__(
            f"Recovery not found: {recovery_id}",
            details={"recovery_id": recovery_id},
        )
        self.recovery_id = recovery_id


class ServiceNotRunning(DisasterRecoveryError):
    """Operation requires a running event loop / started service"""
    pass


class ProbeFailure(DisasterRecoveryError):
    """A health probe reported its subsystem as unhealthy"""

    def __init__(self, system: str, reason: str = "health check returned false"):
        super().__init__(f"{system}: {reason}", details={"system": system})
        self.system = system


class StepExecutionError(DisasterRecoveryError):
    """A recovery step handler failed; retryable"""

    def __init__(self, step_id: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details={"step_id": step_id, **(details or {})})
        self.step_id = step_id


class StepTimeoutError(StepExecutionError):
    """A recovery step exceeded its configured timeout"""

    def __init__(self, step_id: str, timeout_minutes: float):
        super().__init__(
            step_id,
            f"Step {step_id} timed out after {timeout_minutes} minutes",
            details={"timeout_minutes": timeout_minutes},
        )


class UnknownStepType(StepExecutionError):
    """No handler is registered for the step type; never retried"""

    def __init__(self, step_id: str, step_type: str):
        super().__init__(
            step_id,
            f"No handler registered for step type '{step_type}'",
            details={"step_type": step_type},
        )


class CriticalStepFailure(DisasterRecoveryError):
    """A critical step failed and halted its recovery execution"""

    def __init__(self, recovery_id: str, step_id: str, reason: Optional[str] = None):
        super().__init__(
            f"Critical step {step_id} failed, stopping recovery",
            details={"recovery_id": recovery_id, "step_id": step_id, "reason": reason},
        )


class OrchestrationFault(DisasterRecoveryError):
    """Unexpected failure inside the execution loop itself"""

    def __init__(self, recovery_id: str, cause: BaseException):
        super().__init__(
            f"Recovery execution failed: {cause}",
            details={"recovery_id": recovery_id, "cause": type(cause).__name__},
        )
        self.cause = cause
