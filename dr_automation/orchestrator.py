"""
Disaster Recovery Orchestrator
Dependency-aware, retryable execution of ordered recovery steps with
critical-step halting, cooperative cancellation and health-driven triggers
"""

import asyncio
import copy
import math
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from tenacity import RetryCallState

from .clock import Clock, SystemClock, cancellable_sleep
from .config import DisasterRecoveryConfig, RecoveryStep
from .core.exceptions import (
    CriticalStepFailure,
    OrchestrationFault,
    RecoveryNotFound,
    ServiceNotRunning,
    StepTimeoutError,
)
from .events import DisasterEventFactory, generate_id
from .health_monitor import HealthMonitor, HealthProbe
from .logging_adapter import SafeLogger, get_safe_logger
from .metrics import active_recoveries, recoveries_finished, recoveries_triggered, step_duration, step_retries
from .models import (
    DisasterEvent,
    DisasterType,
    ExecutionMetrics,
    ExecutionStatus,
    LogLevel,
    RecoveryExecution,
    RecoveryLog,
    RecoveryStepExecution,
    Severity,
    StepStatus,
)
from .notifications import LoggingNotificationGateway, NotificationGateway
from .retry_utils import StepAttemptAborted, build_step_retrying
from .step_executor import StepExecutor

logger = get_safe_logger("dr_automation.orchestrator")

LOG_CATEGORY = "disaster-recovery"


class RecoveryOrchestrator:
    """
    Owns every RecoveryExecution it creates.

    Executions run as independent asyncio tasks; steps within one execution
    run strictly sequentially. The execution registry is guarded by a lock
    and callers only ever receive deep-copied snapshots.
    """

    def __init__(
        self,
        config: DisasterRecoveryConfig,
        step_executor: Optional[StepExecutor] = None,
        notification_gateway: Optional[NotificationGateway] = None,
        recovery_logger: Optional[SafeLogger] = None,
        clock: Optional[Clock] = None,
        probes: Optional[Mapping[str, HealthProbe]] = None,
    ):
        self.config = config
        self.clock = clock or SystemClock()
        self.step_executor = step_executor or StepExecutor.simulated()
        self.notification_gateway = notification_gateway or LoggingNotificationGateway(config.notifications)
        self.recovery_logger = recovery_logger or logger
        self.event_factory = DisasterEventFactory(self.clock)
        self.health_monitor = HealthMonitor(
            config,
            on_threshold=self.trigger_auto_recovery,
            probes=probes,
            clock=self.clock,
        )

        self._lock = threading.RLock()
        self._recoveries: Dict[str, RecoveryExecution] = {}
        self._events: Dict[str, DisasterEvent] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}
        self._running = False

    # ------------------------------------------------------------------ lifecycle

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start disaster recovery automation (health monitoring)"""
        if not self.config.enabled:
            logger.warning("disaster_recovery_disabled")
            return
        if self._running:
            return

        logger.info(
            "disaster_recovery_starting",
            auto_failover=self.config.auto_failover,
            rto_minutes=self.config.recovery_time_objective,
            rpo_minutes=self.config.recovery_point_objective,
            steps=len(self.config.recovery_steps),
        )
        for step_id, dependency in self.config.ordering_hazards():
            logger.warning(
                "recovery_step_always_skipped",
                step_id=step_id,
                dependency=dependency,
                reason="dependency is ordered after the dependent step",
            )

        await self.health_monitor.start()
        self._running = True

    async def stop(self) -> None:
        """Stop health monitoring; in-flight executions keep running"""
        if not self._running:
            return

        logger.info("disaster_recovery_stopping")
        await self.health_monitor.stop()
        self._running = False

    # ------------------------------------------------------------------ triggers

    def trigger_recovery(
        self,
        disaster_type: Union[DisasterType, str],
        description: str,
        affected_systems: Iterable[str],
        severity: Union[Severity, str, None] = None,
    ) -> str:
        """
        Declare a disaster and start recovering from it.

        The execution is registered in ``pending`` status and scheduled on the
        running event loop; the id is returned without waiting for any step.
        """
        event = self.event_factory.manual(disaster_type, description, affected_systems, severity)
        return self._launch(event, trigger="manual")

    def trigger_auto_recovery(self, failing_systems: Iterable[str]) -> str:
        """Health monitor escalation path"""
        event = self.event_factory.automatic(failing_systems)
        logger.error(
            "auto_recovery_triggered",
            event_id=event.id,
            failed_checks=len(event.affected_systems),
            failing_systems=event.affected_systems,
        )
        return self._launch(event, trigger="automatic")

    def _launch(self, event: DisasterEvent, trigger: str) -> str:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise ServiceNotRunning(
                "Recovery can only be triggered from a running event loop",
                details={"event_id": event.id},
            ) from e

        steps = self.config.recovery_steps
        execution = RecoveryExecution(
            id=generate_id("recovery"),
            disaster_event_id=event.id,
            started_at=self.clock.now(),
            steps=[RecoveryStepExecution(step_id=step.id) for step in steps],
            metrics=ExecutionMetrics(total_steps=len(steps)),
        )

        with self._lock:
            self._recoveries[execution.id] = execution
            self._events[event.id] = event
            self._cancel_events[execution.id] = asyncio.Event()
            self._recompute_metrics(execution)
            self._add_log(
                execution,
                LogLevel.INFO,
                f"Recovery started for disaster event: {event.description}",
                details={"event_id": event.id, "trigger": trigger},
            )
            self._tasks[execution.id] = loop.create_task(self._execute_recovery(execution, event))

        recoveries_triggered.labels(trigger=trigger).inc()
        active_recoveries.inc()
        return execution.id

    # ------------------------------------------------------------------ queries

    def get_recovery_status(self, recovery_id: str) -> Optional[RecoveryExecution]:
        """Snapshot of one execution, or None if the id is unknown"""
        with self._lock:
            execution = self._recoveries.get(recovery_id)
            return copy.deepcopy(execution) if execution is not None else None

    def get_active_recoveries(self) -> List[RecoveryExecution]:
        """Snapshots of every execution tracked by this orchestrator"""
        with self._lock:
            return [copy.deepcopy(execution) for execution in self._recoveries.values()]

    def get_disaster_event(self, event_id: str) -> Optional[DisasterEvent]:
        """Event that triggered an execution, or None if the id is unknown"""
        with self._lock:
            return self._events.get(event_id)

    async def wait_for_recovery(self, recovery_id: str, timeout: Optional[float] = None) -> RecoveryExecution:
        """Wait for an execution to finish and return its final snapshot"""
        with self._lock:
            task = self._tasks.get(recovery_id)
        if task is None:
            raise RecoveryNotFound(recovery_id)

        await asyncio.wait_for(asyncio.shield(task), timeout)
        return self.get_recovery_status(recovery_id)

    # ------------------------------------------------------------------ cancellation

    async def cancel_recovery(self, recovery_id: str) -> bool:
        """
        Cancel a pending or running execution.

        The step in flight is marked failed and rolled back once (if it
        declares a rollback command); the handler itself is not interrupted.

        Returns:
            False if the execution had already reached a terminal status
        """
        with self._lock:
            execution = self._recoveries.get(recovery_id)
            if execution is None:
                raise RecoveryNotFound(recovery_id)

            if execution.status.is_terminal:
                logger.info(
                    "recovery_cancel_ignored",
                    recovery_id=recovery_id,
                    status=execution.status.value,
                )
                return False

            now = self.clock.now()
            execution.status = ExecutionStatus.CANCELLED
            execution.completed_at = now
            execution.current_step = None
            self._add_log(execution, LogLevel.WARN, "Recovery cancelled by user")

            in_flight = [s for s in execution.steps if s.status == StepStatus.RUNNING]
            for step_execution in in_flight:
                self._finish_step(step_execution, StepStatus.FAILED, error="cancelled")
            self._recompute_metrics(execution)
            self._cancel_events[recovery_id].set()

        logger.warning("recovery_cancelled", recovery_id=recovery_id)

        for step_execution in in_flight:
            await self._rollback_step(execution, step_execution)
        return True

    async def _rollback_step(self, execution: RecoveryExecution, step_execution: RecoveryStepExecution) -> None:
        step = self.config.get_step(step_execution.step_id)
        if step is None or not step.rollback_command:
            logger.info("recovery_step_rollback_not_configured", step_id=step_execution.step_id)
            return

        try:
            await self.step_executor.rollback(step)
        except Exception as e:
            with self._lock:
                self._add_log(
                    execution,
                    LogLevel.ERROR,
                    f"Rollback of step {step.display_name} failed: {e}",
                    step_id=step.id,
                )
            return

        with self._lock:
            self._add_log(execution, LogLevel.INFO, f"Step {step.display_name} rolled back", step_id=step.id)

    # ------------------------------------------------------------------ execution

    async def _execute_recovery(self, execution: RecoveryExecution, event: DisasterEvent) -> None:
        try:
            await self._run_steps(execution, event)
        except Exception as e:
            fault = OrchestrationFault(execution.id, e)
            logger.error(
                "recovery_orchestration_fault",
                recovery_id=execution.id,
                error=str(e),
                exc_info=True,
            )
            with self._lock:
                if not execution.status.is_terminal:
                    for step_execution in execution.steps:
                        if step_execution.status == StepStatus.RUNNING:
                            self._finish_step(step_execution, StepStatus.FAILED, error=str(e))
                    execution.status = ExecutionStatus.FAILED
                    execution.completed_at = self.clock.now()
                    execution.current_step = None
                    self._recompute_metrics(execution)
                    self._add_log(execution, LogLevel.ERROR, fault.message)
        finally:
            active_recoveries.dec()
            if execution.status.is_terminal:
                recoveries_finished.labels(status=execution.status.value).inc()

        await self._notify_completion(execution)

    async def _run_steps(self, execution: RecoveryExecution, event: DisasterEvent) -> None:
        with self._lock:
            if execution.status != ExecutionStatus.PENDING:
                return
            execution.status = ExecutionStatus.RUNNING
            self._add_log(execution, LogLevel.INFO, "Recovery execution running")

        await self._notify_disaster(event, execution)
        cancel_event = self._cancel_events[execution.id]

        for step in self.config.ordered_steps():
            with self._lock:
                if execution.status == ExecutionStatus.CANCELLED:
                    return

                step_execution = execution.step(step.id)
                unmet = [
                    dep for dep in step.dependencies
                    if execution.step(dep).status != StepStatus.COMPLETED
                ]
                if unmet:
                    step_execution.status = StepStatus.SKIPPED
                    self._recompute_metrics(execution)
                    self._add_log(
                        execution,
                        LogLevel.WARN,
                        f"Step {step.display_name} skipped due to unmet dependencies: {', '.join(unmet)}",
                        step_id=step.id,
                    )
                    continue

                execution.current_step = step.id
                step_execution.status = StepStatus.RUNNING
                step_execution.started_at = self.clock.now()
                self._add_log(execution, LogLevel.INFO, f"Executing step: {step.display_name}", step_id=step.id)

            await self._execute_step(execution, step, step_execution, cancel_event)

            with self._lock:
                if execution.status == ExecutionStatus.CANCELLED:
                    return

                self._recompute_metrics(execution)
                if step_execution.status == StepStatus.FAILED and step.critical:
                    halt = CriticalStepFailure(execution.id, step.id, step_execution.error)
                    execution.status = ExecutionStatus.FAILED
                    self._add_log(execution, LogLevel.ERROR, halt.message, step_id=step.id)
                    break

        with self._lock:
            if execution.status == ExecutionStatus.CANCELLED:
                return

            if execution.status == ExecutionStatus.RUNNING:
                execution.status = (
                    ExecutionStatus.FAILED if execution.metrics.failed_steps > 0
                    else ExecutionStatus.COMPLETED
                )
            execution.completed_at = self.clock.now()
            execution.current_step = None
            level = LogLevel.INFO if execution.status == ExecutionStatus.COMPLETED else LogLevel.ERROR
            self._add_log(execution, level, f"Recovery {execution.status.value}")

    async def _execute_step(
        self,
        execution: RecoveryExecution,
        step: RecoveryStep,
        step_execution: RecoveryStepExecution,
        cancel_event: asyncio.Event,
    ) -> None:
        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            with self._lock:
                if step_execution.status != StepStatus.RUNNING:
                    return
                step_execution.retry_count = retry_state.attempt_number
                step_execution.error = str(error)
                self._add_log(
                    execution,
                    LogLevel.WARN,
                    f"Step {step.display_name} failed, retrying "
                    f"({step_execution.retry_count}/{step.retries})",
                    step_id=step.id,
                    details={"error": str(error)},
                )
            step_retries.labels(step_type=step.type.value).inc()

        async def sleep(seconds: float) -> None:
            await cancellable_sleep(self.clock, seconds, cancel_event)

        output = None
        try:
            async for attempt in build_step_retrying(step, sleep, before_sleep):
                with attempt:
                    if cancel_event.is_set():
                        raise StepAttemptAborted(step.id)
                    output = await self._attempt(step)
        except StepAttemptAborted:
            return
        except Exception as e:
            with self._lock:
                if step_execution.status != StepStatus.RUNNING:
                    return
                self._finish_step(step_execution, StepStatus.FAILED, error=str(e))
                self._add_log(
                    execution,
                    LogLevel.ERROR,
                    f"Step {step.display_name} failed after {step_execution.retry_count} retries: {e}",
                    step_id=step.id,
                )
            step_duration.labels(step_type=step.type.value, status="failed").observe(
                (step_execution.duration or 0) / 1000
            )
            return

        with self._lock:
            if step_execution.status != StepStatus.RUNNING:
                return
            self._finish_step(
                step_execution,
                StepStatus.COMPLETED,
                output=str(output) if output is not None else None,
            )
            self._add_log(
                execution,
                LogLevel.INFO,
                f"Step {step.display_name} completed successfully",
                step_id=step.id,
            )
        step_duration.labels(step_type=step.type.value, status="completed").observe(
            (step_execution.duration or 0) / 1000
        )

    async def _attempt(self, step: RecoveryStep) -> Any:
        try:
            return await asyncio.wait_for(self.step_executor.execute(step), timeout=step.timeout * 60)
        except asyncio.TimeoutError as e:
            raise StepTimeoutError(step.id, step.timeout) from e

    # ------------------------------------------------------------------ helpers

    def _finish_step(
        self,
        step_execution: RecoveryStepExecution,
        status: StepStatus,
        output: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        now = self.clock.now()
        step_execution.status = status
        step_execution.completed_at = now
        if step_execution.started_at is not None:
            step_execution.duration = (now - step_execution.started_at).total_seconds() * 1000
        if output is not None:
            step_execution.output = output
        if error is not None:
            step_execution.error = error

    def _recompute_metrics(self, execution: RecoveryExecution) -> None:
        metrics = execution.metrics
        metrics.completed_steps = execution.count(StepStatus.COMPLETED)
        metrics.failed_steps = execution.count(StepStatus.FAILED)
        if metrics.total_steps:
            execution.progress = int(math.floor(metrics.completed_steps / metrics.total_steps * 100 + 0.5))
        metrics.estimated_time_remaining = sum(
            step.timeout
            for step in self.config.recovery_steps
            if execution.step(step.id).status == StepStatus.PENDING
        )

    def _add_log(
        self,
        execution: RecoveryExecution,
        level: LogLevel,
        message: str,
        step_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        execution.logs.append(
            RecoveryLog(
                timestamp=self.clock.now(),
                level=level,
                message=message,
                step_id=step_id,
                details=details,
            )
        )
        self.recovery_logger.log(
            level.value,
            message,
            LOG_CATEGORY,
            recovery_id=execution.id,
            step_id=step_id,
        )

    async def _notify_disaster(self, event: DisasterEvent, execution: RecoveryExecution) -> None:
        snapshot = self.get_recovery_status(execution.id)
        try:
            await self.notification_gateway.send_disaster_notification(event, snapshot)
        except Exception as e:
            logger.error("disaster_notification_failed", recovery_id=execution.id, error=str(e))
            with self._lock:
                self._add_log(execution, LogLevel.ERROR, f"Disaster notification failed: {e}")

    async def _notify_completion(self, execution: RecoveryExecution) -> None:
        snapshot = self.get_recovery_status(execution.id)
        try:
            await self.notification_gateway.send_recovery_completion(snapshot)
        except Exception as e:
            logger.error(
                "recovery_completion_notification_failed",
                recovery_id=execution.id,
                error=str(e),
            )
