"""
Health monitoring loop for disaster detection
Periodically probes named subsystems and escalates sustained failures
"""

import asyncio
import inspect
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from .clock import Clock, SystemClock
from .config import DisasterRecoveryConfig
from .core.exceptions import ProbeFailure
from .logging_adapter import get_safe_logger
from .metrics import health_check_failures, health_failure_count

logger = get_safe_logger("dr_automation.health_monitor")

HealthProbe = Callable[[], Awaitable[bool]]
ThresholdCallback = Callable[[List[str]], Any]

MONITORED_SYSTEMS = ("database", "api", "storage", "network")


async def _assume_healthy() -> bool:
    return True


def default_probes() -> Dict[str, HealthProbe]:
    """Placeholder probes for the monitored systems; real checks are injected"""
    return {system: _assume_healthy for system in MONITORED_SYSTEMS}


class HealthMonitor:
    """
    Runs all subsystem probes on every tick and tracks consecutive failing
    ticks. Once ``failure_threshold`` is reached with auto failover enabled,
    ``on_threshold`` is called with the failing subsystem names on every
    failing tick until a fully healthy tick resets the count.
    """

    def __init__(
        self,
        config: DisasterRecoveryConfig,
        on_threshold: Optional[ThresholdCallback] = None,
        probes: Optional[Mapping[str, HealthProbe]] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config
        self.on_threshold = on_threshold
        self.clock = clock or SystemClock()
        self._probes: Dict[str, HealthProbe] = dict(probes) if probes is not None else default_probes()

        self.failure_count = 0
        self.system_health: Dict[str, bool] = {name: True for name in self._probes}
        self.last_check_at: Optional[datetime] = None

        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def systems(self) -> List[str]:
        return list(self._probes)

    async def start(self) -> None:
        """Start the tick loop: one immediate check, then every interval"""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._monitor_loop())
        logger.info(
            "health_monitor_started",
            interval_seconds=self.config.health_check_interval,
            failure_threshold=self.config.failure_threshold,
            systems=self.systems,
        )

    async def stop(self) -> None:
        """Stop the tick loop"""
        if not self._running:
            return

        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        logger.info("health_monitor_stopped")

    async def _monitor_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("health_check_loop_error", error=str(e), exc_info=True)
            await self.clock.sleep(self.config.health_check_interval)

    async def _run_probe(self, system: str, probe: HealthProbe) -> bool:
        try:
            healthy = bool(await probe())
            if not healthy:
                raise ProbeFailure(system)
            return True
        except Exception as e:
            logger.warning(
                "health_check_failed",
                system=system,
                error=str(e),
                error_type=type(e).__name__,
            )
            health_check_failures.labels(system=system).inc()
            return False

    async def tick(self) -> Dict[str, bool]:
        """
        Run every probe concurrently and update the failure count.

        Returns:
            Health result per subsystem for this tick
        """
        self.last_check_at = self.clock.now()

        names = list(self._probes)
        results = await asyncio.gather(
            *(self._run_probe(name, self._probes[name]) for name in names)
        )
        health = dict(zip(names, results))
        self.system_health.update(health)

        failing = [name for name in names if not health[name]]
        if failing:
            self.failure_count += 1
            logger.info(
                "health_check_tick_unhealthy",
                failing_systems=failing,
                failure_count=self.failure_count,
            )
        else:
            self.failure_count = 0
        health_failure_count.set(self.failure_count)

        if (
            failing
            and self.failure_count >= self.config.failure_threshold
            and self.config.auto_failover
        ):
            await self._escalate(failing)

        return health

    async def _escalate(self, failing: List[str]) -> None:
        if self.on_threshold is None:
            logger.warning("failure_threshold_reached_without_handler", failing_systems=failing)
            return

        try:
            result = self.on_threshold(failing)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "auto_recovery_trigger_failed",
                failing_systems=failing,
                error=str(e),
                exc_info=True,
            )
