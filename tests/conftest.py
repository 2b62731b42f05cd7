"""
Shared fixtures for disaster recovery tests
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest
import structlog

from dr_automation.clock import ManualClock
from dr_automation.config import DisasterRecoveryConfig, RecoveryStep
from dr_automation.models import StepType
from dr_automation.step_executor import StepExecutor, StepHandler


class RecordingStepHandler(StepHandler):
    """
    Test double recording every attempt and rollback.

    ``failures`` maps step id to the number of leading attempts that fail;
    use a large number for "always fails".
    """

    def __init__(self, failures: Optional[Dict[str, int]] = None):
        self.failures = dict(failures or {})
        self.calls: List[str] = []
        self.rollbacks: List[str] = []

    def attempts(self, step_id: str) -> int:
        return self.calls.count(step_id)

    async def execute(self, step: RecoveryStep) -> Optional[str]:
        self.calls.append(step.id)
        if self.attempts(step.id) <= self.failures.get(step.id, 0):
            raise RuntimeError(f"{step.id} handler failed")
        return f"{step.id} ok"

    async def rollback(self, step: RecoveryStep) -> None:
        self.rollbacks.append(step.id)


class GatedStepHandler(RecordingStepHandler):
    """Blocks inside ``execute`` for the gated step until released"""

    def __init__(self, gated_step: str, failures: Optional[Dict[str, int]] = None):
        super().__init__(failures)
        self.gated_step = gated_step
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def execute(self, step: RecoveryStep) -> Optional[str]:
        if step.id == self.gated_step:
            self.entered.set()
            await self.release.wait()
        return await super().execute(step)


def make_step(step_id: str, order: int, **overrides: Any) -> Dict[str, Any]:
    step = {
        "id": step_id,
        "type": "custom",
        "order": order,
        "timeout": 5,
        "retries": 0,
        "dependencies": [],
        "critical": False,
    }
    step.update(overrides)
    return step


def make_config(steps: Optional[List[Dict[str, Any]]] = None, **overrides: Any) -> DisasterRecoveryConfig:
    data: Dict[str, Any] = {
        "enabled": True,
        "auto_failover": True,
        "recovery_time_objective": 30,
        "recovery_point_objective": 5,
        "health_check_interval": 5,
        "failure_threshold": 3,
        "notifications": {"channels": ["email"], "recipients": ["oncall@example.com"]},
        "recovery_steps": steps or [],
    }
    data.update(overrides)
    return DisasterRecoveryConfig.model_validate(data)


def executor_for(handler: StepHandler) -> StepExecutor:
    return StepExecutor({step_type: handler for step_type in StepType})


async def wait_until(predicate, attempts: int = 200) -> None:
    """Yield to the event loop until ``predicate()`` holds"""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture(autouse=True)
def reset_structlog():
    """Drop per-test logging configuration bound to captured streams"""
    yield
    structlog.reset_defaults()


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture
def runbook_config():
    """A (retries=1) -> B (critical) -> C"""
    return make_config([
        make_step("A", 1, type="database", retries=1),
        make_step("B", 2, type="service", dependencies=["A"], critical=True),
        make_step("C", 3, type="validation", dependencies=["B"]),
    ])
