"""
Test Prometheus metrics emitted by recovery executions
"""

import asyncio

import pytest
from prometheus_client import REGISTRY

from dr_automation.health_monitor import HealthMonitor
from dr_automation.models import ExecutionStatus
from dr_automation.orchestrator import RecoveryOrchestrator

from conftest import GatedStepHandler, RecordingStepHandler, executor_for, make_config, make_step


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestRecoveryMetrics:
    """Test recovery counters and gauges"""

    @pytest.mark.asyncio
    async def test_execution_metrics(self, manual_clock):
        """Test trigger, finish, retry and active gauge bookkeeping"""
        config = make_config([make_step("A", 1, type="database", retries=1)])
        handler = RecordingStepHandler(failures={"A": 1})
        orchestrator = RecoveryOrchestrator(config, step_executor=executor_for(handler), clock=manual_clock)

        triggered = _sample("dr_recoveries_triggered_total", {"trigger": "manual"})
        finished = _sample("dr_recoveries_finished_total", {"status": "completed"})
        retries = _sample("dr_recovery_step_retries_total", {"step_type": "database"})
        active = _sample("dr_active_recoveries")

        recovery_id = orchestrator.trigger_recovery("manual_trigger", "Drill", [])
        assert _sample("dr_active_recoveries") == active + 1
        await orchestrator.wait_for_recovery(recovery_id, timeout=5)

        assert _sample("dr_recoveries_triggered_total", {"trigger": "manual"}) == triggered + 1
        assert _sample("dr_recoveries_finished_total", {"status": "completed"}) == finished + 1
        assert _sample("dr_recovery_step_retries_total", {"step_type": "database"}) == retries + 1
        assert _sample("dr_active_recoveries") == active


    @pytest.mark.asyncio
    async def test_interrupted_task_is_not_counted_as_finished(self, manual_clock):
        """Test an execution task cancelled mid-run records no finished status"""
        handler = GatedStepHandler("A")
        config = make_config([make_step("A", 1)])
        orchestrator = RecoveryOrchestrator(config, step_executor=executor_for(handler), clock=manual_clock)

        finished = {
            status.value: _sample("dr_recoveries_finished_total", {"status": status.value})
            for status in ExecutionStatus
        }
        active = _sample("dr_active_recoveries")

        recovery_id = orchestrator.trigger_recovery("manual_trigger", "Drill", [])
        await asyncio.wait_for(handler.entered.wait(), timeout=5)
        task = orchestrator._tasks[recovery_id]
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        assert orchestrator.get_recovery_status(recovery_id).status == ExecutionStatus.RUNNING
        for status, value in finished.items():
            assert _sample("dr_recoveries_finished_total", {"status": status}) == value
        assert _sample("dr_active_recoveries") == active


class TestHealthMetrics:
    """Test health check metrics"""

    @pytest.mark.asyncio
    async def test_probe_failures_counted(self, manual_clock):
        """Test failing probes increment the per-system counter and the gauge follows the count"""
        async def down():
            return False

        monitor = HealthMonitor(make_config(failure_threshold=5), probes={"storage": down}, clock=manual_clock)
        before = _sample("dr_health_check_failures_total", {"system": "storage"})

        await monitor.tick()
        await monitor.tick()

        assert _sample("dr_health_check_failures_total", {"system": "storage"}) == before + 2
        assert _sample("dr_health_failure_count") == 2
