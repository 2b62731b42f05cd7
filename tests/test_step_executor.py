"""
Test recovery step dispatch
"""

from unittest.mock import AsyncMock

import pytest

from dr_automation.config import RecoveryStep
from dr_automation.core.exceptions import StepExecutionError, UnknownStepType
from dr_automation.models import StepType
from dr_automation.step_executor import (
    CallableStepHandler,
    SimulatedStepHandler,
    StepExecutor,
)


def _step(step_type="database", **overrides):
    return RecoveryStep.model_validate({"id": "restore", "type": step_type, "order": 1, **overrides})


class TestStepExecutor:
    """Test handler registration and dispatch"""

    @pytest.mark.asyncio
    async def test_dispatches_by_type(self):
        """Test the handler registered for the step type is called"""
        database = AsyncMock(return_value="restored")
        service = AsyncMock(return_value="restarted")
        executor = StepExecutor({
            "database": CallableStepHandler(database),
            StepType.SERVICE: CallableStepHandler(service),
        })

        result = await executor.execute(_step("database"))

        assert result == "restored"
        database.assert_awaited_once()
        service.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_type_raises(self):
        """Test a step type without a handler raises UnknownStepType"""
        executor = StepExecutor({"service": CallableStepHandler(AsyncMock())})

        with pytest.raises(UnknownStepType) as exc_info:
            await executor.execute(_step("files"))

        assert exc_info.value.step_id == "restore"
        assert exc_info.value.details["step_type"] == "files"

    @pytest.mark.asyncio
    async def test_handler_errors_propagate(self):
        """Test handler exceptions reach the caller unchanged"""
        executor = StepExecutor({"database": CallableStepHandler(AsyncMock(side_effect=OSError("disk")))})

        with pytest.raises(OSError, match="disk"):
            await executor.execute(_step())

    @pytest.mark.asyncio
    async def test_rollback_dispatch(self):
        """Test rollback goes to the handler's compensating action"""
        undo = AsyncMock()
        executor = StepExecutor({"database": CallableStepHandler(AsyncMock(), rollback_action=undo)})
        step = _step(rollback_command="restore snapshot")

        await executor.rollback(step)

        undo.assert_awaited_once_with(step)

    @pytest.mark.asyncio
    async def test_rollback_without_action_is_noop(self):
        """Test a handler without a rollback action does nothing"""
        executor = StepExecutor({"database": CallableStepHandler(AsyncMock())})

        assert await executor.rollback(_step()) is None

    def test_register_and_lookup(self):
        """Test registration replaces handlers and reports types"""
        first = CallableStepHandler(AsyncMock())
        second = CallableStepHandler(AsyncMock())
        executor = StepExecutor({"custom": first})

        executor.register("custom", second)
        executor.register(StepType.VALIDATION, first)

        assert executor.handler_for("custom") is second
        assert executor.handler_for(StepType.FILES) is None
        assert executor.registered_types == ["custom", "validation"]

    def test_register_rejects_unknown_type(self):
        """Test only known step types can be registered"""
        with pytest.raises(ValueError):
            StepExecutor().register("teleport", CallableStepHandler(AsyncMock()))


class TestSimulatedStepHandler:
    """Test the drill handler"""

    def test_simulated_executor_covers_all_types(self):
        """Test every step type has a simulated handler"""
        executor = StepExecutor.simulated()

        assert executor.registered_types == sorted(t.value for t in StepType)

    @pytest.mark.asyncio
    async def test_simulated_output(self):
        """Test the simulated output names the action"""
        handler = SimulatedStepHandler()

        output = await handler.execute(_step("service", command="systemctl restart api"))

        assert output == "Simulated service recovery: systemctl restart api"

    @pytest.mark.asyncio
    async def test_simulated_output_falls_back_to_name(self):
        """Test the display name is used when no command is configured"""
        output = await SimulatedStepHandler().execute(_step(name="Restore primary"))

        assert output == "Simulated database recovery: Restore primary"

    @pytest.mark.asyncio
    async def test_simulated_failure(self):
        """Test configured failing steps raise StepExecutionError"""
        handler = SimulatedStepHandler(failing_steps=["restore"])

        with pytest.raises(StepExecutionError, match="Simulated failure for step restore"):
            await handler.execute(_step())
