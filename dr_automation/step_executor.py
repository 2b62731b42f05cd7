"""
Recovery step dispatch
Maps a step's declared type to a pluggable handler
"""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .config import RecoveryStep
from .core.exceptions import StepExecutionError, UnknownStepType
from .logging_adapter import get_safe_logger
from .models import StepType

logger = get_safe_logger("dr_automation.step_executor")

StepAction = Callable[[RecoveryStep], Awaitable[Optional[str]]]


class StepHandler:
    """
    Opaque unit of recovery work for one step type.

    ``execute`` either returns (optionally with an output string) or raises.
    """

    async def execute(self, step: RecoveryStep) -> Optional[str]:
        raise NotImplementedError

    async def rollback(self, step: RecoveryStep) -> None:
        """Compensating action for a step cancelled mid-flight"""
        return None


class CallableStepHandler(StepHandler):
    """Adapts plain coroutine functions to the handler interface"""

    def __init__(self, action: StepAction, rollback_action: Optional[StepAction] = None):
        self._action = action
        self._rollback_action = rollback_action

    async def execute(self, step: RecoveryStep) -> Optional[str]:
        return await self._action(step)

    async def rollback(self, step: RecoveryStep) -> None:
        if self._rollback_action is not None:
            await self._rollback_action(step)


class SimulatedStepHandler(StepHandler):
    """Logs the recovery action instead of performing it; used for drills"""

    def __init__(self, delay_seconds: float = 0.0, failing_steps: Iterable[str] = ()):
        self.delay_seconds = delay_seconds
        self.failing_steps = set(failing_steps)

    async def execute(self, step: RecoveryStep) -> Optional[str]:
        logger.info(
            "simulated_step_executing",
            step_id=step.id,
            step_type=step.type.value,
            command=step.command,
            script=step.script,
        )
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if step.id in self.failing_steps:
            raise StepExecutionError(step.id, f"Simulated failure for step {step.id}")
        action = step.command or step.script or step.validation_query or step.display_name
        return f"Simulated {step.type.value} recovery: {action}"

    async def rollback(self, step: RecoveryStep) -> None:
        logger.info(
            "simulated_step_rollback",
            step_id=step.id,
            rollback_command=step.rollback_command,
        )


class StepExecutor:
    """Capability map from step type to handler"""

    def __init__(self, handlers: Optional[Mapping[Union[StepType, str], StepHandler]] = None):
        self._handlers: Dict[StepType, StepHandler] = {}
        for step_type, handler in (handlers or {}).items():
            self.register(step_type, handler)

    @classmethod
    def simulated(cls, failing_steps: Iterable[str] = ()) -> 'StepExecutor':
        """Executor with a SimulatedStepHandler registered for every type"""
        handler = SimulatedStepHandler(failing_steps=failing_steps)
        return cls({step_type: handler for step_type in StepType})

    def register(self, step_type: Union[StepType, str], handler: StepHandler) -> None:
        self._handlers[StepType(step_type)] = handler

    def handler_for(self, step_type: Union[StepType, str]) -> Optional[StepHandler]:
        return self._handlers.get(StepType(step_type))

    @property
    def registered_types(self) -> List[str]:
        """Sorted values of every step type with a handler"""
        return sorted(t.value for t in self._handlers)

    async def execute(self, step: RecoveryStep) -> Optional[str]:
        handler = self.handler_for(step.type)
        if handler is None:
            raise UnknownStepType(step.id, step.type.value)
        return await handler.execute(step)

    async def rollback(self, step: RecoveryStep) -> None:
        handler = self.handler_for(step.type)
        if handler is None:
            raise UnknownStepType(step.id, step.type.value)
        await handler.rollback(step)
