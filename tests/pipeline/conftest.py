"""
Pytest fixtures for workflow engine tests.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from link_enricher.pipeline import StepResult, WorkflowContext

StepBehavior = Callable[[WorkflowContext[Any]], Awaitable[StepResult[Any]]]


class ScriptedStep:
    """WorkflowStep whose behavior is a coroutine function; records its calls."""

    def __init__(self, name: str, behavior: StepBehavior | None = None):
        self._name = name
        self._behavior = behavior
        self.calls: list[WorkflowContext[Any]] = []

    @property
    def name(self) -> str:
        return self._name

    async def execute(self, context: WorkflowContext[Any]) -> StepResult[Any]:
        self.calls.append(context)
        if self._behavior is None:
            return StepResult.proceed(context)
        return await self._behavior(context)


@pytest.fixture
def scripted_step() -> Callable[..., ScriptedStep]:
    """Factory for ScriptedStep instances."""
    return ScriptedStep


@pytest.fixture
def append_items() -> Callable[..., StepBehavior]:
    """Behavior factory: append the given items to the context."""

    def _factory(*items: Any) -> StepBehavior:
        async def behavior(context: WorkflowContext[Any]) -> StepResult[Any]:
            return StepResult.proceed(context.with_items([*context.items, *items]))

        return behavior

    return _factory
