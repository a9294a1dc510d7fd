"""
Workflow builder and execution engine.

A Workflow is an ordered list of steps plus four optional lifecycle hooks.
``Workflow.execute`` runs the steps strictly in sequence and always invokes
``on_complete`` exactly once, whether the run finished, halted or raised.
"""

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic

from link_enricher.errors import DuplicateStepError, WorkflowCancelledError
from link_enricher.logging import get_logger, step_context
from link_enricher.pipeline.context import (
    CancellationToken,
    ItemProcessedInfo,
    T,
    WorkflowContext,
    create_workflow_context,
    invoke_callback,
)
from link_enricher.pipeline.step import WorkflowStep

logger = get_logger(__name__)


@dataclass(frozen=True)
class WorkflowExecutionStats:
    """Statistics produced once at workflow completion."""

    total_steps: int
    completed_steps: int
    executed_step_names: tuple[str, ...]
    duration_ms: float
    success: bool
    items_processed: int
    cancelled: bool = False
    # Message of the step that returned should_continue=False, if any
    halt_message: str | None = None


@dataclass(frozen=True)
class WorkflowStartInfo:
    """Argument of the on_start hook."""

    step_names: tuple[str, ...]
    source_path: str | None = None
    output_path: str | None = None


@dataclass(frozen=True)
class WorkflowErrorInfo(Generic[T]):
    """Argument of the on_error hook."""

    error: BaseException
    step_name: str
    context: WorkflowContext[T]
    step_index: int


@dataclass(frozen=True)
class ErrorHandlerResult(Generic[T]):
    """
    Decision returned by the on_error hook.

    ``context`` replaces the current context when continuing.
    """

    should_continue: bool
    context: WorkflowContext[T] | None = None


@dataclass(frozen=True)
class WorkflowCompleteInfo(Generic[T]):
    """Argument of the on_complete hook."""

    stats: WorkflowExecutionStats
    context: WorkflowContext[T]
    processed_items: tuple[T, ...] = field(default=())


StartHook = Callable[[WorkflowStartInfo], Awaitable[None] | None]
ItemHook = Callable[[ItemProcessedInfo[Any]], Awaitable[None] | None]
ErrorHook = Callable[
    [WorkflowErrorInfo[Any]], Awaitable[ErrorHandlerResult[Any]] | ErrorHandlerResult[Any]
]
CompleteHook = Callable[[WorkflowCompleteInfo[Any]], Awaitable[None] | None]


class Workflow(Generic[T]):
    """An ordered, built sequence of steps plus lifecycle hooks."""

    def __init__(
        self,
        steps: Sequence[WorkflowStep],
        on_start: StartHook | None = None,
        on_item_processed: ItemHook | None = None,
        on_error: ErrorHook | None = None,
        on_complete: CompleteHook | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._steps = tuple(steps)
        self._on_start = on_start
        self._on_item_processed = on_item_processed
        self._on_error = on_error
        self._on_complete = on_complete
        self._cancellation = cancellation

    @property
    def step_names(self) -> tuple[str, ...]:
        return tuple(step.name for step in self._steps)

    async def execute(
        self,
        user_id: str | None,
        source_path: str | None = None,
        output_path: str | None = None,
    ) -> WorkflowCompleteInfo[T]:
        """
        Run all steps in order.

        Parameters
        ----------
        user_id : str | None
            Identity the run acts on behalf of.
        source_path : str | None, optional
            Input location for reader steps.
        output_path : str | None, optional
            Output location for exporter steps.

        Returns
        -------
        WorkflowCompleteInfo[T]
            The same value handed to on_complete.

        Raises
        ------
        Exception
            Any step exception the on_error hook did not choose to absorb.
        """
        start_time = time.perf_counter()
        context: WorkflowContext[T] = create_workflow_context(
            user_id, source_path, output_path
        ).replace(
            on_item_processed=self._on_item_processed,
            cancellation=self._cancellation,
        )

        executed: list[str] = []
        success = False
        cancelled = False
        halt_message: str | None = None
        complete_info: WorkflowCompleteInfo[T] | None = None

        logger.info("Workflow start", steps=list(self.step_names), user_id=user_id)

        try:
            await invoke_callback(
                self._on_start,
                WorkflowStartInfo(
                    step_names=self.step_names,
                    source_path=source_path,
                    output_path=output_path,
                ),
            )

            for index, step in enumerate(self._steps):
                if context.is_cancelled:
                    cancelled = True
                    logger.info("Workflow cancelled before step", step=step.name)
                    break

                try:
                    with step_context(step.name):
                        result = await step.execute(context)
                except WorkflowCancelledError:
                    cancelled = True
                    executed.append(step.name)
                    logger.info("Workflow cancelled during step", step=step.name)
                    break
                except Exception as e:
                    logger.warning("Step failed", step=step.name, error=str(e))
                    decision = await invoke_callback(
                        self._on_error,
                        WorkflowErrorInfo(
                            error=e, step_name=step.name, context=context, step_index=index
                        ),
                    )
                    if decision is None or not decision.should_continue:
                        raise
                    executed.append(step.name)
                    if decision.context is not None:
                        context = decision.context
                    continue

                context = result.context
                executed.append(step.name)
                logger.debug(
                    "Step complete",
                    step=step.name,
                    items=len(context.items),
                    message=result.message,
                )
                if not result.should_continue:
                    logger.info("Workflow halted", step=step.name, message=result.message)
                    halt_message = result.message or f"Halted by {step.name}"
                    break

            success = not cancelled and halt_message is None
        finally:
            stats = WorkflowExecutionStats(
                total_steps=len(self._steps),
                completed_steps=len(executed),
                executed_step_names=tuple(executed),
                duration_ms=(time.perf_counter() - start_time) * 1000,
                success=success,
                items_processed=len(context.items),
                cancelled=cancelled,
                halt_message=halt_message,
            )
            complete_info = WorkflowCompleteInfo(
                stats=stats, context=context, processed_items=context.items
            )
            logger.info(
                "Workflow complete",
                success=stats.success,
                cancelled=stats.cancelled,
                completed_steps=stats.completed_steps,
                total_steps=stats.total_steps,
                items=stats.items_processed,
                duration_ms=round(stats.duration_ms, 1),
            )
            await invoke_callback(self._on_complete, complete_info)

        return complete_info


class WorkflowBuilder(Generic[T]):
    """
    Fluent builder for Workflow.

    Example
    -------
    >>> workflow = (
    ...     WorkflowBuilder()
    ...     .add_step(read_step)
    ...     .when(not skip_analysis, lambda b: b.add_step(analyze_step))
    ...     .on_complete(print_summary)
    ...     .build()
    ... )
    """

    def __init__(self) -> None:
        self._steps: list[WorkflowStep] = []
        self._on_start: StartHook | None = None
        self._on_item_processed: ItemHook | None = None
        self._on_error: ErrorHook | None = None
        self._on_complete: CompleteHook | None = None
        self._cancellation: CancellationToken | None = None

    def add_step(self, step: WorkflowStep) -> "WorkflowBuilder[T]":
        self._steps.append(step)
        return self

    def add_steps(self, steps: Sequence[WorkflowStep]) -> "WorkflowBuilder[T]":
        self._steps.extend(steps)
        return self

    def when(
        self,
        condition: bool,
        configure: Callable[["WorkflowBuilder[T]"], Any],
    ) -> "WorkflowBuilder[T]":
        """Apply configure to this builder only when condition is true."""
        if condition:
            configure(self)
        return self

    def on_start(self, hook: StartHook) -> "WorkflowBuilder[T]":
        self._on_start = hook
        return self

    def on_item_processed(self, hook: ItemHook) -> "WorkflowBuilder[T]":
        self._on_item_processed = hook
        return self

    def on_error(self, hook: ErrorHook) -> "WorkflowBuilder[T]":
        self._on_error = hook
        return self

    def on_complete(self, hook: CompleteHook) -> "WorkflowBuilder[T]":
        self._on_complete = hook
        return self

    def with_cancellation(self, token: CancellationToken) -> "WorkflowBuilder[T]":
        self._cancellation = token
        return self

    def build(self) -> Workflow[T]:
        """
        Build the workflow.

        Raises
        ------
        DuplicateStepError
            If two steps share a name.
        """
        seen: set[str] = set()
        for step in self._steps:
            if step.name in seen:
                raise DuplicateStepError(step.name)
            seen.add(step.name)

        return Workflow(
            steps=self._steps,
            on_start=self._on_start,
            on_item_processed=self._on_item_processed,
            on_error=self._on_error,
            on_complete=self._on_complete,
            cancellation=self._cancellation,
        )
