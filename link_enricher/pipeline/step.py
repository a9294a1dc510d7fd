"""
Step contract shared by all workflow steps.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, ClassVar, Generic, Protocol, runtime_checkable

from link_enricher.errors import MissingUserIdError
from link_enricher.logging import get_logger
from link_enricher.pipeline.context import (
    ItemOutcome,
    ItemProcessedInfo,
    StepResult,
    T,
    WorkflowContext,
)

logger = get_logger(__name__)


@runtime_checkable
class WorkflowStep(Protocol):
    """A named unit of work that consumes and replaces the context items."""

    @property
    def name(self) -> str: ...

    async def execute(self, context: WorkflowContext[Any]) -> StepResult[Any]: ...


class BaseWorkflowStep(ABC, Generic[T]):
    """
    Base class for steps.

    Subclasses implement ``run``. ``execute`` skips the step with an
    unchanged context when there are no input items, unless the step is a
    producer (``skip_if_empty`` returns False).
    """

    step_name: ClassVar[str] = ""

    def __init__(self, name: str | None = None) -> None:
        self._name = name or self.step_name or type(self).__name__

    @property
    def name(self) -> str:
        return self._name

    def skip_if_empty(self) -> bool:
        """Return False for producer steps that create the initial items."""
        return True

    async def execute(self, context: WorkflowContext[T]) -> StepResult[T]:
        if self.skip_if_empty() and not context.items:
            logger.debug("Skipping step with no items", step=self.name)
            return StepResult.proceed(context, f"No items to {self.name}")
        return await self.run(context)

    @abstractmethod
    async def run(self, context: WorkflowContext[T]) -> StepResult[T]:
        """Do the step's work on a non-empty context."""

    def check_cancelled(self, context: WorkflowContext[T]) -> None:
        """Raise WorkflowCancelledError if the run was cancelled."""
        if context.cancellation is not None:
            context.cancellation.raise_if_cancelled()

    def require_user_id(self, context: WorkflowContext[T]) -> str:
        """
        Return the context's user id.

        Raises
        ------
        MissingUserIdError
            If the context carries no user identity.
        """
        if not context.user_id:
            raise MissingUserIdError(self.name)
        return context.user_id

    async def report_item(
        self,
        context: WorkflowContext[T],
        item: T,
        index: int,
        total: int,
        outcome: ItemOutcome | None = None,
    ) -> None:
        """Emit one progress notification for a single item."""
        outcome = outcome or ItemOutcome.ok()
        await context.notify_item_processed(
            ItemProcessedInfo(
                item=item,
                index=index,
                total=total,
                step_name=self.name,
                success=outcome.success,
                error=outcome.error,
            )
        )

    async def report_progress(
        self,
        context: WorkflowContext[T],
        items: Sequence[T],
        get_result: Callable[[T, int], ItemOutcome] | None = None,
    ) -> None:
        """
        Emit one progress notification per item, in order.

        Parameters
        ----------
        context : WorkflowContext[T]
            Context carrying the progress callback.
        items : Sequence[T]
            Items to report.
        get_result : Callable[[T, int], ItemOutcome] | None, optional
            Maps (item, index) to its outcome. All items succeed when omitted.
        """
        total = len(items)
        for index, item in enumerate(items):
            outcome = get_result(item, index) if get_result else None
            await self.report_item(context, item, index, total, outcome)
