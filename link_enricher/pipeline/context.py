"""
Workflow context and per-step result types.

The context is an immutable value threaded through all steps. A step never
mutates the context it receives; it returns a new one built with
``replace``/``with_items``/``with_metadata``.
"""

import dataclasses
import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from link_enricher.errors import WorkflowCancelledError

T = TypeVar("T")

# Hooks and callbacks may be plain functions or coroutine functions
ItemProcessedCallback = Callable[["ItemProcessedInfo[Any]"], Awaitable[None] | None]


async def invoke_callback(callback: Callable[..., Any] | None, *args: Any) -> Any:
    """
    Call a sync or async callback and return its result.

    Parameters
    ----------
    callback : Callable[..., Any] | None
        Function or coroutine function. None is a no-op.
    *args : Any
        Positional arguments forwarded to the callback.

    Returns
    -------
    Any
        The callback's (awaited) return value, or None.
    """
    if callback is None:
        return None
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class CancellationToken:
    """
    Cooperative cancellation flag for one workflow run.

    The engine checks it between steps; long-running steps check it between
    items and the retry scheduler checks it while waiting.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "") -> None:
        """Request cancellation. Idempotent."""
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason

    def raise_if_cancelled(self) -> None:
        """Raise WorkflowCancelledError when cancellation was requested."""
        if self._cancelled:
            raise WorkflowCancelledError(self.reason or "Workflow cancelled")


@dataclass(frozen=True)
class ItemProcessedInfo(Generic[T]):
    """Notification emitted once per item by steps that report progress."""

    item: T
    index: int
    total: int
    step_name: str
    success: bool = True
    error: str | None = None


@dataclass(frozen=True)
class ItemOutcome:
    """Explicit per-item result used instead of exceptions for expected failures."""

    success: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "ItemOutcome":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "ItemOutcome":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class WorkflowContext(Generic[T]):
    """State threaded through every step of one workflow run."""

    user_id: str | None = None
    source_path: str | None = None
    output_path: str | None = None
    items: tuple[T, ...] = ()
    updated_ids: frozenset[str] = frozenset()
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    on_item_processed: ItemProcessedCallback | None = None
    cancellation: CancellationToken | None = None

    def __post_init__(self) -> None:
        # Normalize so callers can pass lists/sets/dicts without sharing them
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "updated_ids", frozenset(self.updated_ids))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def is_cancelled(self) -> bool:
        return self.cancellation is not None and self.cancellation.cancelled

    def replace(self, **changes: Any) -> "WorkflowContext[T]":
        """Return a new context with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def with_items(self, items: Iterable[T]) -> "WorkflowContext[T]":
        """Return a new context whose item collection is fully replaced."""
        return self.replace(items=tuple(items))

    def with_metadata(self, **entries: Any) -> "WorkflowContext[T]":
        """Return a new context with entries added on top of existing metadata."""
        return self.replace(metadata={**self.metadata, **entries})

    def without_metadata(self, *keys: str) -> "WorkflowContext[T]":
        """Return a new context with the given metadata keys removed."""
        return self.replace(
            metadata={k: v for k, v in self.metadata.items() if k not in keys}
        )

    def with_updated_ids(self, ids: Iterable[str]) -> "WorkflowContext[T]":
        """Return a new context with ids added to updated_ids."""
        return self.replace(updated_ids=self.updated_ids | frozenset(ids))

    async def notify_item_processed(self, info: ItemProcessedInfo[Any]) -> None:
        """Forward a progress notification to the injected callback, if any."""
        await invoke_callback(self.on_item_processed, info)


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Value returned by every step."""

    context: WorkflowContext[T]
    should_continue: bool = True
    message: str = ""

    @classmethod
    def proceed(cls, context: WorkflowContext[T], message: str = "") -> "StepResult[T]":
        return cls(context=context, should_continue=True, message=message)

    @classmethod
    def halt(cls, context: WorkflowContext[T], message: str) -> "StepResult[T]":
        """Stop the workflow after this step without raising."""
        return cls(context=context, should_continue=False, message=message)


def create_workflow_context(
    user_id: str | None,
    source_path: str | None = None,
    output_path: str | None = None,
) -> WorkflowContext[Any]:
    """
    Create the initial context for a workflow run.

    Parameters
    ----------
    user_id : str | None
        Identity the run acts on behalf of.
    source_path : str | None, optional
        Input location for reader steps (directory, archive, feed URL).
    output_path : str | None, optional
        Output location for exporter steps.

    Returns
    -------
    WorkflowContext[Any]
        Context with no items and empty metadata.
    """
    return WorkflowContext(
        user_id=user_id,
        source_path=source_path,
        output_path=output_path,
    )
