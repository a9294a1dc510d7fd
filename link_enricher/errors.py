"""
Exception hierarchy for Link Enricher.

Expected per-item failures (a page that cannot be scraped, a tweet that is
rate limited) are never raised; they travel as data. These exceptions cover
structural failures and defects.
"""


class LinkEnricherError(Exception):
    """Base class for all Link Enricher errors."""


class StepConfigurationError(LinkEnricherError):
    """A step is missing configuration it cannot run without."""


class MissingUserIdError(StepConfigurationError):
    """A step requires a user identity and none was configured."""

    def __init__(self, step_name: str):
        super().__init__(f"user_id is required for {step_name}")
        self.step_name = step_name


class DuplicateStepError(LinkEnricherError):
    """Two steps in one workflow share a name."""

    def __init__(self, step_name: str):
        super().__init__(f"Duplicate step name in workflow: {step_name}")
        self.step_name = step_name


class WorkflowCancelledError(LinkEnricherError):
    """The workflow run was cancelled through its cancellation token."""


class UnknownPresetError(LinkEnricherError):
    """No preset is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown preset: {name}")
        self.name = name


class RateLimitedError(LinkEnricherError):
    """
    An upstream API answered HTTP 429.

    Raised by fetchers and consumed by CachedHttpClient, which records the
    reset time and turns the call into a None result.
    """

    def __init__(self, message: str, reset_at: float | None = None):
        super().__init__(message)
        self.reset_at = reset_at
