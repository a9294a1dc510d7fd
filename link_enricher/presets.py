"""
Workflow presets.

A preset names a source and an ordered list of steps. Optional steps are
added with ``WorkflowBuilder.when`` so that the steps themselves never
branch on job options.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from link_enricher.config import DEFAULT_MAX_EXTRACTED_URLS
from link_enricher.errors import UnknownPresetError
from link_enricher.logging import get_logger
from link_enricher.models import ContentItem
from link_enricher.pipeline import WorkflowBuilder
from link_enricher.ports import (
    BookmarkEnricher,
    BookmarkRepository,
    ContentAnalyzer,
    ContentFetcher,
    Exporter,
    PendingContentRepository,
    RateLimitedClient,
    SourceReader,
)
from link_enricher.services.retry_handler import RetryHandlerService
from link_enricher.steps import (
    AnalyzeStep,
    BookmarkEnrichmentStep,
    ExportStep,
    ReadStep,
    RetryStep,
    SaveToPendingContentStep,
    TwitterEnrichmentStep,
)

logger = get_logger(__name__)

SAVE_TO_DATABASE = "database"

# Source reader keys in PresetDependencies.readers
SOURCE_GMAIL = "gmail"
SOURCE_BOOKMARK = "bookmark"
SOURCE_DIRECTORY = "directory"
SOURCE_PENDING_CONTENT = "pending_content"
SOURCE_FEED = "feed"

_RESERVED_OPTIONS = {
    "limit",
    "limit_days",
    "skip_analysis",
    "skip_twitter",
    "with_nested",
    "save_to",
    "max_extracted_urls",
}


@dataclass
class PresetOptions:
    """Per-job switches understood by the presets."""

    limit: int | None = None
    limit_days: int | None = None
    skip_analysis: bool = False
    skip_twitter: bool = False
    with_nested: bool = False
    save_to: str | None = None
    max_extracted_urls: int = DEFAULT_MAX_EXTRACTED_URLS
    # Everything else is handed to the source reader
    reader_options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "PresetOptions":
        """
        Build options from a job's loosely typed option mapping.

        Unknown keys are passed through to the source reader.
        """
        limit = options.get("limit")
        limit_days = options.get("limit_days")
        return cls(
            limit=int(limit) if limit else None,
            limit_days=int(limit_days) if limit_days else None,
            skip_analysis=bool(options.get("skip_analysis", False)),
            skip_twitter=bool(options.get("skip_twitter", False)),
            with_nested=bool(options.get("with_nested", False)),
            save_to=options.get("save_to") or None,
            max_extracted_urls=int(
                options.get("max_extracted_urls", DEFAULT_MAX_EXTRACTED_URLS)
            ),
            reader_options={k: v for k, v in options.items() if k not in _RESERVED_OPTIONS},
        )


@dataclass
class PresetDependencies:
    """Collaborators the presets wire into their steps."""

    readers: dict[str, SourceReader] = field(default_factory=dict)
    analyzer: ContentAnalyzer | None = None
    fetcher: ContentFetcher | None = None
    enricher: BookmarkEnricher | None = None
    twitter_client: RateLimitedClient | None = None
    retry_handler: RetryHandlerService | None = None
    bookmark_repository: BookmarkRepository | None = None
    pending_repository: PendingContentRepository | None = None
    exporter: Exporter | None = None
    output_path: str | None = None


Configure = Callable[[WorkflowBuilder[ContentItem], PresetDependencies, PresetOptions], None]


@dataclass(frozen=True)
class Preset:
    name: str
    source: str
    configure: Configure


def _read_step(source: str, deps: PresetDependencies, options: PresetOptions) -> ReadStep:
    return ReadStep(
        deps.readers.get(source),
        source_name=source,
        limit=options.limit,
        limit_days=options.limit_days,
        options=dict(options.reader_options),
    )


def _add_twitter_enrichment(b: WorkflowBuilder[ContentItem], deps: PresetDependencies) -> None:
    b.add_step(TwitterEnrichmentStep(deps.twitter_client, deps.analyzer))
    b.when(
        deps.retry_handler is not None,
        lambda rb: rb.add_step(RetryStep(deps.retry_handler)),
    )


def _add_destination(
    b: WorkflowBuilder[ContentItem], deps: PresetDependencies, options: PresetOptions
) -> None:
    if options.save_to == SAVE_TO_DATABASE:
        if deps.pending_repository is None:
            logger.error("No pending content repository configured for save_to=database")
            return
        b.add_step(SaveToPendingContentStep(deps.pending_repository))
    elif not options.save_to:
        b.add_step(ExportStep(deps.exporter, deps.output_path))


def _gmail(b: WorkflowBuilder[ContentItem], deps: PresetDependencies, options: PresetOptions) -> None:
    b.add_step(_read_step(SOURCE_GMAIL, deps, options))
    b.when(not options.skip_analysis, lambda sb: sb.add_step(AnalyzeStep(deps.analyzer)))
    _add_destination(b, deps, options)


def _bookmark(
    b: WorkflowBuilder[ContentItem], deps: PresetDependencies, options: PresetOptions
) -> None:
    b.add_step(_read_step(SOURCE_BOOKMARK, deps, options))
    b.when(not options.skip_analysis, lambda sb: sb.add_step(AnalyzeStep(deps.analyzer)))
    b.when(not options.skip_twitter, lambda sb: _add_twitter_enrichment(sb, deps))


def _analyze_only(
    b: WorkflowBuilder[ContentItem], deps: PresetDependencies, options: PresetOptions
) -> None:
    b.add_step(_read_step(SOURCE_DIRECTORY, deps, options))
    b.add_step(AnalyzeStep(deps.analyzer))


def _twitter_focus(
    b: WorkflowBuilder[ContentItem], deps: PresetDependencies, options: PresetOptions
) -> None:
    b.add_step(_read_step(SOURCE_DIRECTORY, deps, options))
    b.when(not options.skip_analysis, lambda sb: sb.add_step(AnalyzeStep(deps.analyzer)))
    _add_twitter_enrichment(b, deps)
    b.add_step(ExportStep(deps.exporter, deps.output_path))


def _csv_only(
    b: WorkflowBuilder[ContentItem], deps: PresetDependencies, options: PresetOptions
) -> None:
    b.add_step(_read_step(SOURCE_DIRECTORY, deps, options))
    b.add_step(ExportStep(deps.exporter, deps.output_path))


def _bookmark_enrichment(
    b: WorkflowBuilder[ContentItem], deps: PresetDependencies, options: PresetOptions
) -> None:
    b.add_step(_read_step(SOURCE_PENDING_CONTENT, deps, options))

    if (
        deps.fetcher is None
        or deps.enricher is None
        or deps.pending_repository is None
        or deps.bookmark_repository is None
    ):
        logger.error("Bookmark enrichment is not fully configured, only reading")
        return

    b.add_step(
        BookmarkEnrichmentStep(
            deps.fetcher,
            deps.enricher,
            deps.pending_repository,
            deps.bookmark_repository,
            with_nested=options.with_nested,
            max_extracted_urls=options.max_extracted_urls,
        )
    )


def _feed(b: WorkflowBuilder[ContentItem], deps: PresetDependencies, options: PresetOptions) -> None:
    b.add_step(_read_step(SOURCE_FEED, deps, options))
    b.when(not options.skip_analysis, lambda sb: sb.add_step(AnalyzeStep(deps.analyzer)))
    _add_destination(b, deps, options)


PRESETS: dict[str, Preset] = {
    "gmail": Preset("gmail", SOURCE_GMAIL, _gmail),
    "bookmark": Preset("bookmark", SOURCE_BOOKMARK, _bookmark),
    "analyze_only": Preset("analyze_only", SOURCE_DIRECTORY, _analyze_only),
    "twitter_focus": Preset("twitter_focus", SOURCE_DIRECTORY, _twitter_focus),
    "csv_only": Preset("csv_only", SOURCE_DIRECTORY, _csv_only),
    "bookmark_enrichment": Preset(
        "bookmark_enrichment", SOURCE_PENDING_CONTENT, _bookmark_enrichment
    ),
    "feed": Preset("feed", SOURCE_FEED, _feed),
}


def get_preset(name: str) -> Preset:
    """
    Look up a preset by name.

    Raises
    ------
    UnknownPresetError
        If no preset is registered under name.
    """
    preset = PRESETS.get(name)
    if preset is None:
        raise UnknownPresetError(name)
    return preset


def build_preset(
    name: str,
    deps: PresetDependencies,
    options: PresetOptions | None = None,
) -> WorkflowBuilder[ContentItem]:
    """
    Create a builder holding the steps of a preset.

    Parameters
    ----------
    name : str
        Preset name (see PRESETS).
    deps : PresetDependencies
        Collaborators for the steps.
    options : PresetOptions | None, optional
        Job switches (default: all off).

    Returns
    -------
    WorkflowBuilder[ContentItem]
        Builder with the steps added. Callers attach hooks and build.
    """
    preset = get_preset(name)
    options = options or PresetOptions()
    builder: WorkflowBuilder[ContentItem] = WorkflowBuilder()
    preset.configure(builder, deps, options)
    return builder
