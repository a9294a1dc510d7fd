"""
Read-cursor repositories.

A cursor records how far a source reader has read, scoped per source type
and per user. Readers load it before reading and save it afterwards.
"""

import asyncio
import json
import re
from datetime import UTC, datetime, timedelta
from pathlib import Path

from link_enricher.logging import get_logger
from link_enricher.ports import CursorRepository, SourceReaderConfig

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class InMemoryCursorRepository:
    """Cursor store that lives as long as the process."""

    def __init__(self) -> None:
        self._values: dict[tuple[str, str], datetime] = {}

    async def load(self, source_type: str, user_id: str) -> datetime | None:
        return self._values.get((source_type, user_id))

    async def save(self, source_type: str, user_id: str, value: datetime) -> None:
        self._values[(source_type, user_id)] = value


class FileCursorRepository:
    """
    Cursor store backed by one JSON file per source type.

    Each file maps user id to an ISO 8601 timestamp.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, source_type: str) -> Path:
        safe_name = _UNSAFE_FILENAME_CHARS.sub("_", source_type)
        return self.directory / f"{safe_name}.json"

    def _read(self, source_type: str) -> dict[str, str]:
        path = self._path(source_type)
        if not path.exists():
            return {}
        return json.loads(path.read_text(encoding="utf-8"))

    def _write(self, source_type: str, data: dict[str, str]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(source_type)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(path)

    async def load(self, source_type: str, user_id: str) -> datetime | None:
        data = await asyncio.to_thread(self._read, source_type)
        value = data.get(user_id)
        return datetime.fromisoformat(value) if value else None

    async def save(self, source_type: str, user_id: str, value: datetime) -> None:
        data = await asyncio.to_thread(self._read, source_type)
        data[user_id] = value.isoformat()
        await asyncio.to_thread(self._write, source_type, data)
        logger.debug("Saved cursor", source_type=source_type, user_id=user_id)


async def resolve_since(
    config: SourceReaderConfig,
    cursors: CursorRepository | None,
    source_type: str,
    default_days: int,
    now: datetime | None = None,
) -> datetime:
    """
    Decide where a reader should start.

    Priority: explicit ``since``, then ``limit_days``, then the saved cursor,
    then ``default_days`` before now.

    Parameters
    ----------
    config : SourceReaderConfig
        Reader filter.
    cursors : CursorRepository | None
        Cursor store, or None to ignore cursors.
    source_type : str
        Cursor scope (e.g. "gmail").
    default_days : int
        First-run lookback.
    now : datetime | None, optional
        Current time (default: datetime.now(UTC)).

    Returns
    -------
    datetime
        Timezone-aware start time.
    """
    now = now or datetime.now(UTC)
    if config.since is not None:
        return config.since
    if config.limit_days:
        return now - timedelta(days=config.limit_days)
    if cursors is not None and config.user_id:
        saved = await cursors.load(source_type, config.user_id)
        if saved is not None:
            return saved
    return now - timedelta(days=default_days)
