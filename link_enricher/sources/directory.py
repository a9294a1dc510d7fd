"""
Directory source reader.

Scans text files in a directory, or inside a zip archive, and emits one
item per distinct URL found in them.
"""

import asyncio
import fnmatch
import zipfile
from pathlib import Path

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem, ContentType, SourceAdapter
from link_enricher.ports import SourceReaderConfig
from link_enricher.utils.url import find_urls, normalize_url_for_dedup

logger = get_logger(__name__)

DEFAULT_FILE_PATTERN = "*"


def _read_directory(root: Path, recursive: bool, pattern: str) -> list[tuple[str, str]]:
    paths = root.rglob(pattern) if recursive else root.glob(pattern)
    files: list[tuple[str, str]] = []
    for path in sorted(paths):
        if path.is_file():
            files.append((str(path), path.read_text(encoding="utf-8", errors="ignore")))
    return files


def _read_zip(archive: Path, pattern: str) -> list[tuple[str, str]]:
    files: list[tuple[str, str]] = []
    with zipfile.ZipFile(archive) as zf:
        for name in sorted(zf.namelist()):
            if name.endswith("/") or not fnmatch.fnmatch(Path(name).name, pattern):
                continue
            files.append((name, zf.read(name).decode("utf-8", errors="ignore")))
    return files


class DirectorySourceReader:
    """
    Read URLs from local files.

    ``config.source_path`` names a directory or a ``.zip`` archive.
    ``options["recursive"]`` (default True) and ``options["file_pattern"]``
    control which files are scanned.
    """

    async def read(self, config: SourceReaderConfig) -> list[ContentItem]:
        if not config.source_path:
            logger.warning("No source_path given, directory reader returns nothing")
            return []

        path = Path(config.source_path)
        pattern = config.options.get("file_pattern", DEFAULT_FILE_PATTERN)
        if path.suffix.lower() == ".zip":
            adapter = SourceAdapter.ZIP_FILE
            files = await asyncio.to_thread(_read_zip, path, pattern)
        else:
            adapter = SourceAdapter.DIRECTORY
            recursive = bool(config.options.get("recursive", True))
            files = await asyncio.to_thread(_read_directory, path, recursive, pattern)

        logger.info("Scanned files", path=str(path), count=len(files))

        items: list[ContentItem] = []
        seen: set[str] = set()
        for _name, text in files:
            for url in find_urls(text):
                key = normalize_url_for_dedup(url)
                if key in seen:
                    continue
                seen.add(key)
                items.append(
                    ContentItem(
                        url=url,
                        source_adapter=adapter,
                        raw_content="",
                        content_type=ContentType.TEXT,
                    )
                )
                if config.limit and len(items) >= config.limit:
                    return items
        return items
