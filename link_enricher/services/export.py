"""
CSV exporter for content items.
"""

import asyncio
import csv
from pathlib import Path

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem

logger = get_logger(__name__)

CSV_COLUMNS = ["url", "source", "content_type", "tags", "summary", "created_at", "updated_at"]


def _row(item: ContentItem) -> dict[str, str]:
    return {
        "url": item.url,
        "source": item.source_adapter.value,
        "content_type": item.content_type.value,
        "tags": ", ".join(item.tags),
        "summary": item.summary,
        "created_at": item.created_at.isoformat(),
        "updated_at": item.updated_at.isoformat(),
    }


class CsvExporter:
    """Write items to a UTF-8 CSV file, one row per item."""

    async def export(self, items: list[ContentItem], output_path: str) -> str:
        """
        Write items to output_path, creating parent directories.

        Parameters
        ----------
        items : list[ContentItem]
            Items to write.
        output_path : str
            Destination file path. An existing file is overwritten.

        Returns
        -------
        str
            The path written to.
        """
        path = Path(output_path)
        await asyncio.to_thread(self._write, items, path)
        logger.debug("Wrote CSV", path=str(path), rows=len(items))
        return str(path)

    @staticmethod
    def _write(items: list[ContentItem], path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for item in items:
                writer.writerow(_row(item))
