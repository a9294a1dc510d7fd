"""
REST API Client for the platform API.

Provides the persistence ports used by workflow steps (bookmarks, pending
content, job status, read cursors) on top of the platform REST API.
HTTP errors propagate to the caller so the workflow's error hook sees them.
"""

from datetime import datetime
from typing import Any

import httpx

from link_enricher.logging import get_logger
from link_enricher.models import (
    Bookmark,
    PendingContent,
    PendingContentStatus,
    TaskStatusUpdate,
)

logger = get_logger(__name__)


class APIClient:
    """
    Client for the platform REST API.
    """

    # Default connection limits to prevent connection exhaustion
    DEFAULT_MAX_CONNECTIONS = 20
    DEFAULT_MAX_KEEPALIVE = 5

    def __init__(
        self,
        base_url: str,
        api_token: str = "",
        timeout: float = 30.0,
        max_connections: int | None = None,
        max_keepalive_connections: int | None = None,
    ):
        """
        Initialize the API client.

        Parameters
        ----------
        base_url : str
            Base URL of the API (e.g., "http://localhost:3000").
        api_token : str, optional
            Internal API token for authentication (default: "").
        timeout : float, optional
            Request timeout in seconds (default: 30.0).
        max_connections : int | None, optional
            Maximum concurrent connections (default: 20).
        max_keepalive_connections : int | None, optional
            Maximum keepalive connections (default: 5).
        """
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self.max_connections = max_connections or self.DEFAULT_MAX_CONNECTIONS
        self.max_keepalive_connections = max_keepalive_connections or self.DEFAULT_MAX_KEEPALIVE
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "APIClient":
        """Enter async context and create HTTP client."""
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        limits = httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive_connections,
        )

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            limits=limits,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context and close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raising if not in context."""
        if not self._client:
            raise RuntimeError("APIClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | list[Any]:
        """
        Make an HTTP request and return the JSON response.

        Parameters
        ----------
        method : str
            HTTP method (GET, POST, PATCH, etc.).
        path : str
            API path (e.g., "/api/bookmarks/batch").
        json : dict[str, Any] | None, optional
            JSON body for POST/PATCH/PUT requests.
        params : dict[str, Any] | None, optional
            Query parameters; None values are dropped.

        Returns
        -------
        dict[str, Any] | list[Any]
            Parsed JSON response (empty dict for 204 No Content).

        Raises
        ------
        httpx.HTTPStatusError
            If the response status code indicates an error.
        """
        client = self._get_client()
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        response = await client.request(method, path, json=json, params=params)
        response.raise_for_status()
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    # Bookmark operations

    async def save_bookmarks(self, bookmarks: list[Bookmark]) -> int:
        """
        Save bookmarks in one bulk request.

        Returns
        -------
        int
            Number of bookmarks the API reports as saved.
        """
        result = await self._request(
            "POST",
            "/api/bookmarks/batch",
            json={
                "bookmarks": [
                    b.model_dump(mode="json", by_alias=True, exclude_none=True) for b in bookmarks
                ]
            },
        )
        saved = result.get("saved", len(bookmarks)) if isinstance(result, dict) else len(bookmarks)
        logger.debug("Saved bookmarks", count=saved)
        return int(saved)

    async def find_existing_bookmark_urls(self, user_id: str, urls: list[str]) -> set[str]:
        """Return the subset of urls the user has already bookmarked."""
        if not urls:
            return set()
        result = await self._request(
            "POST", "/api/bookmarks/exists", json={"userId": user_id, "urls": urls}
        )
        existing = result.get("existing", []) if isinstance(result, dict) else []
        return set(existing)

    async def list_bookmarks(self, user_id: str, since: datetime | None = None) -> list[Bookmark]:
        """
        List a user's bookmarks, optionally only those created since a time.

        Parameters
        ----------
        user_id : str
            Owner of the bookmarks.
        since : datetime | None, optional
            Lower bound on created_at (default: all bookmarks).

        Returns
        -------
        list[Bookmark]
            Bookmarks ordered oldest first.
        """
        params: dict[str, Any] = {"userId": user_id}
        if since is not None:
            params["since"] = since.isoformat()
        result = await self._request("GET", "/api/bookmarks", params=params)
        rows = result if isinstance(result, list) else result.get("items", [])
        return [Bookmark.model_validate(row) for row in rows]

    # Pending content operations

    async def save_pending_content(self, records: list[PendingContent]) -> int:
        result = await self._request(
            "POST",
            "/api/pending-content/batch",
            json={
                "items": [
                    r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records
                ]
            },
        )
        saved = result.get("saved", len(records)) if isinstance(result, dict) else len(records)
        return int(saved)

    async def list_pending_content(
        self, user_id: str, status: str = "pending", limit: int | None = None
    ) -> list[PendingContent]:
        """
        List pending content records for a user.

        Parameters
        ----------
        user_id : str
            Owner of the records.
        status : str, optional
            Status filter (default: "pending").
        limit : int | None, optional
            Max records to return (default: no limit).

        Returns
        -------
        list[PendingContent]
            Records ordered oldest first.
        """
        result = await self._request(
            "GET",
            "/api/pending-content",
            params={"userId": user_id, "status": status, "limit": limit},
        )
        rows = result if isinstance(result, list) else result.get("items", [])
        return [PendingContent.model_validate(row) for row in rows]

    async def update_pending_content_status(
        self, record_id: str, status: PendingContentStatus
    ) -> None:
        await self._request(
            "PATCH", f"/api/pending-content/{record_id}", json={"status": status.value}
        )

    async def pending_content_exists(self, user_id: str, external_id: str) -> bool:
        result = await self._request(
            "GET",
            "/api/pending-content/exists",
            params={"userId": user_id, "externalId": external_id},
        )
        return bool(result.get("exists", False)) if isinstance(result, dict) else False

    # Task status operations

    async def update_task_status(self, task_id: str, update: TaskStatusUpdate) -> None:
        await self._request(
            "PATCH",
            f"/api/tasks/{task_id}",
            json=update.model_dump(by_alias=True, exclude_none=True),
        )

    # Cursor operations

    async def get_cursor(self, source_type: str, user_id: str) -> datetime | None:
        """
        Get the last read position for a source.

        Returns None when no cursor has been saved yet.
        """
        try:
            result = await self._request(
                "GET", f"/api/cursors/{source_type}", params={"userId": user_id}
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        value = result.get("value") if isinstance(result, dict) else None
        return datetime.fromisoformat(value) if value else None

    async def save_cursor(self, source_type: str, user_id: str, value: datetime) -> None:
        await self._request(
            "PUT",
            f"/api/cursors/{source_type}",
            json={"userId": user_id, "value": value.isoformat()},
        )


class ApiBookmarkRepository:
    """BookmarkRepository backed by APIClient."""

    def __init__(self, api: APIClient):
        self.api = api

    async def save_many(self, bookmarks: list[Bookmark]) -> int:
        return await self.api.save_bookmarks(bookmarks)

    async def exists_by_urls(self, user_id: str, urls: list[str]) -> set[str]:
        return await self.api.find_existing_bookmark_urls(user_id, urls)

    async def find_since(self, user_id: str, since: datetime | None = None) -> list[Bookmark]:
        return await self.api.list_bookmarks(user_id, since)


class ApiPendingContentRepository:
    """PendingContentRepository backed by APIClient."""

    def __init__(self, api: APIClient):
        self.api = api

    async def save_many(self, records: list[PendingContent]) -> int:
        return await self.api.save_pending_content(records)

    async def find_pending(self, user_id: str, limit: int | None = None) -> list[PendingContent]:
        return await self.api.list_pending_content(
            user_id, status=PendingContentStatus.PENDING.value, limit=limit
        )

    async def update_status(self, record_id: str, status: PendingContentStatus) -> None:
        await self.api.update_pending_content_status(record_id, status)

    async def exists_by_external_id(self, user_id: str, external_id: str) -> bool:
        return await self.api.pending_content_exists(user_id, external_id)


class ApiTaskStatusRepository:
    """TaskStatusRepository backed by APIClient."""

    def __init__(self, api: APIClient):
        self.api = api

    async def update_status(self, task_id: str, update: TaskStatusUpdate) -> None:
        await self.api.update_task_status(task_id, update)


class ApiCursorRepository:
    """CursorRepository backed by APIClient."""

    def __init__(self, api: APIClient):
        self.api = api

    async def load(self, source_type: str, user_id: str) -> datetime | None:
        return await self.api.get_cursor(source_type, user_id)

    async def save(self, source_type: str, user_id: str, value: datetime) -> None:
        await self.api.save_cursor(source_type, user_id, value)
