"""
HTTP health check server for the Temporal worker.

Serves /health (liveness, runs the optional check) and /ready.
"""

import asyncio
from collections.abc import Awaitable, Callable

from aiohttp import web

from link_enricher.logging import get_logger

logger = get_logger(__name__)


class HealthServer:
    """HTTP server for health check endpoints."""

    def __init__(
        self,
        port: int = 8080,
        health_check: Callable[[], Awaitable[bool]] | None = None,
        check_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the health server.

        Parameters
        ----------
        port : int
            Port to listen on (default: 8080).
        health_check : Callable[[], Awaitable[bool]] | None
            Async function returning True while the worker is healthy.
        check_timeout : float
            Seconds before a health check counts as failed (default: 5.0).
        """
        self.port = port
        self.health_check = health_check
        self.check_timeout = check_timeout
        self.app = web.Application()
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/ready", self.handle_ready)
        self._runner: web.AppRunner | None = None

    async def handle_health(self, _request: web.Request) -> web.Response:
        """Return 200 when healthy, 503 otherwise."""
        if self.health_check is None:
            return web.Response(text="OK", status=200)
        try:
            is_healthy = await asyncio.wait_for(self.health_check(), timeout=self.check_timeout)
        except TimeoutError:
            logger.warning("Health check timed out")
            return web.Response(text="Timeout", status=503)
        except Exception as e:
            logger.error("Health check failed", error=str(e))
            return web.Response(text=f"Error: {e}", status=503)
        if is_healthy:
            return web.Response(text="OK", status=200)
        return web.Response(text="Unhealthy", status=503)

    async def handle_ready(self, _request: web.Request) -> web.Response:
        return web.Response(text="OK", status=200)

    async def start(self) -> None:
        """Start listening."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", self.port)
        await site.start()
        logger.info("Health server started", port=self.port)

    async def stop(self) -> None:
        """Stop the health server."""
        if self._runner:
            await self._runner.cleanup()
            logger.info("Health server stopped")
