"""
Fire-and-forget access recording for the redirect path.

The redirect handler answers first; enrichment (geo lookup, user agent
classification) and the history insert run afterwards as an asyncio task
that nobody awaits. The event loop only keeps weak references to tasks,
so TaskSet holds them until they finish, and the app drains it on
shutdown.
"""

import asyncio
import logging
from typing import Callable, Coroutine, Optional, Set

from fastapi import Request
from sqlalchemy.orm import Session

from shortlink_app.geoip.strategies import GeoIpStrategy
from shortlink_app.services.history_service import HistoryService

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"


class TaskSet:
    """Strong references to in-flight background tasks"""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for pending tasks; whatever outlives the timeout is cancelled"""
        if not self._tasks:
            return

        pending = list(self._tasks)
        logger.info("Waiting for %d background task(s)", len(pending))
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning("Cancelled %d background task(s) on shutdown", len(not_done))


# Shared by every request in the process
background_tasks = TaskSet()


def _first_value(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first or None


def extract_client_ip(request: Request, trusted_platform: Optional[str] = None) -> str:
    """
    Best guess at the visitor address.

    Order: first X-Forwarded-For entry, X-Real-IP, the configured platform
    header (e.g. CF-Connecting-IP), the socket peer, else "unknown".
    """
    headers = request.headers
    candidates = [
        _first_value(headers.get("x-forwarded-for")),
        _first_value(headers.get("x-real-ip")),
        _first_value(headers.get(trusted_platform)) if trusted_platform else None,
        request.client.host if request.client else None,
    ]
    for candidate in candidates:
        if candidate:
            return candidate
    return UNKNOWN_IP


class AccessRecorder:
    """
    Schedules the enrich-and-record step of a redirect.

    Args:
        session_factory: Makes a fresh Session per task; the request's
            session may already be closed when the task runs
        geoip: Geo lookup backend
        tasks: Where spawned tasks are tracked
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        geoip: GeoIpStrategy,
        tasks: TaskSet = background_tasks,
    ):
        self.session_factory = session_factory
        self.geoip = geoip
        self.tasks = tasks

    def schedule(
        self,
        url_id: int,
        short_code: str,
        ip_address: str,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> asyncio.Task:
        return self.tasks.spawn(
            self.record(url_id, short_code, ip_address, user_agent, referer)
        )

    async def record(
        self,
        url_id: int,
        short_code: str,
        ip_address: str,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> None:
        """Never raises: the redirect it belongs to has already been sent"""
        db = self.session_factory()
        try:
            service = HistoryService(db, geoip=self.geoip)
            await service.record_access(
                url_id=url_id,
                short_code=short_code,
                ip_address=ip_address,
                user_agent=user_agent,
                referer=referer,
            )
        except Exception:
            logger.exception("Failed to record access for code: %s", short_code)
        finally:
            db.close()
