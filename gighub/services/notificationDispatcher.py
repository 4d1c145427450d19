"""
Notification Dispatcher
=======================

Fire-and-forget fan-out of workflow events. Workflow services call
``trigger(event_name, payload)``; delivery runs as a background ``asyncio``
task on its own database session, so the caller never waits on it and a
delivery failure can never fail the primary operation.

A single dispatcher is built per process in the application lifespan and
injected into request handlers. ``drain()`` awaits in-flight deliveries and
is called on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gighub.services import notificationService

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Anything the workflow services can hand events to."""

    def trigger(self, event_name: str, payload: dict[str, Any]) -> None:
        ...


class NotificationDispatcher:
    """Schedules ``notificationService.deliver_trigger`` in the background."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def trigger(self, event_name: str, payload: dict[str, Any]) -> None:
        """Schedule delivery of ``event_name`` and return immediately."""
        try:
            task = asyncio.get_running_loop().create_task(
                self._deliver(event_name, payload),
                name=f"notify:{event_name}",
            )
        except RuntimeError:
            logger.error("No running event loop; dropping %s notification", event_name)
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Scheduled %s for user %s", event_name, payload.get("user_id"))

    async def _deliver(self, event_name: str, payload: dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                await notificationService.deliver_trigger(session, event_name, payload)
                await session.commit()
        except Exception:
            logger.exception(
                "Notification %s for user %s failed",
                event_name, payload.get("user_id"),
            )

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
