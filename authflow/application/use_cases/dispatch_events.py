from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from authflow.application.dto.options import EventHandler
from authflow.domain.entities.event import EventKind, LifecycleEvent

from .auth_common import maybe_await


logger = logging.getLogger(__name__)


class EventDispatcher:
    """Fire-and-forget lifecycle notifications.

    Handlers run as background tasks on the running loop. The dispatcher holds a strong
    reference to each task until it finishes; failures are logged and never reach the caller.
    """

    def __init__(self) -> None:
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._background)

    def dispatch(
        self,
        handlers: Mapping[EventKind, EventHandler],
        event: LifecycleEvent,
    ) -> asyncio.Task[Any] | None:
        handler = handlers.get(event.kind)
        if handler is None:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("event_dispatcher: no running loop, dropping event kind=%s", event.kind.value)
            return None

        async def runner() -> None:
            await maybe_await(handler(event))

        task = loop.create_task(runner())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(_log_task_error)
        logger.debug("event_dispatcher: scheduled kind=%s", event.kind.value)
        return task

    async def join_background(self) -> None:
        """Wait for every scheduled handler; used at shutdown and in tests."""
        if self._background:
            await asyncio.gather(*tuple(self._background), return_exceptions=True)


def _log_task_error(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("event_dispatcher: handler failed", exc_info=error)
