"""
Background fan-out scheduler.

Inbound webhooks trigger an outbound dispatch that must not hold up the
inbound response. Tasks are tracked here rather than left detached, so the
application can drain them on shutdown and every failure is logged.
"""

import asyncio
from typing import Optional

from core.errors import NoDestinationsConfigured
from core.logger import get_logger
from webhooks.dispatcher import WebhookDispatcher
from webhooks.models import WebhookEvent

logger = get_logger(__name__)


class BackgroundDispatcher:
    """Runs fire-and-forget dispatches as tracked asyncio tasks."""

    def __init__(self, dispatcher: WebhookDispatcher):
        self.dispatcher = dispatcher
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, event: WebhookEvent) -> Optional[asyncio.Task]:
        """
        Schedule delivery of ``event`` and return immediately.

        Must be called from a running event loop. Returns None once the
        scheduler has been shut down.
        """
        if self._closed:
            logger.warning(f"Dropping {event.type} event: background dispatcher is shut down")
            return None

        task = asyncio.get_running_loop().create_task(self._run(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, event: WebhookEvent) -> None:
        try:
            results = await self.dispatcher.dispatch(event)
        except NoDestinationsConfigured:
            logger.debug(f"No webhook destinations for {event.type} event")
        except asyncio.CancelledError:
            logger.warning(f"Background dispatch of {event.type} cancelled")
            raise
        except Exception:
            logger.exception(f"Background dispatch of {event.type} failed")
        else:
            for result in results:
                if not result.success:
                    logger.warning(f"Background delivery to {result.url} failed: {result.error}")

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Stop accepting work, wait up to ``timeout`` for in-flight tasks, cancel the rest."""
        self._closed = True
        if not self._tasks:
            return

        tasks = list(self._tasks)
        logger.info(f"Waiting for {len(tasks)} background dispatch(es)")
        _, still_running = await asyncio.wait(tasks, timeout=timeout)

        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning(f"Cancelled {len(still_running)} background dispatch(es)")
