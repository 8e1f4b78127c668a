"""
Deferred unread-message alerts.

Each new message arms one timer keyed by its id. Marking the message viewed
cancels the timer; when a timer fires, the callback is responsible for
re-reading the message and deciding whether an alert is still due.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Set
from uuid import UUID

logger = logging.getLogger(__name__)

OnFire = Callable[[UUID], Awaitable[None]]


class NotificationScheduler:
    """
    In-process table of pending per-message timers.

    Built once at application startup and shut down with it. Timers do not
    survive a restart.
    """

    def __init__(self, delay: float = 300.0):
        self.delay = delay
        self._timers: Dict[UUID, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()

    def arm(self, message_id: UUID, on_fire: OnFire, delay: Optional[float] = None) -> bool:
        """
        Schedule ``on_fire(message_id)`` after the grace period.

        Returns False without scheduling anything when a timer for this
        message is already pending.
        """
        if message_id in self._timers:
            logger.warning(f"Notification timer for message {message_id} is already armed")
            return False

        wait = self.delay if delay is None else delay
        task = asyncio.create_task(
            self._run(message_id, on_fire, wait),
            name=f"notify-{message_id}",
        )
        self._timers[message_id] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Armed notification for message {message_id} in {wait}s")
        return True

    def cancel(self, message_id: UUID) -> bool:
        """
        Cancel the pending timer of a message. Safe to call repeatedly.
        """
        task = self._timers.pop(message_id, None)
        if task is None:
            return False
        task.cancel()
        logger.debug(f"Cancelled notification for message {message_id}")
        return True

    def is_armed(self, message_id: UUID) -> bool:
        return message_id in self._timers

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    async def _run(self, message_id: UUID, on_fire: OnFire, delay: float) -> None:
        await asyncio.sleep(delay)
        # Past this point the timer has fired and cancel() no longer applies
        if self._timers.get(message_id) is asyncio.current_task():
            del self._timers[message_id]
        try:
            await on_fire(message_id)
        except Exception:
            logger.exception(f"Notification for message {message_id} failed")

    async def shutdown(self) -> None:
        """
        Cancel every pending timer and in-flight notification.
        """
        tasks = list(self._tasks)
        self._timers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} pending notification(s)")
