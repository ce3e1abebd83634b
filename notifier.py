"""Ordered, asynchronous delivery of status updates to the UI side."""

from __future__ import annotations

import logging
import threading
from queue import Queue
from typing import Callable, Optional

from models import StatusUpdate

logger = logging.getLogger(__name__)

StatusCallback = Callable[[StatusUpdate], None]


class Notifier:
    """Hands updates to ``listener`` from a single dispatch thread.

    ``publish`` only enqueues, so callers holding the controller lock never
    run UI code. Updates are delivered in publication order.
    """

    def __init__(self, listener: Optional[StatusCallback] = None) -> None:
        self._listener = listener
        self._queue: Queue[StatusUpdate | None] = Queue()
        self._closed = False
        self._thread = threading.Thread(
            target=self._dispatch, name="status-notifier", daemon=True
        )
        self._thread.start()

    def publish(self, update: StatusUpdate) -> None:
        if self._closed:
            logger.debug("Notifier closed, dropping %s", update.kind.value)
            return
        self._queue.put(update)

    def join(self) -> None:
        """Block until every published update has been delivered."""
        self._queue.join()

    def close(self, timeout: float = 1.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(None)
        self._thread.join(timeout=timeout)

    def _dispatch(self) -> None:
        while True:
            update = self._queue.get()
            try:
                if update is None:
                    return
                if self._listener is not None:
                    self._listener(update)
            except Exception:
                logger.exception("Status listener failed on %r", update)
            finally:
                self._queue.task_done()
