"""
Serialized delivery of child state changes to a container.

Listeners on children only enqueue; whichever thread holds the container lock
drains the queue, so container state is mutated by one thread at a time and
in arrival order.
"""

import queue
import threading
from typing import Callable, Optional

from .models import ServiceStateChange


class ChildEventQueue:
    """FIFO of child state changes applied under the owning container's lock."""

    def __init__(self, lock: threading.RLock,
                 handler: Callable[[ServiceStateChange], None]) -> None:
        self._lock = lock
        self._handler = handler
        self._events: "queue.SimpleQueue[ServiceStateChange]" = queue.SimpleQueue()
        self._draining = False

    def post(self, change: ServiceStateChange) -> None:
        """Listener entry point: enqueue a child change and process the queue."""
        self._events.put(change)
        self.run()

    def run(self, action: Optional[Callable[[], None]] = None) -> None:
        """
        Run ``action`` under the container lock, then drain queued changes.

        Changes posted while an action or handler is running on this thread
        are queued and applied afterwards, never nested.
        """
        with self._lock:
            if self._draining:
                if action is not None:
                    action()
                return
            self._draining = True
            try:
                if action is not None:
                    action()
                while True:
                    try:
                        change = self._events.get_nowait()
                    except queue.Empty:
                        break
                    self._handler(change)
            finally:
                self._draining = False
