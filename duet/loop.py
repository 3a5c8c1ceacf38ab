"""Single-threaded main loop.

Every state transition in the player happens on the thread that runs this
loop. Other threads (VLC's event thread, the API server) hand work over with
call_soon(), the same way the Tk UI schedules work with ``after(0, ...)``.
"""

import queue
import threading
from collections.abc import Callable
from duet.config import MAIN_LOOP_POLL_INTERVAL
from duet.logging import app_logger, log_error
from eliot import log_message

_STOP = object()


class MainLoop:
    """Thread-safe FIFO of callbacks drained on one thread."""

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()
        self._running = False
        self._thread_id: int | None = None

    def call_soon(self, callback: Callable, *args) -> None:
        """Schedule ``callback(*args)`` to run on the loop thread. Safe from any thread."""
        self._queue.put((callback, args))

    def in_loop_thread(self) -> bool:
        return self._thread_id == threading.get_ident()

    def _run_one(self, item) -> None:
        callback, args = item
        try:
            callback(*args)
        except Exception as e:
            log_error(app_logger, e, context="main_loop_callback", callback=getattr(callback, '__name__', repr(callback)))

    def run_pending(self) -> int:
        """Run every callback queued so far on the calling thread.

        Callbacks scheduled while draining are run too.

        Returns:
            Number of callbacks executed
        """
        count = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return count
            if item is _STOP:
                self._running = False
                continue
            self._run_one(item)
            count += 1

    def run_forever(self, poll_interval: float = MAIN_LOOP_POLL_INTERVAL) -> None:
        """Run callbacks as they arrive until stop() is called."""
        self._running = True
        self._thread_id = threading.get_ident()
        log_message(message_type="main_loop_started", message="Main loop running")
        try:
            while self._running:
                try:
                    item = self._queue.get(timeout=poll_interval)
                except queue.Empty:
                    continue
                if item is _STOP:
                    break
                self._run_one(item)
        finally:
            self._running = False
            self._thread_id = None
            log_message(message_type="main_loop_stopped", message="Main loop stopped")

    def stop(self) -> None:
        """Ask run_forever() to return. Safe from any thread."""
        self._queue.put(_STOP)

    @property
    def running(self) -> bool:
        return self._running
