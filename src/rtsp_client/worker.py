"""
Cancellable periodic worker thread.

Runs a task repeatedly on its own thread, spacing the *start* of
consecutive iterations at least ``min_interval`` seconds apart. The task
may return False to end the loop from inside; ``stop()`` ends it from
outside and blocks until the in-flight iteration has finished.
"""

import time
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicWorker:
    """
    Runs a task periodically on a daemon thread.

    Example:
        worker = PeriodicWorker('stats', sampler.tick, min_interval=1.0,
                                initial_delay=1.0)
        worker.start()
        ...
        worker.stop()   # returns once the thread has exited
    """

    def __init__(self, name: str, task: Callable[[], Optional[bool]],
                 min_interval: float, initial_delay: float = 0.0):
        """
        Args:
            name: Thread name (also used in log messages)
            task: Called once per iteration; returning False ends the loop
            min_interval: Minimum seconds between iteration starts
            initial_delay: Seconds to wait before the first iteration
        """
        self.name = name
        self.task = task
        self.min_interval = min_interval
        self.initial_delay = initial_delay
        self.iterations = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            logger.warning(f"{self.name} worker already running")
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop_event,),
            name=f"{self.name}-{id(self)}",
            daemon=True,
        )
        self._thread.start()

    def stop(self):
        """Signal the loop to end and wait for the thread to exit"""
        self._stop_event.set()
        thread = self._thread
        if thread is None:
            return
        # Called from the task itself: the loop exits once the task returns
        if thread is threading.current_thread():
            return
        thread.join()

    def _run(self, stop_event: threading.Event):
        if self.initial_delay > 0 and stop_event.wait(self.initial_delay):
            return

        while not stop_event.is_set():
            started = time.monotonic()
            try:
                keep_going = self.task()
            except Exception as e:
                logger.error(f"{self.name} worker iteration failed: {e}", exc_info=True)
                keep_going = True
            self.iterations += 1

            if keep_going is False:
                logger.debug(f"{self.name} worker finished after {self.iterations} iterations")
                break

            remaining = self.min_interval - (time.monotonic() - started)
            if remaining > 0 and stop_event.wait(remaining):
                break
