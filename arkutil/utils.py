"""
This module provides a worker thread that runs a function periodically.

PeriodicWorker calls its worker function, then waits for `interval` seconds,
and repeats until a stop signal is set. The wait is done on a threading.Event,
so stop() is observed at the boundary between two calls, never in the middle
of one.

A worker function that raises ends the loop: the exception is logged, kept on
the worker as `error`, and the worker is not restarted.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class PeriodicWorker(threading.Thread):
    """
    A thread that runs a worker function periodically every `interval` seconds.
    """

    def __init__(self, worker_fn, interval, *args, name=None, **kwargs):
        """
        Initialize the periodic worker thread.

        Args:
            worker_fn (callable): The function to run periodically.
            interval (float): Time in seconds between the end of one call and
                the start of the next.
            *args: Positional arguments passed to worker_fn.
            name (str, optional): Thread name.
            **kwargs: Keyword arguments passed to worker_fn.
        """
        super(PeriodicWorker, self).__init__(name=name)
        self.worker_fn = worker_fn
        self.interval = interval
        self.args = args
        self.kwargs = kwargs
        self.stop_event = threading.Event()
        self.error = None
        self.iterations = 0
        self.daemon = True

    def run(self):
        """
        Run the worker function periodically until a stop signal is received
        or the worker function raises.
        """
        logger.debug("%s started with interval: %s seconds", self.name, self.interval)
        while not self.stop_event.is_set():
            try:
                self.worker_fn(*self.args, **self.kwargs)
            except Exception as e:
                logger.exception("Exception in periodic worker %s: %s", self.name, e)
                self.error = e
                break
            self.iterations += 1
            if self.stop_event.wait(self.interval):
                break
        logger.debug("%s stopped after %d iterations.", self.name, self.iterations)

    def stop(self):
        """
        Signal the thread to stop.
        """
        logger.debug("%s received stop signal.", self.name)
        self.stop_event.set()

    @property
    def stopped(self):
        return self.stop_event.is_set()


def spawn_periodic_worker(worker_fn, interval, *args, name=None, **kwargs):
    """
    Factory function to spawn a periodic worker thread.

    Args:
        worker_fn (callable): Function to execute periodically.
        interval (float): Time interval in seconds between executions.
        *args: Positional arguments for worker_fn.
        name (str, optional): Thread name.
        **kwargs: Keyword arguments for worker_fn.

    Returns:
        PeriodicWorker: The running periodic worker thread instance.
    """
    worker = PeriodicWorker(worker_fn, interval, *args, name=name, **kwargs)
    worker.start()
    logger.debug("spawn_periodic_worker: started %s.", worker.name)
    return worker
