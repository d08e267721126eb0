"""
Stopwatch used to stamp console log lines with the time since a reset.
"""

import time


class Timer:
    """
    A stopwatch-like timer.

    Attributes:
        round_places (int): Number of decimal places elapsed time is rounded to.
    """

    def __init__(self, round_places=2):
        self.round_places = round_places
        self.reset()

    def reset(self):
        """Reset the start time to now."""
        self._start = time.monotonic()

    def elapsed(self):
        """Return the seconds since the last reset as a float."""
        return time.monotonic() - self._start

    def time(self):
        """
        Return the elapsed time as a string, e.g. "0.500" or "12.34".

        The value is rounded to `round_places` and right-padded with zeros
        to at least five characters.
        """
        return str(round(self.elapsed(), self.round_places)).ljust(5, "0")
