"""
Logging facilities for arkutil.

setup_logger() configures a named `logging` logger with a file handler and an
optional console handler, and is used for the package's internal logging.

Log writes short status lines meant for a terminal:

    0.500 >>> Watching /srv/site
    1.230 ...     scanned 42 entries

Each line carries an optional elapsed-time stamp, a symbol for its severity
(`>>>` message, `...` debug, `???` warning) and an indent. Debug and warning
lines are "loud" and only shown when verbose; nothing is shown when quiet.
"""

import logging
import os
import sys
from dataclasses import dataclass

from arkutil.timer import Timer

MSG = ">>>"
DBG = "..."
WRN = "???"

_LEVELS = {MSG: logging.INFO, DBG: logging.DEBUG, WRN: logging.WARNING}


def setup_logger(name, log_dir=None, log_filename=None, level=logging.INFO, console=True):
    """
    Set up and return a logger with file and (optionally) console handlers.

    Args:
        name (str): The logger name.
        log_dir (str, optional): Directory where the log file will be stored.
            No file handler is added when omitted.
        log_filename (str, optional): Log file name, defaults to "<name>.log".
        level (int): Logging level.
        console (bool): Whether to add a console handler.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear out any existing handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_dir, log_filename or f"{name}.log"))
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


@dataclass
class LogConfig:
    """
    Settings for Log.

    Attributes:
        quiet: Suppress all messages of any verbosity
        verbose: Allow loud (debug and warning) messages to be printed
        timed: Prefix every message with the timer's elapsed time
    """

    quiet: bool = False
    verbose: bool = False
    timed: bool = True


class LineFormatter(logging.Formatter):
    """Render a record as "<time> <sym><pad><message>"."""

    def __init__(self, config, timer):
        super().__init__()
        self.config = config
        self.timer = timer

    def format(self, record):
        message = record.getMessage()
        if message == "":
            return ""
        stamp = ""
        if self.config.timed:
            stamp = self.timer.time().ljust(4, "0") + " "
        indent = getattr(record, "indent", 0)
        pad = "    " * indent if indent else " "
        sym = getattr(record, "sym", DBG)
        return f"{stamp}{sym}{pad}{message}"


class Log:
    """
    Console status lines with severity symbols, indents and time stamps.

    Lines go through a non-propagating logger of their own so they are not
    duplicated by handlers configured with setup_logger().
    """

    def __init__(self, config=None, timer=None, stream=None, name="arkutil.console"):
        self.config = config or LogConfig()
        self.timer = timer or Timer()
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(LineFormatter(self.config, self.timer))
        self.logger.addHandler(handler)

    def say(self, msg, sym=DBG, loud=False, indent=0):
        """
        Write `msg` according to the verbosity settings.

        Returns:
            bool: False if the line was suppressed.
        """
        if self.config.quiet:
            return False
        if loud and not self.config.verbose:
            return False
        self.logger.log(_LEVELS.get(sym, logging.INFO), "%s", msg, extra={"sym": sym, "indent": indent})
        return True

    def msg(self, text, indent=0):
        """Write a low-verbosity message."""
        return self.say(text, MSG, False, indent)

    def dbg(self, text, indent=0):
        """Write high-verbosity debugging information."""
        return self.say(text, DBG, True, indent)

    def wrn(self, text, indent=0):
        """Write a high-verbosity warning."""
        return self.say(text, WRN, True, indent)
