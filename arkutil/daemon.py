import logging
import os
import signal
import time

import daemon
import psutil
from daemon.pidfile import PIDLockFile

logger = logging.getLogger(__name__)


def read_pid(pid_file):
    """
    Return the pid recorded in `pid_file`, or None if there is none.
    """
    if not os.path.exists(pid_file):
        return None
    with open(pid_file, "r") as f:
        content = f.read().strip()
    return int(content) if content else None


def process_status(pid):
    """
    Collect process details for a running watcher.

    Returns:
        dict: Property name -> value, or None if the process does not exist.
    """
    try:
        proc = psutil.Process(pid)
        return {
            "PID": proc.pid,
            "CPU %": proc.cpu_percent(interval=0.1),
            "Memory %": f"{proc.memory_percent():.2f}",
            "Memory RSS": proc.memory_info().rss,
            "Threads": proc.num_threads(),
            "Started At": time.strftime(
                "%Y-%m-%d %H:%M:%S", time.localtime(proc.create_time())
            ),
        }
    except psutil.NoSuchProcess:
        return None


def log_daemon_status(root_logger, watcher):
    """
    Log process status together with what the watcher is tracking.
    """
    status_info = process_status(os.getpid()) or {}
    status_info["Root"] = watcher.root
    status_info["Entries"] = len(watcher.state)
    status_info["Hooks"] = len(watcher.hooks)
    root_logger.info(
        "Daemon Status:\n" + "\n".join(f"{k}: {v}" for k, v in status_info.items())
    )


def run_daemon(watcher, pid_file, root_logger=None):
    """
    Detach from the terminal and run `watcher` until SIGTERM or SIGINT.

    The pid file is held for the lifetime of the daemon. Open log file
    handlers of `root_logger` are kept across the detach.
    """
    root_logger = root_logger or logger
    pid_dir = os.path.dirname(os.path.abspath(pid_file))
    os.makedirs(pid_dir, exist_ok=True)

    handlers = list(root_logger.handlers) + list(logging.getLogger("arkutil").handlers)
    context = daemon.DaemonContext(
        pidfile=PIDLockFile(pid_file),
        files_preserve=[
            handler.stream.fileno()
            for handler in handlers
            if hasattr(handler, "stream") and hasattr(handler.stream, "fileno")
        ],
        signal_map={
            signal.SIGTERM: lambda signum, frame: watcher.stop(),
        },
    )

    with context:
        try:
            root_logger.info(f"Daemon started for {watcher.root} (pid file {pid_file})")
            log_daemon_status(root_logger, watcher)
            watcher.begin()
            root_logger.info("Daemon stopped.")
        except Exception as e:
            root_logger.error(f"Fatal error in daemon: {str(e)}", exc_info=True)
            raise


def stop_daemon(pid_file, timeout=5.0):
    """
    Send SIGTERM to the daemon recorded in `pid_file` and wait for it to exit.

    Returns:
        int: The pid that was signalled, or None if no daemon was running.
    """
    pid = read_pid(pid_file)
    if pid is None or not psutil.pid_exists(pid):
        return None
    os.kill(pid, signal.SIGTERM)
    try:
        psutil.Process(pid).wait(timeout=timeout)
    except psutil.NoSuchProcess:
        pass
    except psutil.TimeoutExpired:
        logger.warning(f"Daemon (pid {pid}) did not exit within {timeout} seconds")
    return pid
