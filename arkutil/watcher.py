"""
Watcher module for arkutil.

This module provides a polling directory-tree watcher with support for:
- Snapshots of each entry's modification time and type
- Creation, modification and deletion detection between two scans
- Hooks selected by (event, type) pairs
- A background worker that rescans on a fixed interval until stopped

Entries whose name begins with a dot are skipped together with everything
below them. The watched root itself is not an entry.
"""

import enum
import inspect
import logging
import os
import signal
import stat
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from arkutil.utils import spawn_periodic_worker

logger = logging.getLogger(__name__)

# Seconds between the end of one scan and the start of the next.
POLL_INTERVAL = 1.0


class WatcherError(Exception):
    """Base class for watcher errors."""

    pass


class InvalidSelector(WatcherError, ValueError):
    """Raised when a hook selector names an unknown event or path type."""

    pass


class InvalidRoot(WatcherError, ValueError):
    """Raised when the watched root is missing or is not a directory."""

    pass


class EventKind(enum.Enum):
    ANY = "any"
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class PathKind(enum.Enum):
    ANY = "any"
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"


SELECTOR_EVENTS = (EventKind.ANY, EventKind.CREATED, EventKind.MODIFIED, EventKind.DELETED)
SELECTOR_TYPES = (PathKind.ANY, PathKind.FILE, PathKind.DIRECTORY, PathKind.SYMLINK)

Hook = Callable[[str, EventKind, PathKind], None]


@dataclass(frozen=True)
class PathSnapshot:
    """Modification time and type of one entry as of the scan that saw it."""

    modified_at: float
    kind: PathKind

    @classmethod
    def capture(cls, path: str) -> "PathSnapshot":
        """
        Stat a path without following symlinks.

        Raises:
            OSError: If the path vanished since it was listed.
        """
        st = os.lstat(path)
        mode = st.st_mode
        if stat.S_ISLNK(mode):
            kind = PathKind.SYMLINK
        elif stat.S_ISDIR(mode):
            kind = PathKind.DIRECTORY
        elif stat.S_ISREG(mode):
            kind = PathKind.FILE
        else:
            kind = PathKind.OTHER
        return cls(st.st_mtime, kind)


@dataclass(frozen=True)
class Event:
    path: str
    kind: EventKind
    path_type: PathKind


def _coerce(value, enum_cls, allowed, what):
    if isinstance(value, str):
        try:
            value = enum_cls(value.strip().lower())
        except ValueError:
            raise InvalidSelector(f"Unknown {what}: {value!r}")
    if value not in allowed:
        raise InvalidSelector(f"Invalid {what} for a hook selector: {value!r}")
    return value


def parse_condition(condition: str) -> Tuple[EventKind, PathKind]:
    """
    Parse a condition string such as "created file" or "deleted".

    The type word is optional and defaults to "any".

    Returns:
        Tuple of (event kind, path type)
    """
    words = str(condition).split()
    if not 1 <= len(words) <= 2:
        raise InvalidSelector(f"Invalid hook condition: {condition!r}")
    event = _coerce(words[0], EventKind, SELECTOR_EVENTS, "event")
    path_type = _coerce(words[1] if len(words) > 1 else "any", PathKind, SELECTOR_TYPES, "path type")
    return event, path_type


def _hook_key(callback):
    # obj.method builds a new bound method on every access.
    if inspect.ismethod(callback):
        return (id(callback.__self__), callback.__func__)
    return id(callback)


class HookRegistry:
    """
    Table of callbacks keyed by (event kind, path type) selectors.

    Callbacks are compared by identity: the same function registered under
    two selectors that both match an event is called once for that event.
    Bound methods count as the same callback when both their instance and
    their function are.
    """

    def __init__(self):
        self._table: Dict[Tuple[EventKind, PathKind], List[Hook]] = {
            (e, t): [] for e in SELECTOR_EVENTS for t in SELECTOR_TYPES
        }

    def register(self, event, path_type, callback: Hook):
        event = _coerce(event, EventKind, SELECTOR_EVENTS, "event")
        path_type = _coerce(path_type, PathKind, SELECTOR_TYPES, "path type")
        if not callable(callback):
            raise TypeError(f"Hook callback must be callable, got {callback!r}")
        hooks = self._table[(event, path_type)]
        key = _hook_key(callback)
        if not any(_hook_key(h) == key for h in hooks):
            hooks.append(callback)

    def resolve(self, event: EventKind, path_type: PathKind) -> List[Hook]:
        """
        Return the callbacks for a concrete event, in first-registered order.

        The union covers (event, type), (any, type) and (event, any) only;
        hooks registered under (any, any) are not part of it.
        """
        if event not in SELECTOR_EVENTS or event is EventKind.ANY:
            raise InvalidSelector(f"Not a concrete event: {event!r}")
        if not isinstance(path_type, PathKind) or path_type is PathKind.ANY:
            raise InvalidSelector(f"Not a concrete path type: {path_type!r}")
        candidates = (
            self._table.get((event, path_type), [])
            + self._table.get((EventKind.ANY, path_type), [])
            + self._table[(event, PathKind.ANY)]
        )
        resolved = []
        seen = set()
        for hook in candidates:
            key = _hook_key(hook)
            if key not in seen:
                seen.add(key)
                resolved.append(hook)
        return resolved

    def dispatch(self, event: EventKind, path_type: PathKind, path: str):
        for hook in self.resolve(event, path_type):
            hook(path, event, path_type)

    def __len__(self):
        return sum(len(hooks) for hooks in self._table.values())


def walk(root: str) -> Iterator[str]:
    """
    Yield every path below root depth-first, sorted by name within each
    directory, skipping dot-named entries and their subtrees. Symlinked
    directories are yielded but not descended into.
    """
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        if entry.name.startswith("."):
            continue
        yield entry.path
        if entry.is_dir(follow_symlinks=False):
            yield from walk(entry.path)


class Scanner:
    """
    Diffs the tree under root against the last completed scan.

    Attributes:
        root: Absolute path of the watched directory
        hooks: Registry consulted for every event
        state: Path -> PathSnapshot as of the last completed scan
    """

    def __init__(self, root: str, hooks: HookRegistry):
        self.root = root
        self.hooks = hooks
        self.state: Dict[str, PathSnapshot] = {}
        self._lock = threading.RLock()
        self._scanning = False

    def _emit(self, event: Event, events: List[Event]):
        logger.info(f"{event.kind.value.capitalize()} {event.path_type.value}: {event.path}")
        events.append(event)
        self.hooks.dispatch(event.kind, event.path_type, event.path)

    def scan(self, seeding: bool = False) -> List[Event]:
        """
        Run one scan pass, firing hooks as events are found.

        Args:
            seeding: Record the tree without emitting creation events

        Returns:
            The events dispatched during this pass

        Raises:
            WatcherError: If called from a hook while a pass is running
        """
        with self._lock:
            # Only the scanning thread can hold the lock here, so this is a hook.
            if self._scanning:
                raise WatcherError("scan() cannot be called from inside a hook")
            self._scanning = True
            try:
                return self._scan(seeding)
            finally:
                self._scanning = False

    def _scan(self, seeding: bool) -> List[Event]:
        events: List[Event] = []
        seen = set()
        for path in walk(self.root):
            snapshot = PathSnapshot.capture(path)
            previous = self.state.get(path)
            self.state[path] = snapshot
            seen.add(path)
            if previous is None:
                if not seeding:
                    self._emit(Event(path, EventKind.CREATED, snapshot.kind), events)
            elif snapshot.modified_at > previous.modified_at:
                self._emit(Event(path, EventKind.MODIFIED, snapshot.kind), events)

        for path in [p for p in self.state if p not in seen]:
            previous = self.state.pop(path)
            self._emit(Event(path, EventKind.DELETED, previous.kind), events)

        logger.debug(f"Scanned {self.root}: {len(self.state)} entries, {len(events)} events")
        return events


class Watcher:
    """
    Watches a directory tree by polling and runs hooks on changes.

    Construction performs a seeding scan, so only changes made afterwards
    are reported. begin() blocks the caller while a background worker
    rescans every POLL_INTERVAL seconds; stop() ends it.
    """

    def __init__(self, root: str):
        if not os.path.isdir(root):
            raise InvalidRoot(f"Not a directory: {root}")
        self.root = os.path.abspath(root)
        self.hooks = HookRegistry()
        self.scanner = Scanner(self.root, self.hooks)
        self._worker = None
        self.scanner.scan(seeding=True)
        logger.info(f"Watching {self.root} ({len(self.scanner.state)} entries)")

    @property
    def state(self) -> Dict[str, PathSnapshot]:
        return dict(self.scanner.state)

    @property
    def running(self) -> bool:
        return self._worker is not None

    def hook(self, event="any", path_type="any", callback: Optional[Hook] = None):
        """
        Register a callback for (event, path_type).

        Without a callback, return a decorator that registers the decorated
        function and returns it unchanged.
        """
        if callback is None:
            def decorator(fn):
                self.hooks.register(event, path_type, fn)
                return fn
            return decorator
        self.hooks.register(event, path_type, callback)
        return callback

    def hook_on(self, *conditions):
        """Decorator registering a function under each "event [type]" condition."""
        selectors = [parse_condition(c) for c in conditions]

        def decorator(fn):
            for event, path_type in selectors:
                self.hooks.register(event, path_type, fn)
            return fn
        return decorator

    def scan(self) -> List[Event]:
        return self.scanner.scan()

    def begin(self):
        """
        Start polling and block until stop() is called or a scan fails.

        Raises:
            Exception: Whatever ended the worker's loop, if it was not stop().
        """
        if self._worker is not None:
            return
        worker = spawn_periodic_worker(
            self.scanner.scan, POLL_INTERVAL, name=f"Watcher-{os.path.basename(self.root)}"
        )
        self._worker = worker

        on_main_thread = threading.current_thread() is threading.main_thread()
        if on_main_thread:
            previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: self.stop())
        try:
            while worker.is_alive():
                worker.join(0.1)
        finally:
            if on_main_thread:
                signal.signal(signal.SIGINT, previous_handler or signal.default_int_handler)
            if self._worker is worker:
                self._worker = None

        if worker.error is not None:
            raise worker.error

    def stop(self):
        worker = self._worker
        if worker is None:
            return
        self._worker = None
        worker.stop()
        logger.info(f"Stopped watching {self.root}")
