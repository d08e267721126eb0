"""
Tests for the arkutil watcher module using pytest.

This test suite covers:
- Seeding without events
- Creation, modification and deletion detection
- Dotfile pruning
- Hook selector resolution and deduplication
- The background worker lifecycle
"""

import os
import threading
import time

import pytest

from arkutil import watcher as watcher_module
from arkutil.watcher import (EventKind, HookRegistry, InvalidRoot,
                             InvalidSelector, PathKind, PathSnapshot, Watcher,
                             WatcherError, parse_condition)


@pytest.fixture
def temp_dir(tmp_path):
    """Fixture to create a temporary directory structure."""
    test_dir = tmp_path / "test_dir"
    test_dir.mkdir()

    (test_dir / "a.txt").write_text("Initial content")

    subdir = test_dir / "subdir"
    subdir.mkdir()
    (subdir / "b.txt").write_text("Subdir content")

    hidden = test_dir / ".hidden"
    hidden.mkdir()
    (hidden / "b.txt").write_text("Hidden content")

    yield test_dir


@pytest.fixture
def events():
    return []


@pytest.fixture
def watcher(temp_dir, events):
    """Fixture to create a Watcher that records every event it sees."""
    w = Watcher(str(temp_dir))

    def record(path, event, path_type):
        events.append((path, event, path_type))

    for event in ("created", "modified", "deleted"):
        w.hook(event, "any", record)
    return w


def touch_later(path, seconds=10):
    st = os.stat(path)
    os.utime(path, (st.st_atime, st.st_mtime + seconds))


def test_seeding_records_tree_without_events(watcher, temp_dir, events):
    assert events == []
    assert set(watcher.state) == {
        str(temp_dir / "a.txt"),
        str(temp_dir / "subdir"),
        str(temp_dir / "subdir" / "b.txt"),
    }
    assert watcher.state[str(temp_dir / "subdir")].kind == PathKind.DIRECTORY
    assert watcher.state[str(temp_dir / "a.txt")].kind == PathKind.FILE


def test_scan_without_changes_is_quiet(watcher, events):
    assert watcher.scan() == []
    assert events == []


def test_created_file(watcher, temp_dir, events):
    (temp_dir / "c.txt").write_text("new")
    watcher.scan()
    assert events == [(str(temp_dir / "c.txt"), EventKind.CREATED, PathKind.FILE)]
    assert str(temp_dir / "c.txt") in watcher.state


def test_modified_file_reported_once(watcher, temp_dir, events):
    touch_later(temp_dir / "a.txt")
    watcher.scan()
    assert events == [(str(temp_dir / "a.txt"), EventKind.MODIFIED, PathKind.FILE)]

    watcher.scan()
    assert len(events) == 1


def test_deleted_file_keeps_last_known_type(watcher, temp_dir, events):
    (temp_dir / "a.txt").unlink()
    watcher.scan()
    assert events == [(str(temp_dir / "a.txt"), EventKind.DELETED, PathKind.FILE)]
    assert str(temp_dir / "a.txt") not in watcher.state


def test_deleted_directory_reports_children(watcher, temp_dir, events):
    (temp_dir / "subdir" / "b.txt").unlink()
    (temp_dir / "subdir").rmdir()
    watcher.scan()
    assert sorted((p, t) for p, e, t in events if e == EventKind.DELETED) == [
        (str(temp_dir / "subdir"), PathKind.DIRECTORY),
        (str(temp_dir / "subdir" / "b.txt"), PathKind.FILE),
    ]
    assert set(watcher.state) == {str(temp_dir / "a.txt")}


def test_dotfiles_are_never_reported(watcher, temp_dir, events):
    touch_later(temp_dir / ".hidden" / "b.txt")
    (temp_dir / ".hidden" / "new.txt").write_text("x")
    (temp_dir / ".dotfile").write_text("x")
    watcher.scan()
    (temp_dir / ".hidden" / "b.txt").unlink()
    watcher.scan()

    assert events == []
    assert not any(".hidden" in p or ".dotfile" in p for p in watcher.state)


def test_symlink_is_recorded_but_not_followed(watcher, temp_dir, events):
    link = temp_dir / "link"
    os.symlink(str(temp_dir / "subdir"), str(link))
    watcher.scan()
    assert events == [(str(link), EventKind.CREATED, PathKind.SYMLINK)]
    assert str(link / "b.txt") not in watcher.state


def test_end_to_end_scenario(tmp_path, events):
    root = tmp_path / "root"
    root.mkdir()
    (root / "a.txt").write_text("a")

    w = Watcher(str(root))
    for event in ("created", "modified", "deleted"):
        w.hook(event, "any", lambda p, e, t: events.append((p, e, t)))
    assert events == []
    assert set(w.state) == {str(root / "a.txt")}

    touch_later(root / "a.txt")
    w.scan()
    assert events[-1:] == [(str(root / "a.txt"), EventKind.MODIFIED, PathKind.FILE)]

    (root / "c.txt").write_text("c")
    w.scan()
    assert events[1:] == [(str(root / "c.txt"), EventKind.CREATED, PathKind.FILE)]

    (root / "a.txt").unlink()
    w.scan()
    assert events[2:] == [(str(root / "a.txt"), EventKind.DELETED, PathKind.FILE)]
    assert set(w.state) == {str(root / "c.txt")}


@pytest.mark.parametrize("make_root", ["missing", "file"])
def test_invalid_root(tmp_path, make_root):
    target = tmp_path / "target"
    if make_root == "file":
        target.write_text("not a directory")
    with pytest.raises(InvalidRoot):
        Watcher(str(target))


def test_capture_vanished_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        PathSnapshot.capture(str(tmp_path / "gone"))


def test_snapshot_prefers_symlink_over_directory(tmp_path):
    os.symlink(str(tmp_path), str(tmp_path / "self"))
    assert PathSnapshot.capture(str(tmp_path / "self")).kind == PathKind.SYMLINK
    assert PathSnapshot.capture(str(tmp_path)).kind == PathKind.DIRECTORY


def test_created_any_fires_for_every_type():
    registry = HookRegistry()
    calls = []
    registry.register("created", "any", lambda p, e, t: calls.append(t))

    for path_type in (PathKind.FILE, PathKind.DIRECTORY, PathKind.SYMLINK, PathKind.OTHER):
        registry.dispatch(EventKind.CREATED, path_type, "/x")
    registry.dispatch(EventKind.DELETED, PathKind.FILE, "/x")

    assert calls == [PathKind.FILE, PathKind.DIRECTORY, PathKind.SYMLINK, PathKind.OTHER]


def test_any_file_fires_only_for_files():
    registry = HookRegistry()
    calls = []
    registry.register(EventKind.ANY, PathKind.FILE, lambda p, e, t: calls.append(e))

    for event in (EventKind.CREATED, EventKind.MODIFIED, EventKind.DELETED):
        registry.dispatch(event, PathKind.FILE, "/x")
        registry.dispatch(event, PathKind.DIRECTORY, "/x")

    assert calls == [EventKind.CREATED, EventKind.MODIFIED, EventKind.DELETED]


def test_hook_matching_two_selectors_fires_once():
    registry = HookRegistry()
    calls = []

    def hook(path, event, path_type):
        calls.append(path)

    registry.register("created", "file", hook)
    registry.register("any", "file", hook)
    registry.register("created", "any", hook)
    registry.dispatch(EventKind.CREATED, PathKind.FILE, "/x")

    assert calls == ["/x"]


def test_resolve_keeps_first_occurrence_order():
    registry = HookRegistry()

    def first(*args):
        pass

    def second(*args):
        pass

    def third(*args):
        pass

    registry.register("created", "any", third)
    registry.register("any", "file", second)
    registry.register("any", "file", first)
    registry.register("created", "file", first)

    assert registry.resolve(EventKind.CREATED, PathKind.FILE) == [first, second, third]


def test_any_any_hook_never_fires():
    registry = HookRegistry()
    calls = []
    registry.register("any", "any", lambda p, e, t: calls.append(p))

    for event in (EventKind.CREATED, EventKind.MODIFIED, EventKind.DELETED):
        registry.dispatch(event, PathKind.FILE, "/x")

    assert calls == []
    assert len(registry) == 1


def test_equal_but_distinct_callbacks_both_fire():
    class Recorder:
        def __init__(self, calls):
            self.calls = calls

        def __eq__(self, other):
            return isinstance(other, Recorder)

        __hash__ = object.__hash__

        def __call__(self, path, event, path_type):
            self.calls.append(self)

    calls = []
    first, second = Recorder(calls), Recorder(calls)
    registry = HookRegistry()
    registry.register("created", "file", first)
    registry.register("created", "file", second)
    registry.dispatch(EventKind.CREATED, PathKind.FILE, "/x")

    assert len(calls) == 2


def test_bound_method_matching_two_selectors_fires_once():
    class Handler:
        def __init__(self):
            self.calls = 0

        def on_event(self, path, event, path_type):
            self.calls += 1

    handler, other = Handler(), Handler()
    registry = HookRegistry()
    registry.register("created", "any", handler.on_event)
    registry.register("any", "file", handler.on_event)
    registry.register("created", "file", handler.on_event)
    registry.register("created", "file", other.on_event)
    registry.dispatch(EventKind.CREATED, PathKind.FILE, "/x")

    assert handler.calls == 1
    assert other.calls == 1
    assert len(registry) == 4


@pytest.mark.parametrize("event, path_type", [
    ("renamed", "file"),
    ("created", "socket"),
    ("created", "other"),
    (EventKind.CREATED, PathKind.OTHER),
    (42, "file"),
])
def test_register_rejects_invalid_selector(event, path_type):
    with pytest.raises(InvalidSelector):
        HookRegistry().register(event, path_type, lambda p, e, t: None)


def test_dispatch_rejects_selector_only_event():
    with pytest.raises(InvalidSelector):
        HookRegistry().dispatch(EventKind.ANY, PathKind.FILE, "/x")


@pytest.mark.parametrize("condition, expected", [
    ("created file", (EventKind.CREATED, PathKind.FILE)),
    ("DELETED", (EventKind.DELETED, PathKind.ANY)),
    ("any symlink", (EventKind.ANY, PathKind.SYMLINK)),
])
def test_parse_condition(condition, expected):
    assert parse_condition(condition) == expected


@pytest.mark.parametrize("condition", ["", "created file extra", "moved file"])
def test_parse_condition_invalid(condition):
    with pytest.raises(InvalidSelector):
        parse_condition(condition)


def test_hook_decorators(watcher, temp_dir):
    calls = []

    @watcher.hook_on("created file", "created directory")
    def on_create(path, event, path_type):
        calls.append(path_type)

    @watcher.hook("deleted", "file")
    def on_delete(path, event, path_type):
        calls.append(event)

    (temp_dir / "new_dir").mkdir()
    (temp_dir / "a.txt").unlink()
    watcher.scan()

    assert calls == [PathKind.DIRECTORY, EventKind.DELETED]


def test_failing_hook_aborts_scan(watcher, temp_dir):
    def explode(path, event, path_type):
        raise RuntimeError("hook failed")

    watcher.hook("created", "file", explode)
    (temp_dir / "c.txt").write_text("c")
    with pytest.raises(RuntimeError):
        watcher.scan()


def test_scan_from_inside_hook_raises(watcher, temp_dir):
    @watcher.hook("created", "file")
    def rescan(path, event, path_type):
        watcher.scan()

    (temp_dir / "c.txt").write_text("c")
    with pytest.raises(WatcherError, match="inside a hook"):
        watcher.scan()

    # The guard is released once the failed pass has unwound.
    assert watcher.scan() == []


@pytest.fixture
def fast_poll(monkeypatch):
    monkeypatch.setattr(watcher_module, "POLL_INTERVAL", 0.05)


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


def test_begin_blocks_until_stop(fast_poll, watcher, temp_dir, events):
    runner = threading.Thread(target=watcher.begin)
    runner.start()
    assert wait_for(lambda: watcher.running)

    (temp_dir / "c.txt").write_text("c")
    assert wait_for(lambda: events)
    assert runner.is_alive()

    # A second begin() while running returns immediately.
    watcher.begin()

    watcher.stop()
    runner.join(timeout=5)
    assert not runner.is_alive()
    assert not watcher.running
    assert events == [(str(temp_dir / "c.txt"), EventKind.CREATED, PathKind.FILE)]


def test_stop_when_not_running_is_noop(watcher):
    watcher.stop()
    watcher.stop()
    assert not watcher.running


def test_begin_reraises_scan_failure(fast_poll, watcher, temp_dir):
    def explode(path, event, path_type):
        raise RuntimeError("hook failed")

    watcher.hook("created", "any", explode)
    (temp_dir / "c.txt").write_text("c")

    with pytest.raises(RuntimeError, match="hook failed"):
        watcher.begin()
    assert not watcher.running
