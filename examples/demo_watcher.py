import sys

from arkutil.log import Log
from arkutil.watcher import Watcher

log = Log()

# Watch the directory given on the command line (default: current directory).
watcher = Watcher(sys.argv[1] if len(sys.argv) > 1 else ".")


@watcher.hook_on("created file", "modified file")
def file_changed(path, event, path_type):
    log.msg(f"{event.value}: {path}")


@watcher.hook("deleted")
def removed(path, event, path_type):
    log.msg(f"gone ({path_type.value}): {path}", 1)


log.msg(f"Watching {watcher.root}, press Ctrl-C to stop.")
# Blocks until Ctrl-C.
watcher.begin()
log.msg("Stopped.")
