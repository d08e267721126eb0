import logging
import os
import re
import shlex
import subprocess

import click
from rich.console import Console
from rich.table import Table

from arkutil import config
from arkutil import daemon as daemon_module
from arkutil import git, text
from arkutil.log import Log, setup_logger
from arkutil.watcher import WatcherError, Watcher, parse_condition

DEFAULT_PID_FILENAME = "arkutil.pid"
DEFAULT_LOG_FILENAME = "arkutil.log"
PLACEHOLDER_RE = re.compile(r"\{(path|event|type)\}")


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to configuration TOML file.")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress all console messages.")
@click.option("--verbose", "-v", is_flag=True, help="Show debug and warning messages.")
@click.pass_context
def main(ctx, config_path, debug, quiet, verbose):
    """
    arkutil CLI: watch directories, print versions and wrap text.
    """
    try:
        cfg = config.load_config(config_path)
    except Exception as e:
        click.echo(f"Error loading configuration: {e}")
        ctx.exit(1)
    if debug:
        cfg["logging"]["level"] = "DEBUG"
    if quiet:
        cfg["logging"]["quiet"] = True
    if verbose:
        cfg["logging"]["verbose"] = True
    ctx.obj = {"config": cfg, "config_path": config_path, "debug": debug}


def get_log_dir(cfg, config_path):
    config_dir = os.path.dirname(os.path.abspath(config_path or config.DEFAULT_CONFIG_PATH))
    return os.path.join(config_dir, cfg.get("logging", {}).get("log_dir", "logs"))


def get_pid_file(log_dir):
    return os.path.join(log_dir, DEFAULT_PID_FILENAME)


def make_log(cfg):
    return Log(config.log_config(cfg), config.make_timer(cfg))


def expand_command(command, path, event, path_type):
    """
    Substitute {path}, {event} and {type} in a shell command.

    Values are shell-quoted. Any other braces are left as they are, so
    commands such as awk '{print $1}' {path} work unchanged.
    """
    values = {
        "path": shlex.quote(path),
        "event": shlex.quote(event.value),
        "type": shlex.quote(path_type.value),
    }
    return PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], command)


def command_hook(command, log):
    """
    Build a hook that runs a shell command for each event.

    A failing command is reported but does not stop the watcher.
    """
    def run_command(path, event, path_type):
        line = expand_command(command, path, event, path_type)
        log.dbg(f"$ {line}", 1)
        try:
            result = subprocess.run(line, shell=True)
        except OSError as e:
            log.wrn(f"command could not be run: {line}", 1)
            logging.getLogger("arkutil").error(f"Hook command could not be run: {line}: {e}")
            return
        if result.returncode != 0:
            log.wrn(f"command exited with {result.returncode}: {line}", 1)
            logging.getLogger("arkutil").warning(
                f"Hook command failed with exit code {result.returncode}: {line}"
            )
    return run_command


@main.command()
@click.pass_context
def show_config(ctx):
    """
    Show the loaded configuration.
    """
    cfg = ctx.obj.get("config")
    click.echo(cfg)


@main.command()
@click.argument("path", required=False, type=click.Path(file_okay=False))
@click.option("--project", "-p", default=None, help="Project name, defaults to the directory name.")
@click.option("--default", "-d", "default_version", default=None, help="Version used outside a repository.")
@click.option("--no-dev", is_flag=True, help="Do not append .dev for uncommitted changes.")
@click.pass_context
def version(ctx, path, project, default_version, no_dev):
    """
    Print "<project> <version> <revision>" for a git repository.
    """
    try:
        line = git.version_line(path, project=project, default=default_version, markdev=not no_dev)
    except git.GitError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
    click.echo(line)


@main.command()
@click.argument("source", type=click.File("r"), default="-")
@click.option("--width", "-w", default=78, show_default=True, help="Columns to wrap within.")
@click.option("--indent", "-i", default=0, show_default=True, help="Columns to indent by.")
@click.option("--indent-after", is_flag=True, help="Leave the first line unindented.")
def wrap(source, width, indent, indent_after):
    """
    Wrap text read from SOURCE (default: stdin).
    """
    paragraphs = source.read().split("\n\n")
    wrapped = [
        text.wrap(p, width=width, indent=indent, indent_after=indent_after)
        for p in paragraphs
        if p.strip()
    ]
    click.echo("\n\n".join(wrapped))


@main.command()
@click.argument("directory", type=click.Path())
@click.option("--hooks", "hooks_path", default=None, help="YAML file or directory of hook definitions.")
@click.option("--detach", is_flag=True, help="Run in the background as a daemon.")
@click.option("--pid-file", default=None, help="Pid file used with --detach.")
@click.pass_context
def watch(ctx, directory, hooks_path, detach, pid_file):
    """
    Watch DIRECTORY and report created, modified and deleted entries.
    """
    cfg = ctx.obj.get("config")
    log_dir = get_log_dir(cfg, ctx.obj.get("config_path"))
    level = getattr(logging, cfg["logging"].get("level", "INFO").upper(), logging.INFO)
    root_logger = setup_logger("arkutil", log_dir, DEFAULT_LOG_FILENAME, level=level, console=bool(ctx.obj.get("debug")))
    log = make_log(cfg)

    try:
        watcher = Watcher(directory)
        hook_defs = config.load_hooks_configs(hooks_path)["hooks"] if hooks_path else []
        for hook_def in hook_defs:
            if not isinstance(hook_def, dict) or not isinstance(hook_def.get("command"), str):
                raise ValueError(f"Hook entry needs a 'command' string: {hook_def!r}")
            event, path_type = parse_condition(hook_def.get("when", "any"))
            watcher.hook(event, path_type, command_hook(hook_def["command"], log))
    except (WatcherError, FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)

    def report(path, event, path_type):
        log.msg(f"{event.value} {path_type.value} {path}")

    for event in ("created", "modified", "deleted"):
        watcher.hook(event, "any", report)

    log.msg(f"Watching {watcher.root} ({len(watcher.state)} entries, {len(hook_defs)} hooks)")
    if detach:
        pid_file = pid_file or get_pid_file(log_dir)
        click.echo(f"Starting daemon (pid file {pid_file})...")
        daemon_module.run_daemon(watcher, pid_file, root_logger)
        return

    try:
        watcher.begin()
    except OSError as e:
        root_logger.error(f"Watcher stopped: {e}", exc_info=True)
        click.echo(f"Error: {e}")
        ctx.exit(1)
    log.msg("Stopped.")


@main.command()
@click.option("--pid-file", default=None, help="Pid file of the detached watcher.")
@click.pass_context
def stop(ctx, pid_file):
    """
    Stop a detached watcher.
    """
    cfg = ctx.obj.get("config")
    pid_file = pid_file or get_pid_file(get_log_dir(cfg, ctx.obj.get("config_path")))
    pid = daemon_module.stop_daemon(pid_file)
    if pid is None:
        click.echo("Daemon is not running.")
        return
    click.echo(f"Sent SIGTERM to daemon (pid {pid}).")


@main.command()
@click.option("--pid-file", default=None, help="Pid file of the detached watcher.")
@click.pass_context
def status(ctx, pid_file):
    """
    Show process details of a detached watcher.
    """
    cfg = ctx.obj.get("config")
    pid_file = pid_file or get_pid_file(get_log_dir(cfg, ctx.obj.get("config_path")))
    pid = daemon_module.read_pid(pid_file)
    if pid is None:
        click.echo("Daemon is not running (pid file not found).")
        return
    info = daemon_module.process_status(pid)
    if info is None:
        click.echo("Daemon process not found.")
        return

    status_table = Table(title="arkutil Watcher Status")
    status_table.add_column("Property", style="cyan")
    status_table.add_column("Value", style="magenta")
    for key, value in info.items():
        status_table.add_row(key, str(value))
    Console().print(status_table)


if __name__ == "__main__":
    main()
