"""
Version numbers and revision hashes from a git repository.

Versions are taken from tags in a two-number format such as ``1.5``. The
number of commits since the last tag becomes the third component, so five
commits after ``1.5`` gives ``1.5.5``; a checkout sitting exactly on the tag
gives ``1.5.0``. With uncommitted changes and ``markdev`` enabled, ``.dev`` is
appended.
"""

import logging
import os
import subprocess

from arkutil.text import TextBuilder

logger = logging.getLogger(__name__)


class GitError(RuntimeError):
    """Raised when version information cannot be read from a repository."""

    pass


def _git(path, *args):
    result = subprocess.run(
        ["git", "-C", path, *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        universal_newlines=True,
    )
    if result.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed in '{path}': {result.stderr.strip()}")
    return result.stdout


def is_repository(path=None):
    path = path or os.getcwd()
    try:
        _git(path, "rev-parse")
    except (GitError, OSError):
        return False
    return True


def is_modified(path=None):
    path = path or os.getcwd()
    return bool(_git(path, "status", "--porcelain").strip())


def revision(path=None):
    """Return the short hash of HEAD."""
    path = path or os.getcwd()
    if not is_repository(path):
        raise GitError(f"'{path}' is not a git repository; cannot get revision.")
    return _git(path, "rev-parse", "--short", "HEAD").strip()


def format_version(description):
    """
    Turn `git describe --tags` output into a three-part version.

    >>> format_version("1.5-5-g1a2b3c4")
    '1.5.5'
    >>> format_version("1.5")
    '1.5.0'
    """
    version = description.strip().replace("-", ".")
    missing = 2 - version.count(".")
    if missing > 0:
        return version + ".0" * missing
    return version.rsplit(".", 1)[0]


def version(path=None, default=None, markdev=True):
    """
    Return the version of the repository at `path`.

    Args:
        path (str, optional): Repository path, defaults to the working directory.
        default (str, optional): Returned when no version can be derived.
        markdev (bool): Append ".dev" when the tree has uncommitted changes.

    Raises:
        GitError: If `path` is not a tagged repository and no default is given.
    """
    path = path or os.getcwd()
    if not is_repository(path):
        if default is not None:
            return default
        raise GitError(
            f"Cannot get version information; '{path}' is not a repository and no default value was given."
        )
    try:
        v = format_version(_git(path, "describe", "--tags"))
    except GitError as e:
        if default is None:
            raise
        logger.debug(f"Using default version {default}: {e}")
        return default
    if markdev and is_modified(path):
        v = v + ".dev"
    return v


def version_line(path=None, project=None, default=None, markdev=True):
    """
    Return "<project> <version> <revision>", e.g. "arkutil 0.3.2 1a2b3c4".

    The revision is left out when it cannot be read.
    """
    path = path or os.getcwd()
    v = version(path, default=default, markdev=markdev)
    try:
        r = revision(path)
    except GitError:
        r = None
    p = project or os.path.basename(os.path.abspath(path))
    return str(TextBuilder().push(p, v, r)).strip()
