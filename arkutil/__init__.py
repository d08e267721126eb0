"""
arkutil: shared infrastructure for small command-line tools.

Provides a polling directory watcher with hooks, git-derived version strings,
formatted console logging, text wrapping and an elapsed-time stopwatch,
available both as a library and through the ``arkutil`` CLI.
"""

__version__ = "0.3.0"
