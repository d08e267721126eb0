"""
Text module for arkutil.

Pure string helpers for wrapping text to a width and for building
multi-line output progressively with TextBuilder.
"""


def _flatten(items):
    for item in items:
        if isinstance(item, (list, tuple)):
            yield from _flatten(item)
        else:
            yield item


def wrap_segments(segments, width=78, indent=0, indent_after=False):
    """
    Pack segments into lines no wider than `width`, joined by single spaces.

    Segments are never split; a segment longer than the width gets a line of
    its own.

    Args:
        segments (list): Strings (or values, or nested lists of them) to pack.
        width (int): Number of columns to wrap within.
        indent (int): Columns to indent each line by.
        indent_after (bool): Leave the first line unindented.

    Returns:
        str: The wrapped lines joined by newlines.
    """
    segments = [str(seg) for seg in _flatten(segments) if seg is not None]
    lines = []
    line = ""
    for seg in segments:
        current_indent = 0 if not lines and indent_after else indent
        if line and len(line) + len(seg) >= width:
            lines.append(line)
            line = (" " * indent) + seg
        elif not line:
            line = (" " * current_indent) + seg
        else:
            line = line + " " + seg
    lines.append(line)
    return "\n".join(lines)


def wrap(text, width=78, indent=0, indent_after=False):
    """
    Wrap a string to a given width, with an optional indent. Indented text
    will fall within the specified width.

    Args:
        text (str or list): The text to be wrapped; lists are joined with spaces.
        width (int): The number of columns to wrap within.
        indent (int): Indent each wrapped line of text by this number of columns.
        indent_after (bool): Leave the first line unindented.
    """
    if isinstance(text, (list, tuple)):
        text = " ".join(str(t) for t in _flatten(text) if t is not None)
    return wrap_segments(text.split(), width=width, indent=indent, indent_after=indent_after)


class TextBuilder:
    """
    Build text progressively, line by line.

    Each line is a list of words; rendering joins words with a space and
    lines with a newline. All mutators return self so calls can be chained:

        TextBuilder().push("arkutil", "0.3.0").next_line("ready").render()
    """

    def __init__(self):
        self.lines = [[]]
        self.line = 0

    def push(self, *strings):
        """Push one or more strings onto the current line. None is dropped."""
        self.lines[self.line].extend(str(s) for s in _flatten(strings) if s is not None)
        return self

    def add(self, *strings):
        """
        Concatenate the strings and append them to the last word on the
        current line, with no spaces before or between them.
        """
        joined = "".join(str(s) for s in _flatten(strings) if s is not None)
        words = self.lines[self.line]
        if words:
            words[-1] += joined
        else:
            words.append(joined)
        return self

    def wrap(self, width=78, indent=0, indent_after=False, segments=False):
        """
        Wrap the current line to `width`. After wrapping, the current line is
        the last line produced.
        """
        words = self.lines[self.line]
        if segments:
            text = wrap_segments(words, width=width, indent=indent, indent_after=indent_after)
        else:
            text = wrap(words, width=width, indent=indent, indent_after=indent_after)
        del self.lines[self.line]
        self.line -= 1
        for wrapped in text.splitlines() or [""]:
            self.next_line(wrapped)
        return self

    def indent(self, count):
        """Indent the current line by `count` columns."""
        if count > 0:
            self.lines[self.line].insert(0, " " * (count - 1))
        return self

    def next_line(self, string=None):
        """Start a new line, pushing `string` onto it if given."""
        self.lines.append([])
        self.line = len(self.lines) - 1
        if string is not None:
            self.push(string)
        return self

    def skip(self, string=None):
        """Insert a blank line and start the line after it."""
        self.next_line()
        self.next_line(string)
        return self

    def render(self):
        return "\n".join(" ".join(words) for words in self.lines)

    def __str__(self):
        return self.render()
