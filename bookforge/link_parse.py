"""Finding and parsing ``{{#...}}`` helper links in chapter text."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from os import PathLike
from pathlib import Path

log = logging.getLogger(__name__)

ESCAPE_CHAR = "\\"

_USIZE_MAX = 2**64 - 1
_USIZE_RE = re.compile(r"\+?[0-9]+")

_LINK_RE = re.compile(
    r"""
    \\\{\{\#.*\}\}        # escaped link
    |
    \{\{\s*               # opening braces and whitespace
    \#([a-zA-Z0-9_]+)     # link type
    \s+                   # separating whitespace
    ([^}]+)               # target path and space separated properties
    \}\}                  # closing braces
    """,
    re.VERBOSE,
)


class LinkKind(Enum):
    """The kind of helper a link stands for."""

    ESCAPED = "escaped"
    INCLUDE = "include"
    PLAYGROUND = "playground"
    RUSTDOC_INCLUDE = "rustdoc_include"
    TITLE = "title"


@dataclass(frozen=True)
class LineRange:
    """A zero-based, end-exclusive range of lines; ``None`` leaves a side open."""

    start: int | None = None
    end: int | None = None

    def as_slice(self) -> slice:
        """The range as a slice over a list of lines."""
        return slice(self.start, self.end)


@dataclass(frozen=True)
class Anchor:
    """A named anchor marking a region of an included file."""

    name: str


@dataclass(frozen=True)
class Link:
    """A helper link found in chapter text, with its position."""

    start_index: int
    end_index: int
    kind: LinkKind
    link_text: str
    path: Path | None = None
    range_or_anchor: LineRange | Anchor | None = None
    props: tuple[str, ...] = ()
    title: str | None = None

    def relative_path(self, base: str | PathLike[str]) -> Path | None:
        """Directory of the linked file under ``base``; ``None`` if it links no file."""
        if self.kind in (LinkKind.ESCAPED, LinkKind.TITLE) or self.path is None:
            return None
        return (Path(base) / self.path).parent


def _parse_usize(text: str) -> int | None:
    if not _USIZE_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _USIZE_MAX else None


def parse_range_or_anchor(parts: str | None) -> LineRange | Anchor:
    """Parse the ``start:end`` or ``anchor`` part that follows an include path.

    Line numbers are one-based in the text and zero-based in the result. A
    single number selects just that line; an end that is not a number leaves
    the range open at the end.
    """
    pieces = iter((parts or "").split(":", 2))
    first = next(pieces, None)

    start: int | None = None
    if first is not None:
        value = _parse_usize(first)
        if value is not None:
            start = max(value - 1, 0)
        elif first != "":
            return Anchor(first)

    end_text = next(pieces, None)
    end = None if end_text is None else _parse_usize(end_text)

    if start is not None:
        if end_text is None:
            return LineRange(start, start + 1)
        return LineRange(start, end)
    if end is not None:
        return LineRange(None, end)
    return LineRange()


def _split_path(text: str) -> tuple[Path, LineRange | Anchor]:
    path, _, rest = text.partition(":")
    spec = parse_range_or_anchor(rest if ":" in text else None)
    return Path(path), spec


def parse_include_path(path: str) -> tuple[LinkKind, Path, LineRange | Anchor]:
    """Parse the target of an ``include`` link."""
    target, spec = _split_path(path)
    return LinkKind.INCLUDE, target, spec


def parse_rustdoc_include_path(path: str) -> tuple[LinkKind, Path, LineRange | Anchor]:
    """Parse the target of a ``rustdoc_include`` link."""
    target, spec = _split_path(path)
    return LinkKind.RUSTDOC_INCLUDE, target, spec


def _from_match(match: re.Match[str]) -> Link | None:
    typ, rest = match.group(1), match.group(2)
    whole = match.group(0)
    base = {"start_index": match.start(), "end_index": match.end(), "link_text": whole}

    if typ is not None and rest is not None:
        if typ == "title":
            return Link(kind=LinkKind.TITLE, title=rest, **base)
        words = rest.split()
        if not words:
            return None
        file_arg, props = words[0], tuple(words[1:])
        if typ in ("include", "rustdoc_include"):
            parser = parse_include_path if typ == "include" else parse_rustdoc_include_path
            kind, target, spec = parser(file_arg)
            return Link(kind=kind, path=target, range_or_anchor=spec, **base)
        if typ in ("playground", "playpen"):
            if typ == "playpen":
                log.warning(
                    "the {{#playpen}} expression has been renamed to {{#playground}}, "
                    "please update your book to use the new name"
                )
            return Link(kind=LinkKind.PLAYGROUND, path=Path(file_arg), props=props, **base)
        return None

    if typ is None and rest is None and whole.startswith(ESCAPE_CHAR):
        return Link(kind=LinkKind.ESCAPED, **base)
    return None


def find_links(contents: str) -> Iterator[Link]:
    """Yield every recognised helper link in ``contents``, in order."""
    for match in _LINK_RE.finditer(contents):
        link = _from_match(match)
        if link is not None:
            yield link