"""Expanding ``{{#include}}``, ``{{#playground}}`` and related helpers in chapter text."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from os import PathLike
from pathlib import Path

from bookforge.link_parse import Anchor, LineRange, Link, LinkKind, find_links

log = logging.getLogger(__name__)

MAX_LINK_NESTED_DEPTH = 10

_ANCHOR_START = re.compile(r"ANCHOR:\s*(?P<anchor_name>[\w_-]+)")
_ANCHOR_END = re.compile(r"ANCHOR_END:\s*(?P<anchor_name>[\w_-]+)")


def _lines(text: str) -> list[str]:
    """Split into lines on ``\\n``, dropping a trailing ``\\r`` and a final empty line."""
    if not text:
        return []
    parts = text.split("\n")
    if text.endswith("\n"):
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _names(pattern: re.Pattern[str], line: str) -> str | None:
    match = pattern.search(line)
    return match.group("anchor_name") if match else None


def _take_lines(text: str, line_range: LineRange) -> str:
    return "\n".join(_lines(text)[line_range.as_slice()])


def _take_anchored_lines(text: str, anchor: str) -> str:
    retained: list[str] = []
    found = False
    for line in _lines(text):
        if found:
            end_name = _names(_ANCHOR_END, line)
            if end_name is not None:
                if end_name == anchor:
                    break
            elif not _ANCHOR_START.search(line):
                retained.append(line)
        elif _names(_ANCHOR_START, line) == anchor:
            found = True
    return "\n".join(retained)


def _in_range(index: int, line_range: LineRange) -> bool:
    start = 0 if line_range.start is None else line_range.start
    return index >= start and (line_range.end is None or index < line_range.end)


def _take_rustdoc_include_lines(text: str, line_range: LineRange) -> str:
    return "\n".join(
        line if _in_range(index, line_range) else f"# {line}"
        for index, line in enumerate(_lines(text))
    )


def _rustdoc_anchored(text: str, anchor: str) -> Iterator[str]:
    within = False
    for line in _lines(text):
        if within:
            end_name = _names(_ANCHOR_END, line)
            if end_name is not None:
                if end_name == anchor:
                    within = False
            elif not _ANCHOR_START.search(line):
                yield line
        elif _ANCHOR_START.search(line):
            if _names(_ANCHOR_START, line) == anchor:
                within = True
        elif not _ANCHOR_END.search(line):
            yield f"# {line}"


def _take_rustdoc_include_anchored_lines(text: str, anchor: str) -> str:
    return "\n".join(_rustdoc_anchored(text, anchor))


def _read(link: Link, target: Path) -> str:
    try:
        with open(target, encoding="utf-8", newline="") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise OSError(
            f"Could not read file for link {link.link_text} ({target}): {exc}"
        ) from exc


def render_link(
    link: Link, base: str | PathLike[str], chapter_title: str
) -> tuple[str, str]:
    """Render one link relative to ``base``.

    Returns the replacement text and the (possibly overridden) chapter title.
    Raises ``OSError`` when a linked file cannot be read.
    """
    base = Path(base)

    if link.kind is LinkKind.ESCAPED:
        return link.link_text[1:], chapter_title

    if link.kind is LinkKind.TITLE:
        return "", link.title or ""

    if link.path is None:
        raise ValueError(f"link {link.link_text!r} has no target path")
    target = base / link.path
    contents = _read(link, target)

    if link.kind is LinkKind.INCLUDE:
        spec = link.range_or_anchor
        if isinstance(spec, Anchor):
            return _take_anchored_lines(contents, spec.name), chapter_title
        return _take_lines(contents, spec or LineRange()), chapter_title

    if link.kind is LinkKind.RUSTDOC_INCLUDE:
        spec = link.range_or_anchor
        if isinstance(spec, Anchor):
            return _take_rustdoc_include_anchored_lines(contents, spec.name), chapter_title
        return _take_rustdoc_include_lines(contents, spec or LineRange()), chapter_title

    ftype = "rust," if link.props else "rust"
    if not contents.endswith("\n"):
        contents += "\n"
    return f"```{ftype}{','.join(link.props)}\n{contents}```\n", chapter_title


def replace_all(
    s: str,
    path: str | PathLike[str],
    source: str | PathLike[str],
    depth: int,
    chapter_title: str,
) -> tuple[str, str]:
    """Expand every helper link in ``s``, following includes up to a fixed depth.

    ``path`` is the directory links are resolved against and ``source`` names
    the chapter for messages. Returns the expanded text and the chapter title,
    which a ``{{#title}}`` link may have changed. Links that fail to render are
    left in the text as they were.
    """
    path = Path(path)
    pieces: list[str] = []
    previous_end = 0

    for link in find_links(s):
        pieces.append(s[previous_end:link.start_index])
        try:
            new_content, chapter_title = render_link(link, path, chapter_title)
        except OSError as exc:
            log.error('Error updating "%s", %s', link.link_text, exc)
            if exc.__cause__ is not None:
                log.warning("Caused By: %s", exc.__cause__)
            previous_end = link.start_index
            continue

        if depth < MAX_LINK_NESTED_DEPTH:
            rel_path = link.relative_path(path)
            if rel_path is not None:
                expanded, chapter_title = replace_all(
                    new_content, rel_path, source, depth + 1, chapter_title
                )
                pieces.append(expanded)
            else:
                pieces.append(new_content)
        else:
            log.error(
                "Stack depth exceeded in %s. Check for cyclic includes", Path(source)
            )
        previous_end = link.end_index

    pieces.append(s[previous_end:])
    return "".join(pieces), chapter_title