"""The ``[output.html]`` table: settings for the HTML renderer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from os import PathLike
from pathlib import Path
from typing import Any, TypeVar

from bookforge.book_config import (
    ConfigError,
    _bool,
    _opt_str,
    _str,
    _str_list,
    _table,
)

_U8_MAX = 2**8 - 1
_U32_MAX = 2**32 - 1

_T = TypeVar("_T")


def _uint(value: Any, key: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"invalid type for `{key}`: expected an integer, got {value!r}")
    if not 0 <= value <= maximum:
        raise ConfigError(f"invalid value for `{key}`: {value} is outside 0..={maximum}")
    return value


def _str_map(value: Any, key: str) -> dict[str, str]:
    table = _table(value, key)
    return {str(k): _str(v, f"{key}.{k}") for k, v in table.items()}


def _kebab(name: str) -> str:
    return name.replace("_", "-")


def _load_flat(cls: type[_T], data: Any, name: str) -> _T:
    """Build a dataclass of booleans and bounded integers from a kebab-case table."""
    table = _table(data, name)
    values: dict[str, Any] = {}
    for f in fields(cls):  # type: ignore[arg-type]
        key = _kebab(f.name)
        if key not in table:
            continue
        if isinstance(f.default, bool):
            values[f.name] = _bool(table[key], key)
        else:
            values[f.name] = _uint(table[key], key, f.metadata["max"])
    return cls(**values)


def _dump_flat(obj: Any) -> dict[str, Any]:
    return {_kebab(f.name): getattr(obj, f.name) for f in fields(obj)}


@dataclass
class Print:
    """How the print icon and the print page are rendered."""

    enable: bool = True
    page_break: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Print:
        """Build from a kebab-case table; missing keys take their defaults."""
        return _load_flat(cls, data, "print")

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table."""
        return _dump_flat(self)


@dataclass
class Fold:
    """How chapters in the sidebar are folded."""

    enable: bool = False
    level: int = field(default=0, metadata={"max": _U8_MAX})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Fold:
        """Build from a kebab-case table; missing keys take their defaults."""
        return _load_flat(cls, data, "fold")

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table."""
        return _dump_flat(self)


@dataclass
class Playground:
    """How runnable code snippets are presented."""

    editable: bool = False
    copyable: bool = True
    copy_js: bool = True
    line_numbers: bool = False
    runnable: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Playground:
        """Build from a kebab-case table; missing keys take their defaults."""
        return _load_flat(cls, data, "playground")

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table."""
        return _dump_flat(self)


@dataclass
class Code:
    """How code blocks are handled."""

    hidelines: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Code:
        """Build from a kebab-case table; missing keys take their defaults."""
        table = _table(data, "code")
        if "hidelines" not in table:
            return cls()
        return cls(hidelines=_str_map(table["hidelines"], "hidelines"))

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table."""
        return {"hidelines": dict(self.hidelines)}


@dataclass
class Search:
    """Settings for the search feature of the HTML renderer."""

    enable: bool = True
    limit_results: int = field(default=30, metadata={"max": _U32_MAX})
    teaser_word_count: int = field(default=30, metadata={"max": _U32_MAX})
    use_boolean_and: bool = False
    boost_title: int = field(default=2, metadata={"max": _U8_MAX})
    boost_hierarchy: int = field(default=1, metadata={"max": _U8_MAX})
    boost_paragraph: int = field(default=1, metadata={"max": _U8_MAX})
    expand: bool = True
    heading_split_level: int = field(default=3, metadata={"max": _U8_MAX})
    copy_js: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Search:
        """Build from a kebab-case table; missing keys take their defaults."""
        return _load_flat(cls, data, "search")

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table."""
        return _dump_flat(self)


_OPTIONAL_STRINGS = (
    "default_theme",
    "preferred_dark_theme",
    "google_analytics",
    "git_repository_url",
    "git_repository_icon",
    "input_404",
    "site_url",
    "cname",
    "edit_url_template",
    "live_reload_endpoint",
)

_BOOLEANS = ("curly_quotes", "mathjax_support", "copy_fonts", "no_section_label")


@dataclass
class HtmlConfig:
    """Configuration of the HTML renderer."""

    theme: Path | None = None
    default_theme: str | None = None
    preferred_dark_theme: str | None = None
    curly_quotes: bool = False
    mathjax_support: bool = False
    copy_fonts: bool = True
    google_analytics: str | None = None
    additional_css: list[Path] = field(default_factory=list)
    additional_js: list[Path] = field(default_factory=list)
    fold: Fold = field(default_factory=Fold)
    playground: Playground = field(default_factory=Playground)
    code: Code = field(default_factory=Code)
    print: Print = field(default_factory=Print)
    no_section_label: bool = False
    search: Search | None = None
    git_repository_url: str | None = None
    git_repository_icon: str | None = None
    input_404: str | None = None
    site_url: str | None = None
    cname: str | None = None
    edit_url_template: str | None = None
    live_reload_endpoint: str | None = None
    redirect: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HtmlConfig:
        """Build from a kebab-case table; unknown keys are ignored."""
        table = _table(data, "output.html")
        cfg = cls()

        if table.get("theme") is not None:
            cfg.theme = Path(_str(table["theme"], "theme"))
        for name in _OPTIONAL_STRINGS:
            key = _kebab(name)
            if key in table:
                setattr(cfg, name, _opt_str(table[key], key))
        for name in _BOOLEANS:
            key = _kebab(name)
            if key in table:
                setattr(cfg, name, _bool(table[key], key))
        for name in ("additional_css", "additional_js"):
            key = _kebab(name)
            if key in table:
                setattr(cfg, name, [Path(p) for p in _str_list(table[key], key)])

        if "fold" in table:
            cfg.fold = Fold.from_dict(table["fold"])
        if "playground" in table and "playpen" in table:
            raise ConfigError("duplicate field `playground` (also given as `playpen`)")
        playground = table.get("playground", table.get("playpen"))
        if playground is not None:
            cfg.playground = Playground.from_dict(playground)
        if "code" in table:
            cfg.code = Code.from_dict(table["code"])
        if "print" in table:
            cfg.print = Print.from_dict(table["print"])
        if table.get("search") is not None:
            cfg.search = Search.from_dict(table["search"])
        if "redirect" in table:
            cfg.redirect = _str_map(table["redirect"], "redirect")
        return cfg

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table; unset optional values are left out."""
        out: dict[str, Any] = {}
        if self.theme is not None:
            out["theme"] = self.theme.as_posix()
        for name in _OPTIONAL_STRINGS:
            value = getattr(self, name)
            if value is not None:
                out[_kebab(name)] = value
        for name in _BOOLEANS:
            out[_kebab(name)] = getattr(self, name)
        out["additional-css"] = [p.as_posix() for p in self.additional_css]
        out["additional-js"] = [p.as_posix() for p in self.additional_js]
        out["fold"] = self.fold.to_dict()
        out["playground"] = self.playground.to_dict()
        out["code"] = self.code.to_dict()
        out["print"] = self.print.to_dict()
        if self.search is not None:
            out["search"] = self.search.to_dict()
        out["redirect"] = dict(self.redirect)
        return out

    def theme_dir(self, root: str | PathLike[str]) -> Path:
        """The theme directory under ``root``, defaulting to ``theme``."""
        root = Path(root)
        return root / self.theme if self.theme is not None else root / "theme"