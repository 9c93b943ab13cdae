"""The ``[book]``, ``[build]`` and ``[rust]`` tables of a book's configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ConfigError(ValueError):
    """Raised when configuration data has the wrong shape or type."""


_RTL_LANGUAGES = frozenset(
    {
        "ar", "ara", "arc", "ae", "ave", "egy", "he", "heb", "nqo", "pal",
        "phn", "sam", "syc", "syr", "fa", "per", "fas", "ku", "kur", "ur",
        "urd", "pus", "ps", "yi", "yid",
    }
)


class TextDirection(Enum):
    """Direction of text in the rendered book."""

    LEFT_TO_RIGHT = "ltr"
    RIGHT_TO_LEFT = "rtl"

    @classmethod
    def from_lang_code(cls, code: str) -> TextDirection:
        """Derive the text direction from a language code."""
        return cls.RIGHT_TO_LEFT if code in _RTL_LANGUAGES else cls.LEFT_TO_RIGHT


class RustEdition(Enum):
    """Edition of the language used for code in the playground."""

    E2021 = "2021"
    E2018 = "2018"
    E2015 = "2015"


def _table(data: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigError(f"[{name}] must be a table, got {type(data).__name__}")
    return data


def _str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"invalid type for `{key}`: expected a string, got {value!r}")
    return value


def _opt_str(value: Any, key: str) -> str | None:
    return None if value is None else _str(value, key)


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"invalid type for `{key}`: expected a boolean, got {value!r}")
    return value


def _str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list):
        raise ConfigError(f"invalid type for `{key}`: expected an array, got {value!r}")
    return [_str(item, key) for item in value]


def _path(value: Any, key: str) -> Path:
    return Path(_str(value, key))


def _enum(enum_cls: type[Enum], value: Any, key: str) -> Any:
    text = _str(value, key)
    try:
        return enum_cls(text)
    except ValueError:
        allowed = ", ".join(repr(member.value) for member in enum_cls)
        raise ConfigError(
            f"unknown variant {text!r} for `{key}`, expected one of {allowed}"
        ) from None


@dataclass
class BookConfig:
    """Metadata about the book and where its sources live."""

    title: str | None = None
    authors: list[str] = field(default_factory=list)
    description: str | None = None
    src: Path = field(default_factory=lambda: Path("src"))
    multilingual: bool = False
    language: str | None = "en"
    text_direction: TextDirection | None = None

    def realized_text_direction(self) -> TextDirection:
        """The explicit text direction, or the one implied by the language."""
        if self.text_direction is not None:
            return self.text_direction
        return TextDirection.from_lang_code(self.language or "")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BookConfig:
        """Build from a kebab-case table; missing keys take their defaults."""
        data = _table(data, "book")
        cfg = cls()
        if "title" in data:
            cfg.title = _opt_str(data["title"], "title")
        if "authors" in data:
            cfg.authors = _str_list(data["authors"], "authors")
        if "description" in data:
            cfg.description = _opt_str(data["description"], "description")
        if "src" in data:
            cfg.src = _path(data["src"], "src")
        if "multilingual" in data:
            cfg.multilingual = _bool(data["multilingual"], "multilingual")
        if "language" in data:
            cfg.language = _opt_str(data["language"], "language")
        if data.get("text-direction") is not None:
            cfg.text_direction = _enum(TextDirection, data["text-direction"], "text-direction")
        return cfg

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table with keys sorted; unset optional values are left out."""
        out: dict[str, Any] = {
            "authors": list(self.authors),
            "description": self.description,
            "language": self.language,
            "multilingual": self.multilingual,
            "src": self.src.as_posix(),
            "text-direction": self.text_direction.value if self.text_direction else None,
            "title": self.title,
        }
        return {key: value for key, value in out.items() if value is not None}


@dataclass
class BuildConfig:
    """Settings for the build procedure."""

    build_dir: Path = field(default_factory=lambda: Path("book"))
    create_missing: bool = True
    use_default_preprocessors: bool = True
    extra_watch_dirs: list[Path] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BuildConfig:
        """Build from a kebab-case table; missing keys take their defaults."""
        data = _table(data, "build")
        cfg = cls()
        if "build-dir" in data:
            cfg.build_dir = _path(data["build-dir"], "build-dir")
        if "create-missing" in data:
            cfg.create_missing = _bool(data["create-missing"], "create-missing")
        if "use-default-preprocessors" in data:
            cfg.use_default_preprocessors = _bool(
                data["use-default-preprocessors"], "use-default-preprocessors"
            )
        if "extra-watch-dirs" in data:
            cfg.extra_watch_dirs = [
                Path(p) for p in _str_list(data["extra-watch-dirs"], "extra-watch-dirs")
            ]
        return cfg

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table with keys sorted."""
        return {
            "build-dir": self.build_dir.as_posix(),
            "create-missing": self.create_missing,
            "extra-watch-dirs": [p.as_posix() for p in self.extra_watch_dirs],
            "use-default-preprocessors": self.use_default_preprocessors,
        }


@dataclass
class RustConfig:
    """Settings for code examples, such as the edition used in the playground."""

    edition: RustEdition | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RustConfig:
        """Build from a kebab-case table; missing keys take their defaults."""
        data = _table(data, "rust")
        edition = data.get("edition")
        if edition is None:
            return cls()
        return cls(edition=_enum(RustEdition, edition, "edition"))

    def to_dict(self) -> dict[str, Any]:
        """Kebab-case table; an unset edition is left out."""
        return {} if self.edition is None else {"edition": self.edition.value}