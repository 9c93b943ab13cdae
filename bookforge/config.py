"""The complete book configuration, an in-memory form of ``book.toml``."""

from __future__ import annotations

import copy
import datetime as _dt
import json
import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from os import PathLike
from pathlib import PurePath
from typing import Any

import tomli_w

from bookforge.book_config import BookConfig, BuildConfig, ConfigError, RustConfig
from bookforge.html_config import HtmlConfig

log = logging.getLogger(__name__)

ENV_PREFIX = "BOOKFORGE_"

_LEGACY_ITEMS = (
    "title",
    "authors",
    "source",
    "description",
    "output.html.destination",
)


def parse_env(key: str) -> str | None:
    """Turn an environment variable name into a dotted config key, if it is one."""
    if not key.startswith(ENV_PREFIX):
        return None
    rest = key[len(ENV_PREFIX):]
    return rest.lower().replace("__", ".").replace("_", "-")


def _read(value: Any, key: str) -> Any:
    if not isinstance(value, dict):
        return None
    head, sep, tail = key.partition(".")
    if not sep:
        return value.get(key)
    child = value.get(head)
    return None if child is None else _read(child, tail)


def _insert(table: dict[str, Any], key: str, value: Any) -> None:
    head, sep, tail = key.partition(".")
    if not sep:
        table[key] = value
        return
    child = table.get(head)
    if not isinstance(child, dict):
        child = {}
        table[head] = child
    _insert(child, tail, value)


def _delete(value: Any, key: str) -> Any:
    if not isinstance(value, dict):
        return None
    head, sep, tail = key.partition(".")
    if not sep:
        return value.pop(key, None)
    child = value.get(head)
    return None if child is None else _delete(child, tail)


def is_legacy_format(table: Mapping[str, Any]) -> bool:
    """Whether the table uses the old layout with metadata at the top level."""
    return any(_read(table, item) is not None for item in _LEGACY_ITEMS)


_SCALARS = (bool, int, float, str, _dt.datetime, _dt.date, _dt.time)


def _to_toml_value(value: Any) -> Any:
    """Convert a Python value into something TOML can hold."""
    if value is None:
        raise ConfigError("Unable to represent the item as a TOML value: None")
    if isinstance(value, Enum):
        return _to_toml_value(value.value)
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, Mapping):
        return {
            str(k): _to_toml_value(v) for k, v in value.items() if v is not None
        }
    if isinstance(value, (list, tuple)):
        return [_to_toml_value(item) for item in value]
    if is_dataclass(value) and not isinstance(value, type):
        to_dict = getattr(value, "to_dict", None)
        if callable(to_dict):
            return _to_toml_value(to_dict())
        return _to_toml_value({f.name: getattr(value, f.name) for f in fields(value)})
    raise ConfigError(
        f"Unable to represent the item as a TOML value: {type(value).__name__}"
    )


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [_sorted(item) for item in value]
    return value


def _parse_env_value(text: str) -> Any:
    def reject(constant: str) -> Any:
        raise ValueError(constant)

    try:
        return json.loads(text, parse_constant=reject)
    except ValueError:
        return text


@dataclass
class Config:
    """Book configuration: fixed tables plus arbitrary data for renderers and preprocessors."""

    book: BookConfig = field(default_factory=BookConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    rust: RustConfig = field(default_factory=RustConfig)
    _rest: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_str(cls, src: str) -> Config:
        """Load a configuration from TOML text."""
        try:
            raw = tomllib.loads(src)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid configuration file: {exc}") from exc
        try:
            return cls._from_table(raw)
        except ConfigError as exc:
            raise ConfigError(f"Invalid configuration file: {exc}") from exc

    @classmethod
    def from_disk(cls, config_file: str | PathLike[str]) -> Config:
        """Load a configuration from a TOML file."""
        try:
            with open(config_file, encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            raise ConfigError(f"Unable to open the configuration file: {exc}") from exc
        return cls.from_str(text)

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> Config:
        if is_legacy_format(table):
            log.warning("It looks like you are using the legacy book.toml format.")
            log.warning(
                "Move top level entries like `title`, `authors` and `description` "
                "under a `[book]` table, and `destination` from `[output.html]` "
                "to `build-dir` under a `[build]` table."
            )
            return cls._from_legacy(table)

        book = table.pop("book", None)
        build = table.pop("build", None)
        rust = table.pop("rust", None)
        return cls(
            book=BookConfig() if book is None else BookConfig.from_dict(book),
            build=BuildConfig() if build is None else BuildConfig.from_dict(build),
            rust=RustConfig() if rust is None else RustConfig.from_dict(rust),
            _rest=table,
        )

    @classmethod
    def _from_legacy(cls, table: dict[str, Any]) -> Config:
        cfg = cls()
        title = table.pop("title", None)
        if isinstance(title, str):
            cfg.book.title = title
        authors = table.pop("authors", None)
        if isinstance(authors, list) and all(isinstance(a, str) for a in authors):
            cfg.book.authors = list(authors)
        source = table.pop("source", None)
        if isinstance(source, str):
            cfg.book.src = PurePath(source) if False else type(cfg.book.src)(source)
        description = table.pop("description", None)
        if isinstance(description, str):
            cfg.book.description = description

        destination = _delete(table, "output.html.destination")
        if isinstance(destination, str):
            cfg.build.build_dir = type(cfg.build.build_dir)(destination)

        cfg._rest = table
        return cfg

    def update_from_env(self, environ: Mapping[str, str] | None = None) -> None:
        """Apply overrides from ``BOOKFORGE_*`` environment variables.

        The prefix is removed, ``__`` separates nested keys and ``_`` becomes
        ``-``. Values are parsed as JSON, falling back to a plain string.
        """
        log.debug("Updating the config from environment variables")
        if environ is None:
            environ = os.environ

        for name, raw in environ.items():
            key = parse_env(name)
            if key is None:
                continue
            log.debug("%s => %s", key, raw)
            value = _parse_env_value(raw)

            if key in ("book", "build") and isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    self.set(f"{key}.{sub_key}", sub_value)
                return

            self.set(key, value)

    def get(self, key: str) -> Any:
        """Fetch an item by dotted key from the free-form part of the config.

        Tables and arrays are returned as the live objects, so they can be
        changed in place.
        """
        return _read(self._rest, key)

    def set(self, index: str, value: Any) -> None:
        """Set a dotted key, clobbering anything in the way."""
        value = _to_toml_value(value)

        if index.startswith("book."):
            self.book = _updated(self.book, index[len("book."):], value)
        elif index.startswith("build."):
            self.build = _updated(self.build, index[len("build."):], value)
        else:
            _insert(self._rest, index, value)

    def html_config(self) -> HtmlConfig | None:
        """The ``[output.html]`` table, or ``None`` if absent or invalid."""
        raw = self.get("output.html")
        if raw is None:
            return None
        try:
            return HtmlConfig.from_dict(raw)
        except ConfigError as exc:
            log.error("Parsing configuration [output.html]: %s", exc)
            return None

    def get_renderer(self, index: str) -> dict[str, Any] | None:
        """The table for a renderer, ``output.<index>``."""
        value = self.get(f"output.{index}")
        return value if isinstance(value, dict) else None

    def get_preprocessor(self, index: str) -> dict[str, Any] | None:
        """The table for a preprocessor, ``preprocessor.<index>``."""
        value = self.get(f"preprocessor.{index}")
        return value if isinstance(value, dict) else None

    def to_dict(self) -> dict[str, Any]:
        """The whole configuration as a table with sorted keys."""
        table = copy.deepcopy(self._rest)
        table["book"] = self.book.to_dict()
        if self.build != BuildConfig():
            table["build"] = self.build.to_dict()
        if self.rust != RustConfig():
            table["rust"] = self.rust.to_dict()
        return _sorted(table)

    def to_toml(self) -> str:
        """The whole configuration as TOML text."""
        return tomli_w.dumps(self.to_dict())


def _updated(section: Any, key: str, value: Any) -> Any:
    """Return ``section`` with ``key`` replaced, or unchanged if that makes it invalid."""
    raw = section.to_dict()
    _insert(raw, key, value)
    try:
        return type(section).from_dict(raw)
    except ConfigError:
        return section