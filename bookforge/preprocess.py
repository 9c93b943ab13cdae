"""Preprocessors: operations run on a loaded book before it is rendered."""

from __future__ import annotations

import io
import json
import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path, PurePath
from typing import IO, Any

import tomli_w

from bookforge.book_config import ConfigError
from bookforge.config import Config

log = logging.getLogger(__name__)

VERSION = "0.1.0"
"""Version reported to preprocessors so they can check compatibility."""


@dataclass
class PreprocessorContext:
    """Extra information handed to a preprocessor along with the book."""

    root: Path
    config: Config
    renderer: str
    mdbook_version: str = VERSION
    chapter_titles: dict[Path, str] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; chapter title overrides are not included."""
        return {
            "root": str(self.root),
            "config": self.config.to_dict(),
            "renderer": self.renderer,
            "mdbook_version": self.mdbook_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PreprocessorContext:
        """Rebuild a context from the form written by :meth:`to_dict`."""
        if not isinstance(data, Mapping):
            raise ValueError("The preprocessor context must be an object")
        try:
            root = data["root"]
            raw_config = data["config"]
            renderer = data["renderer"]
            version = data["mdbook_version"]
        except KeyError as exc:
            raise ValueError(f"Missing field {exc.args[0]!r} in the preprocessor context") from exc
        if not isinstance(root, str) or not isinstance(renderer, str) or not isinstance(version, str):
            raise ValueError("`root`, `renderer` and `mdbook_version` must be strings")
        if not isinstance(raw_config, Mapping):
            raise ValueError("`config` must be an object")
        try:
            config = Config.from_str(tomli_w.dumps(dict(raw_config)))
        except (TypeError, ConfigError) as exc:
            raise ValueError(f"Invalid configuration in the preprocessor context: {exc}") from exc
        return cls(root=Path(root), config=config, renderer=renderer, mdbook_version=version)


class Preprocessor(ABC):
    """An operation run on the book after loading and before rendering."""

    name: str

    @abstractmethod
    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        """Process ``book`` and return the updated book."""

    def supports_renderer(self, renderer: str) -> bool:
        """Whether this preprocessor should be used with ``renderer``; always true here."""
        return True


def _json_default(value: Any) -> Any:
    if isinstance(value, PurePath):
        return str(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return str(value)


@dataclass
class CmdPreprocessor(Preprocessor):
    """A preprocessor that runs an external command.

    ``supports_renderer`` runs ``<cmd> supports <renderer>`` and treats exit
    code 0 as support. ``run`` writes ``[context, book]`` as JSON to the
    command's stdin and reads the processed book as JSON from its stdout.
    """

    name: str
    cmd: str

    @staticmethod
    def parse_input(reader: IO[str] | IO[bytes]) -> tuple[PreprocessorContext, Any]:
        """Parse the ``[context, book]`` JSON a preprocessor receives on stdin."""
        try:
            data = json.load(reader)
        except ValueError as exc:
            raise ValueError(f"Unable to parse the input: {exc}") from exc
        if not isinstance(data, list) or len(data) != 2:
            raise ValueError("Unable to parse the input: expected a [context, book] pair")
        raw_ctx, book = data
        try:
            ctx = PreprocessorContext.from_dict(raw_ctx)
        except ValueError as exc:
            raise ValueError(f"Unable to parse the input: {exc}") from exc
        return ctx, book

    def write_input(self, writer: IO[str], book: Any, ctx: PreprocessorContext) -> None:
        """Write ``[context, book]`` as JSON to ``writer``."""
        json.dump([ctx.to_dict(), book], writer, default=_json_default)

    def command(self) -> list[str]:
        """The command line split into words, the executable first."""
        words = shlex.split(self.cmd)
        if not words:
            raise ValueError("Command string was empty")
        return words

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        """Send the book through the command and return what it prints."""
        args = self.command()
        buffer = io.StringIO()
        self.write_input(buffer, book, ctx)
        payload = buffer.getvalue().encode("utf-8")

        try:
            proc = subprocess.Popen(args, stdin=subprocess.PIPE, stdout=subprocess.PIPE)
        except OSError as exc:
            raise OSError(
                f'Unable to start the "{self.name}" preprocessor. Is it installed?'
            ) from exc

        try:
            stdout, _ = proc.communicate(input=payload)
        except OSError as exc:
            proc.kill()
            proc.wait()
            raise OSError(
                f'Error waiting for the "{self.name}" preprocessor to complete'
            ) from exc

        log.debug("%s exited with status %s", self.cmd, proc.returncode)
        if proc.returncode != 0:
            raise RuntimeError(
                f'The "{self.name}" preprocessor exited unsuccessfully '
                f"with exit status {proc.returncode}"
            )

        try:
            return json.loads(stdout)
        except ValueError as exc:
            raise ValueError(
                f'Unable to parse the preprocessed book from "{self.name}" processor'
            ) from exc

    def supports_renderer(self, renderer: str) -> bool:
        """Ask the command whether it supports ``renderer``."""
        log.debug('Checking if the "%s" preprocessor supports "%s"', self.name, renderer)
        try:
            args = self.command()
        except ValueError as exc:
            log.warning(
                'Unable to create the command for the "%s" preprocessor, %s', self.name, exc
            )
            return False

        try:
            result = subprocess.run([*args, "supports", renderer], stdin=subprocess.DEVNULL)
        except FileNotFoundError:
            log.warning(
                'The command wasn\'t found, is the "%s" preprocessor installed?', self.name
            )
            log.warning("\tCommand: %s", self.cmd)
            return False
        except OSError:
            return False
        return result.returncode == 0


def is_readme_file(path: str | PathLike[str]) -> bool:
    """Whether the file's stem is ``readme``, ignoring case."""
    return Path(path).stem.lower() == "readme"