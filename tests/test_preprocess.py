import io
import json
import shlex
import sys
from pathlib import Path

import pytest

from bookforge.config import Config
from bookforge.preprocess import (
    VERSION,
    CmdPreprocessor,
    Preprocessor,
    PreprocessorContext,
    is_readme_file,
)

SAMPLE_BOOK = {
    "sections": [
        {"Chapter": {"name": "Intro", "content": "# Intro\n", "path": "intro.md"}},
        "Separator",
    ]
}


def _python_cmd(script: str) -> str:
    return shlex.join([sys.executable, "-c", script])


def _context() -> PreprocessorContext:
    cfg = Config.from_str('[book]\ntitle = "Sample"\n[output.html]\ncurly-quotes = true\n')
    return PreprocessorContext(Path("/books/sample"), cfg, "some-renderer")


ECHO_SCRIPT = (
    "import json, sys\n"
    "if len(sys.argv) > 1 and sys.argv[1] == 'supports':\n"
    "    sys.exit(1 if sys.argv[2] == 'not-supported' else 0)\n"
    "ctx, book = json.load(sys.stdin)\n"
    "book['renderer'] = ctx['renderer']\n"
    "print(json.dumps(book))\n"
)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("path/to/Readme.md", True),
        ("path/to/README.md", True),
        ("path/to/rEaDmE.md", True),
        ("path/to/README.markdown", True),
        ("path/to/README", True),
        ("path/to/README-README.md", False),
    ],
)
def test_file_stem_exactly_matches_readme_case_insensitively(path, expected):
    assert is_readme_file(path) is expected


def test_round_trip_write_and_parse_input():
    cmd = CmdPreprocessor("test", "test")
    ctx = _context()
    buffer = io.StringIO()
    cmd.write_input(buffer, SAMPLE_BOOK, ctx)
    buffer.seek(0)
    got_ctx, got_book = CmdPreprocessor.parse_input(buffer)
    assert got_book == SAMPLE_BOOK
    assert got_ctx == ctx
    assert got_ctx.config.book.title == "Sample"


def test_context_to_dict_omits_chapter_titles():
    ctx = _context()
    ctx.chapter_titles[Path("intro.md")] = "Other"
    data = ctx.to_dict()
    assert set(data) == {"root", "config", "renderer", "mdbook_version"}
    assert data["mdbook_version"] == VERSION
    assert data["renderer"] == "some-renderer"


def test_context_from_dict_missing_field():
    with pytest.raises(ValueError):
        PreprocessorContext.from_dict({"root": "/x", "renderer": "html"})


def test_parse_input_rejects_garbage():
    with pytest.raises(ValueError, match="Unable to parse the input"):
        CmdPreprocessor.parse_input(io.StringIO("not json"))
    with pytest.raises(ValueError, match="Unable to parse the input"):
        CmdPreprocessor.parse_input(io.StringIO("[1, 2, 3]"))


def test_command_splits_words():
    cmd = CmdPreprocessor("p", "tool --flag 'two words'")
    assert cmd.command() == ["tool", "--flag", "two words"]


def test_empty_command_is_an_error():
    with pytest.raises(ValueError, match="Command string was empty"):
        CmdPreprocessor("p", "   ").command()


def test_run_returns_processed_book():
    cmd = CmdPreprocessor("echo", _python_cmd(ECHO_SCRIPT))
    got = cmd.run(_context(), SAMPLE_BOOK)
    assert got == {**SAMPLE_BOOK, "renderer": "some-renderer"}


def test_supports_renderer_uses_exit_code():
    cmd = CmdPreprocessor("echo", _python_cmd(ECHO_SCRIPT))
    assert cmd.supports_renderer("whatever") is True
    assert cmd.supports_renderer("not-supported") is False


def test_missing_command_is_not_supported():
    cmd = CmdPreprocessor("missing", "trduyvbhijnorgevfuhn")
    assert cmd.supports_renderer("html") is False


def test_missing_command_fails_to_run():
    cmd = CmdPreprocessor("missing", "trduyvbhijnorgevfuhn")
    with pytest.raises(OSError, match="Is it installed"):
        cmd.run(_context(), SAMPLE_BOOK)


def test_failing_command_raises():
    cmd = CmdPreprocessor("fail", _python_cmd("import sys; sys.stdin.read(); sys.exit(3)"))
    with pytest.raises(RuntimeError, match="exited unsuccessfully"):
        cmd.run(_context(), SAMPLE_BOOK)


def test_invalid_output_raises():
    cmd = CmdPreprocessor("bad", _python_cmd("import sys; sys.stdin.read(); print('nope')"))
    with pytest.raises(ValueError, match="Unable to parse the preprocessed book"):
        cmd.run(_context(), SAMPLE_BOOK)


class _Counter(Preprocessor):
    name = "counter"

    def __init__(self):
        self.seen = []

    def run(self, ctx, book):
        self.seen.append(ctx.renderer)
        return book


def test_default_supports_renderer_and_run():
    pre = _Counter()
    assert pre.supports_renderer("anything") is True
    assert pre.run(_context(), SAMPLE_BOOK) == SAMPLE_BOOK
    assert pre.seen == ["some-renderer"]


def test_written_input_is_context_then_book():
    buffer = io.StringIO()
    CmdPreprocessor("t", "t").write_input(buffer, SAMPLE_BOOK, _context())
    data = json.loads(buffer.getvalue())
    assert data[0]["root"] == str(Path("/books/sample"))
    assert data[1] == SAMPLE_BOOK