# bookforge

This package handles configuration and chapter preprocessing for books that are
written as a set of markdown files.

## Installation

```
pip install bookforge
```

## Configuration

`bookforge.config.Config` holds a book's `book.toml` in memory. Three of its
tables are typed:

- `book` is a `bookforge.book_config.BookConfig`.
- `build` is a `BuildConfig`.
- `rust` is a `RustConfig`.

Every other table is kept as plain data, for renderers and preprocessors to read.

```python
from bookforge.config import Config

cfg = Config.from_str('''
[book]
title = "My Book"
authors = ["Jane Doe"]

[other-table.foo]
bar = 123
''')

cfg.get("other-table.foo.bar")          # 123
cfg.set("output.html.theme", "./themes")
cfg.html_config().theme                 # Path("themes")
print(cfg.to_toml())
```

### Loading and reading

- `Config.from_disk(path)` reads a configuration file.
- `Config.get_renderer(name)` returns the `output.<name>` table.
- `Config.get_preprocessor(name)` returns the `preprocessor.<name>` table.
- `Config.to_dict()` returns the whole configuration as a table with sorted keys.
- `Config.to_toml()` returns the whole configuration as TOML text.

Loading raises `bookforge.book_config.ConfigError` when the TOML is malformed or
a typed table holds a value of the wrong type. A legacy file still loads. In the
legacy layout, `title`, `authors`, `source` and `description` sit at the top
level, and `output.html.destination` names the build directory.

### The `[output.html]` table

`Config.html_config()` reads the `[output.html]` table into a
`bookforge.html_config.HtmlConfig`. It returns `None` when the table is absent
or invalid. `HtmlConfig.theme_dir(root)` gives the theme directory under `root`.

### Text direction

`BookConfig.realized_text_direction()` returns a `TextDirection`. When
`text-direction` is not set, the direction comes from the book's language.

### Environment overrides

`Config.update_from_env(environ=None)` applies overrides from variables whose
names begin with `BOOKFORGE_`. It reads `os.environ` unless you pass another
mapping. To form the key, the prefix is removed and the rest is lower-cased:

- A double underscore separates nested keys.
- A single underscore becomes a dash.

So `BOOKFORGE_BOOK__TITLE` sets `book.title`. Each value is parsed as JSON, and
is used as a plain string if that fails.

## Helper links in chapters

`bookforge.links.replace_all(text, path, source, depth, chapter_title)` expands
these helpers in a chapter's text:

- `{{#include file.rs}}`, `{{#include file.rs:10:20}}`, `{{#include file.rs:anchor}}`
- `{{#rustdoc_include file.rs:anchor}}`. Lines outside the range or anchor are kept, with `# ` in front.
- `{{#playground example.rs editable}}`. This wraps the file in a code block.
- `{{#title Custom Page Title}}`. This overrides the chapter title.

Links are resolved against `path`. `source` names the chapter in log messages.
The function returns a pair: the expanded text and the chapter title, which a
`{{#title}}` helper may have changed.

```python
from bookforge.links import replace_all

text, title = replace_all(chapter_text, "book/src/first", "first/chapter.md", 0, "Chapter")
```

Included files are expanded in turn, to a depth of ten. A helper whose file
cannot be read is logged and left in the text unchanged. Put a backslash in
front of a helper to escape it, as in `\{{#include file.rs}}`; the expanded
text then shows it without the backslash.

`bookforge.link_parse.find_links(text)` yields the helpers it finds as `Link`
objects, each with its position. `parse_include_path` parses an include target
such as `file.rs:5:10` into a `LineRange` or an `Anchor`.

## Preprocessors

`bookforge.preprocess.Preprocessor` is the base class for an operation that runs
on a book before it is rendered. Subclasses implement `run(ctx, book)`. The
context is a `PreprocessorContext`, which holds:

- the root directory
- the `Config`
- the renderer name
- a version string

`CmdPreprocessor(name, cmd)` runs an external program as a preprocessor:

- `supports_renderer(renderer)` runs `<cmd> supports <renderer>`. It returns true when the exit status is 0.
- `run(ctx, book)` writes `[context, book]` as JSON to the program's stdin. It returns the JSON the program prints on stdout, and raises if the program exits with a non-zero status.
- `CmdPreprocessor.parse_input(stream)` reads that input back inside such a program.

`is_readme_file(path)` tells whether a file's stem is `readme`, ignoring case.

## What this package does not do

There is no command-line tool and no renderer. The package has no code that
loads a book from disk or parses a `SUMMARY.md`. It does not write HTML. The
`book` passed to preprocessors is whatever JSON-compatible data the caller
supplies.

## Running the tests

```
pip install -e ".[test]"
pytest
```