"""Book configuration handling and chapter preprocessors for markdown books."""

__version__ = "0.1.0"

__all__ = [
    "book_config",
    "config",
    "html_config",
    "link_parse",
    "links",
    "preprocess",
]