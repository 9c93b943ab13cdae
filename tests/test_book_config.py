from pathlib import Path

import pytest

from bookforge.book_config import (
    BookConfig,
    BuildConfig,
    ConfigError,
    RustConfig,
    RustEdition,
    TextDirection,
)


def test_book_defaults():
    cfg = BookConfig()
    assert cfg.title is None
    assert cfg.authors == []
    assert cfg.src == Path("src")
    assert cfg.multilingual is False
    assert cfg.language == "en"
    assert cfg.text_direction is None


def test_build_defaults():
    cfg = BuildConfig()
    assert cfg.build_dir == Path("book")
    assert cfg.create_missing is True
    assert cfg.use_default_preprocessors is True
    assert cfg.extra_watch_dirs == []


def test_load_complex_book_table():
    got = BookConfig.from_dict(
        {
            "title": "Some Book",
            "authors": ["Michael-F-Bryan <someone@example.com>"],
            "description": "A completely useless book",
            "multilingual": True,
            "src": "source",
            "language": "ja",
        }
    )
    assert got == BookConfig(
        title="Some Book",
        authors=["Michael-F-Bryan <someone@example.com>"],
        description="A completely useless book",
        multilingual=True,
        src=Path("source"),
        language="ja",
        text_direction=None,
    )


def test_load_complex_build_table():
    got = BuildConfig.from_dict(
        {"build-dir": "outputs", "create-missing": False, "use-default-preprocessors": True}
    )
    assert got == BuildConfig(
        build_dir=Path("outputs"),
        create_missing=False,
        use_default_preprocessors=True,
        extra_watch_dirs=[],
    )


def test_unknown_keys_are_ignored():
    got = BookConfig.from_dict({"title": "T", "something-else": 3})
    assert got.title == "T"


@pytest.mark.parametrize(
    "value, edition",
    [("2015", RustEdition.E2015), ("2018", RustEdition.E2018), ("2021", RustEdition.E2021)],
)
def test_editions(value, edition):
    assert RustConfig.from_dict({"edition": value}) == RustConfig(edition=edition)


def test_rust_default_has_no_edition():
    assert RustConfig.from_dict({}) == RustConfig(edition=None)
    assert RustConfig().to_dict() == {}


def test_invalid_rust_edition():
    with pytest.raises(ConfigError):
        RustConfig.from_dict({"edition": "1999"})


def test_text_direction_ltr():
    assert BookConfig.from_dict({"text-direction": "ltr"}).text_direction == TextDirection.LEFT_TO_RIGHT


def test_text_direction_rtl():
    assert BookConfig.from_dict({"text-direction": "rtl"}).text_direction == TextDirection.RIGHT_TO_LEFT


def test_text_direction_none():
    assert BookConfig.from_dict({}).text_direction is None


def test_invalid_text_direction():
    with pytest.raises(ConfigError):
        BookConfig.from_dict({"text-direction": "up"})


def test_realized_text_direction():
    cfg = BookConfig()

    cfg.language = "ar"
    assert cfg.realized_text_direction() == TextDirection.RIGHT_TO_LEFT
    cfg.language = "he"
    assert cfg.realized_text_direction() == TextDirection.RIGHT_TO_LEFT
    cfg.language = "en"
    assert cfg.realized_text_direction() == TextDirection.LEFT_TO_RIGHT
    cfg.language = "ja"
    assert cfg.realized_text_direction() == TextDirection.LEFT_TO_RIGHT

    cfg.language = "ar"
    cfg.text_direction = TextDirection.LEFT_TO_RIGHT
    assert cfg.realized_text_direction() == TextDirection.LEFT_TO_RIGHT
    cfg.language = "ar"
    cfg.text_direction = TextDirection.RIGHT_TO_LEFT
    assert cfg.realized_text_direction() == TextDirection.RIGHT_TO_LEFT
    cfg.language = "en"
    cfg.text_direction = TextDirection.LEFT_TO_RIGHT
    assert cfg.realized_text_direction() == TextDirection.LEFT_TO_RIGHT
    cfg.language = "en"
    cfg.text_direction = TextDirection.RIGHT_TO_LEFT
    assert cfg.realized_text_direction() == TextDirection.RIGHT_TO_LEFT


def test_realized_text_direction_without_language():
    cfg = BookConfig(language=None)
    assert cfg.realized_text_direction() == TextDirection.LEFT_TO_RIGHT


@pytest.mark.parametrize("code", ["fa", "urd", "yi", "ps", "syr"])
def test_rtl_lang_codes(code):
    assert TextDirection.from_lang_code(code) == TextDirection.RIGHT_TO_LEFT


@pytest.mark.parametrize("code", ["de", "", "AR", "zh"])
def test_ltr_lang_codes(code):
    assert TextDirection.from_lang_code(code) == TextDirection.LEFT_TO_RIGHT


def test_invalid_language_type():
    with pytest.raises(ConfigError):
        BookConfig.from_dict({"title": "mdBook Documentation", "language": ["en", "pt-br"]})


def test_invalid_title_type():
    with pytest.raises(ConfigError):
        BookConfig.from_dict({"title": 20, "language": "en"})


def test_invalid_build_dir_type():
    with pytest.raises(ConfigError):
        BuildConfig.from_dict({"build-dir": 99, "create-missing": False})


def test_invalid_bool_type():
    with pytest.raises(ConfigError):
        BuildConfig.from_dict({"create-missing": 1})


def test_non_table_rejected():
    with pytest.raises(ConfigError):
        BookConfig.from_dict(["not", "a", "table"])


def test_default_book_to_dict():
    assert BookConfig().to_dict() == {
        "authors": [],
        "language": "en",
        "multilingual": False,
        "src": "src",
    }
    assert list(BookConfig().to_dict()) == ["authors", "language", "multilingual", "src"]


def test_build_to_dict():
    cfg = BuildConfig(build_dir=Path("out"))
    assert cfg.to_dict() == {
        "build-dir": "out",
        "create-missing": True,
        "extra-watch-dirs": [],
        "use-default-preprocessors": True,
    }


def test_book_round_trip():
    cfg = BookConfig(
        title="Title",
        authors=["A", "B"],
        description="Desc",
        src=Path("in"),
        multilingual=True,
        language="ar",
        text_direction=TextDirection.LEFT_TO_RIGHT,
    )
    assert BookConfig.from_dict(cfg.to_dict()) == cfg


def test_build_round_trip():
    cfg = BuildConfig(
        build_dir=Path("dist"),
        create_missing=False,
        use_default_preprocessors=False,
        extra_watch_dirs=[Path("a"), Path("b/c")],
    )
    assert BuildConfig.from_dict(cfg.to_dict()) == cfg


def test_rust_round_trip():
    cfg = RustConfig(edition=RustEdition.E2018)
    assert cfg.to_dict() == {"edition": "2018"}
    assert RustConfig.from_dict(cfg.to_dict()) == cfg