from __future__ import annotations

from pathlib import Path

import pytest

from repo_concat.exceptions import DecodeError, FileIOError
from repo_concat.normalizer import Block, make_block, normalize_text, read_text

SAMPLES = [
    "x\n\n  \ny",
    "def f():\t \r\n    return 1   \r\n\r\n",
    "\n\n\n",
    "",
    "  leading kept\ntrailing dropped   \n",
    "old\rmac\rendings\r",
    "page one\x0cpage two\n\x0c\n",
]


@pytest.mark.unit
def test_normalize_text_drops_blank_lines_and_trailing_whitespace() -> None:
    assert normalize_text("x\n\n  \ny") == "x\ny"
    assert normalize_text("  leading kept\ntrailing dropped   \n") == "  leading kept\ntrailing dropped"


@pytest.mark.unit
def test_normalize_text_accepts_any_line_ending() -> None:
    assert normalize_text("a  \r\nb\r\n\r\nc\rd") == "a\nb\nc\nd"


@pytest.mark.unit
def test_normalize_text_keeps_form_feed_and_unicode_separators() -> None:
    assert normalize_text("a\x0cb\n") == "a\x0cb"
    assert normalize_text('s = "\u2028"\n') == 's = "\u2028"'
    assert normalize_text('t = "\x1c\x85\u2029"\r\n') == 't = "\x1c\x85\u2029"'
    assert normalize_text("lone\x0b\nnext") == "lone\nnext"


@pytest.mark.unit
@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_text_is_idempotent(text: str) -> None:
    once = normalize_text(text)

    assert normalize_text(once) == once


@pytest.mark.unit
def test_normalize_text_whitespace_only_gives_empty_body() -> None:
    assert normalize_text(" \n\t\n   \n") == ""


@pytest.mark.unit
def test_make_block_builds_header_and_body(tmp_path: Path) -> None:
    source = tmp_path / "a.py"
    source.write_text("x\n\n  \ny", encoding="utf-8")

    block = make_block(source)

    assert block.header == f"*** {source}"
    assert block.body == "x\ny"
    assert block.line_count == 2  # noqa: PLR2004
    assert block.render() == f"*** {source}\nx\ny\n"


@pytest.mark.unit
def test_make_block_label_replaces_header_path(tmp_path: Path) -> None:
    source = tmp_path / "pkg" / "a.py"
    source.parent.mkdir()
    source.write_text("x  \n", encoding="utf-8")

    block = make_block(source, label=Path("pkg/a.py"))

    assert block.render() == "*** pkg/a.py\nx\n"


@pytest.mark.unit
def test_block_with_empty_body_keeps_header() -> None:
    block = Block(path=Path("blank.txt"), body="")

    assert block.line_count == 0
    assert block.render() == "*** blank.txt\n\n"


@pytest.mark.unit
def test_read_text_rejects_invalid_utf8(tmp_path: Path) -> None:
    source = tmp_path / "bin.py"
    source.write_bytes(b"ok\n\xff\xfe")

    with pytest.raises(DecodeError) as exc_info:
        read_text(source)

    assert exc_info.value.path == source
    assert exc_info.value.position == 3  # noqa: PLR2004
    assert str(source) in str(exc_info.value)


@pytest.mark.unit
def test_read_text_honors_configured_encoding(tmp_path: Path) -> None:
    source = tmp_path / "latin.txt"
    source.write_bytes("café\n".encode("latin-1"))

    assert read_text(source, encoding="latin-1") == "café\n"


@pytest.mark.unit
def test_read_text_unknown_encoding(tmp_path: Path) -> None:
    source = tmp_path / "a.txt"
    source.write_text("a", encoding="utf-8")

    with pytest.raises(DecodeError, match="Unknown encoding"):
        read_text(source, encoding="no-such-codec")


@pytest.mark.unit
def test_read_text_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileIOError, match="phase=normalize"):
        read_text(tmp_path / "gone.py")
