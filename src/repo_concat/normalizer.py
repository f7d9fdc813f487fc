from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

from repo_concat.exceptions import DecodeError, FileIOError

HEADER_PREFIX = "*** "
LINE_BREAK = re.compile(r"\r\n|\r|\n")


class Block(BaseModel):
    """One unit of output: a path header followed by the file's normalized text.

    Attributes:
        path: The path shown in the header.
        body: Non-empty, right-trimmed lines joined by single newlines (may be empty).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: Path = Field(..., description="Path shown in the header")
    body: str = Field("", description="Normalized file content")

    @computed_field
    @property
    def header(self) -> str:
        """The header line, without its newline."""
        return f"{HEADER_PREFIX}{self.path}"

    @computed_field
    @property
    def line_count(self) -> int:
        """Number of lines kept in the body."""
        return self.body.count("\n") + 1 if self.body else 0

    def render(self) -> str:
        """Render the block as it appears in the output file."""
        return f"{self.header}\n{self.body}\n"


def normalize_text(text: str) -> str:
    """Collapse incidental whitespace in a text.

    Trailing whitespace is stripped from every line and lines left empty are
    dropped. Only LF, CRLF and CR end a line; form feeds, U+2028 and the other
    characters `str.splitlines` also breaks on stay inside their line.
    Applying this twice is a no-op.

    Args:
        text (str): the raw text

    Returns:
        str: the surviving lines joined by single newlines
    """
    return "\n".join(line for line in (ln.rstrip() for ln in LINE_BREAK.split(text)) if line)


def read_text(path: Path, encoding: str = "utf-8") -> str:
    """Read a whole file as text, strictly decoded.

    Args:
        path (Path): the file to read
        encoding (str): the encoding every file is assumed to use

    Raises:
        FileIOError: if the file cannot be read
        DecodeError: if its bytes are not valid under `encoding`

    Returns:
        str: the decoded content
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileIOError(message=f"Failed to read file: {e}", path=path, phase="normalize") from e
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as e:
        raise DecodeError(
            message=f"File is not valid {encoding} text: {e.reason}",
            path=path,
            encoding=encoding,
            position=e.start,
        ) from e
    except LookupError as e:
        raise DecodeError(message=f"Unknown encoding {encoding!r}", path=path, encoding=encoding) from e


def make_block(path: Path, encoding: str = "utf-8", label: Path | None = None) -> Block:
    """Read one selected file and turn it into its output block.

    The header shows `label` when given, otherwise the path the file was read from.
    """
    return Block(path=label or path, body=normalize_text(read_text(path, encoding)))
