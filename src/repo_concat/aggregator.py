from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from repo_concat.exceptions import FileIOError
from repo_concat.logging import logger
from repo_concat.normalizer import make_block

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from repo_concat.normalizer import Block
    from repo_concat.selection import FileEntry


def write_output(
    entries: Iterable[FileEntry],
    output: Path,
    *,
    encoding: str = "utf-8",
    relative_headers: bool = False,
    on_block: Callable[[Block], None] | None = None,
) -> int:
    """Stream the block of every entry into `output`, in the order given.

    The output is truncated first. Each block is written and flushed before the
    next file is read, so at most one file's content is held in memory.

    Args:
        entries (Iterable[FileEntry]): the selected files, usually a lazy walk
        output (Path): the destination file; missing parent directories are created
        encoding (str): the encoding used to decode the input files
        relative_headers (bool): label blocks with the root-relative path instead of the walked path
        on_block (Callable[[Block], None] | None): called after each block is flushed

    Raises:
        FileIOError: if the output cannot be opened or written
        DecodeError: if a selected file is not valid text

    Returns:
        int: the number of blocks written
    """
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        out = output.open("w", encoding="utf-8")
    except OSError as e:
        raise FileIOError(message=f"Failed to create output file: {e}", path=output, phase="aggregate") from e

    count = 0
    with out:
        for entry in entries:
            label = Path(entry.rel) if relative_headers else None
            block = make_block(entry.path, encoding, label)
            try:
                out.write(block.render())
                out.flush()
            except OSError as e:
                raise FileIOError(message=f"Failed to write output: {e}", path=output, phase="aggregate") from e
            count += 1
            logger.info("file_written", path=str(block.path), lines=block.line_count)
            if on_block is not None:
                on_block(block)
    return count
