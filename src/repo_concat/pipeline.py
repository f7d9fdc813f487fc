from __future__ import annotations

from typing import TYPE_CHECKING

from repo_concat.acquisition import DEFAULT_FETCHERS, acquire_source, is_remote
from repo_concat.aggregator import write_output
from repo_concat.config import build_selection
from repo_concat.exceptions import RepoConcatError
from repo_concat.logging import logger
from repo_concat.selection import select_files

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from repo_concat.acquisition import Fetcher
    from repo_concat.normalizer import Block
    from repo_concat.settings import Settings


def run(
    settings: Settings,
    *,
    fetchers: Sequence[Fetcher] = DEFAULT_FETCHERS,
    on_block: Callable[[Block], None] | None = None,
) -> int:
    """Flatten the input tree of `settings` into its output file.

    The selection is resolved before anything touches the disk, then the input is
    acquired and its selected files are streamed into the output. A failure while
    streaming leaves the partially written output in place. Blocks of a remote
    input are labelled relative to the clone root, so the temporary clone
    location never reaches the output.

    Args:
        settings (Settings): the run's options
        fetchers (Sequence[Fetcher]): clone attempt chain used for remote inputs
        on_block (Callable[[Block], None] | None): progress callback, called once per written block

    Raises:
        ConfigError: if the selection configuration is malformed
        AcquisitionError: if the input cannot be resolved
        FileIOError: if reading the tree or writing the output fails
        DecodeError: if a selected file is not valid text

    Returns:
        int: the number of files written
    """
    selection = build_selection(settings)
    output = settings.output

    with acquire_source(settings.input, fetchers=fetchers, depth=settings.depth) as root:
        entries = select_files(
            root,
            selection,
            hidden=settings.hidden,
            use_ignore_files=not settings.no_ignore,
            skip=[output],
        )
        try:
            count = write_output(
                entries,
                output,
                encoding=settings.encoding,
                relative_headers=is_remote(settings.input),
                on_block=on_block,
            )
        except RepoConcatError as e:
            logger.error("run_failed", error=str(e), partial_output=str(output))
            raise

    logger.info("run_completed", input=settings.input, output=str(output), files=count, mode=selection.mode)
    return count
