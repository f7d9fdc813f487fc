"""
repo_concat: flatten a source tree into a single text file.

Overview
--------
The input is either a local folder or a remote repository URL
(`https://github.com/...`, `https://gitlab.com/...`, `https://bitbucket.org/...`).
Remote repositories are shallow-cloned into a temporary directory with `git`,
falling back to dulwich when `git` is missing or fails.

The tree is walked depth-first in name order, honoring `.gitignore`/`.ignore`
files and skipping hidden entries. Every selected file is written as

    *** <path>
    <content without blank lines or trailing whitespace>

Selection is either by globs (`--include`/`--exclude`, comma-delimited,
exclude wins) or by a JSON/YAML config file listing allowed extensions
(`--config`, e.g. `{"file_extensions": ["py", "rs"]}`).

Usage
-----
    repo-concat --input https://github.com/owner/project --output corpus.txt
    repo-concat --input . --include "*.py,*.md" --exclude "tests/*"
    repo-concat --input ../lib --config extensions.json --log-file run.log
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from repo_concat import __version__
from repo_concat.exceptions import RepoConcatError
from repo_concat.logging import logger, setup_logging
from repo_concat.pipeline import run
from repo_concat.settings import DEFAULT_OUTPUT, Settings

if TYPE_CHECKING:
    from collections.abc import Sequence


def positive_int(value: str) -> int:
    """Parse a strictly positive integer argument."""
    number = int(value)
    if number < 1:
        msg = f"expected a positive integer, got {value}"
        raise argparse.ArgumentTypeError(msg)
    return number


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="repo-concat",
        description="Concatenate the text files of a repository or folder into one file.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "-i",
        "--input",
        type=str,
        required=True,
        help="GitHub/GitLab/Bitbucket repo URL or local folder path.",
    )
    p.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path(DEFAULT_OUTPUT),
        help="Output file name.",
    )
    p.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="JSON/YAML config file with `file_extensions` (extension mode).",
    )
    p.add_argument(
        "--include",
        action="append",
        default=[],
        help="Comma-delimited include globs (repeatable).",
    )
    p.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Comma-delimited exclude globs (repeatable).",
    )
    p.add_argument("--hidden", action="store_true", help="Also walk hidden files and directories.")
    p.add_argument("--no-ignore", action="store_true", help="Do not honor .gitignore/.ignore files.")
    p.add_argument("--encoding", type=str, default="utf-8", help="Encoding of the input files.")
    p.add_argument("--depth", type=positive_int, default=1, help="Shallow clone depth for remote inputs.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    args = p.parse_args(argv)
    return Settings(**vars(args))


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    try:
        run(settings)
    except RepoConcatError as e:
        logger.error("run_aborted", error_type=type(e).__name__, error=str(e))
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    print(f"All text files have been concatenated into '{settings.output}'")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
