"""Resolve the run's input into a local directory.

Local paths are used in place. Remote repository URLs are shallow-cloned into a
temporary directory that lives exactly as long as the `acquire_source` context:
first with the `git` executable, then, if that is missing or fails, in-process
with dulwich.
"""

from __future__ import annotations

import os
import shutil
import stat
import subprocess  # noqa: S404
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from shutil import which
from typing import TYPE_CHECKING

from dulwich import porcelain

from repo_concat.exceptions import AcquisitionError
from repo_concat.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    Fetcher = Callable[[str, Path, int], "FetchResult"]

REMOTE_PREFIXES: tuple[str, ...] = (
    "https://github.com",
    "https://gitlab.com",
    "https://bitbucket.org",
)

TEMP_PREFIX = "repo_concat_"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one clone attempt."""

    strategy: str
    ok: bool
    detail: str = ""


def is_remote(source: str) -> bool:
    """Check whether the input names a remote repository rather than a local path."""
    return source.startswith(REMOTE_PREFIXES)


def is_populated(directory: Path) -> bool:
    """Check that a directory exists and holds at least one entry."""
    try:
        return directory.is_dir() and any(directory.iterdir())
    except OSError:
        return False


def git_subprocess_fetcher(url: str, destination: Path, depth: int) -> FetchResult:
    """Shallow-clone `url` into `destination` with the `git` executable.

    Args:
        url (str): the repository URL
        destination (Path): an existing, empty directory to clone into
        depth (int): the history depth to fetch

    Returns:
        FetchResult: success when git exits with status 0 and the directory was populated
    """
    git = which("git")
    if git is None:
        return FetchResult(strategy="git", ok=False, detail="git executable not found on PATH")
    try:
        out = subprocess.run(  # noqa: S603
            [git, "clone", "--depth", str(depth), "--single-branch", "--quiet", url, str(destination)],
            text=True,
            capture_output=True,
            check=False,
        )
    except OSError as e:
        return FetchResult(strategy="git", ok=False, detail=f"could not start git: {e}")
    if out.returncode != 0:
        return FetchResult(strategy="git", ok=False, detail=f"exit status {out.returncode}: {out.stderr.strip()}")
    if not is_populated(destination):
        return FetchResult(strategy="git", ok=False, detail="clone left the destination empty")
    return FetchResult(strategy="git", ok=True)


def dulwich_fetcher(url: str, destination: Path, depth: int) -> FetchResult:
    """Shallow-clone `url` into `destination` in-process with dulwich.

    Args:
        url (str): the repository URL
        destination (Path): an existing, empty directory to clone into
        depth (int): the history depth to fetch

    Returns:
        FetchResult: success when dulwich completed and the directory was populated
    """
    try:
        repo = porcelain.clone(url, str(destination), depth=depth, checkout=True)
        repo.close()
    except Exception as e:  # noqa: BLE001
        return FetchResult(strategy="dulwich", ok=False, detail=f"{type(e).__name__}: {e}")
    if not is_populated(destination):
        return FetchResult(strategy="dulwich", ok=False, detail="clone left the destination empty")
    return FetchResult(strategy="dulwich", ok=True)


DEFAULT_FETCHERS: tuple[Fetcher, ...] = (git_subprocess_fetcher, dulwich_fetcher)


def _make_writable(func: Callable[..., object], path: str, _exc: BaseException) -> None:
    # git marks pack files read-only, which blocks removal on Windows
    os.chmod(path, stat.S_IWRITE)  # noqa: PTH101
    func(path)


def clear_directory(directory: Path) -> None:
    """Remove everything inside `directory`, keeping the directory itself."""
    for child in directory.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child, onexc=_make_writable)
        else:
            child.unlink()


def fetch_with_fallback(
    url: str,
    destination: Path,
    *,
    fetchers: Sequence[Fetcher] = DEFAULT_FETCHERS,
    depth: int = 1,
) -> FetchResult:
    """Try each fetcher in order until one clones `url` into `destination`.

    Leftovers of a failed attempt are cleared before the next one starts.

    Args:
        url (str): the repository URL
        destination (Path): an existing, empty directory to clone into
        fetchers (Sequence[Fetcher]): the ordered attempt chain
        depth (int): the history depth passed to every fetcher

    Raises:
        AcquisitionError: if every fetcher failed

    Returns:
        FetchResult: the successful attempt
    """
    failures: list[FetchResult] = []
    for fetch in fetchers:
        if failures and is_populated(destination):
            clear_directory(destination)
        logger.info("fetch_attempt", url=url, strategy=getattr(fetch, "__name__", repr(fetch)), depth=depth)
        result = fetch(url, destination, depth)
        if result.ok:
            logger.info("fetch_succeeded", url=url, strategy=result.strategy)
            return result
        logger.warning("fetch_failed", url=url, strategy=result.strategy, detail=result.detail)
        failures.append(result)

    details = "; ".join(f"{r.strategy}: {r.detail}" for r in failures) or "no fetch strategy configured"
    raise AcquisitionError(message=f"Failed to clone repository ({details})", source=url)


def resolve_local(source: str) -> Path:
    """Check that a local input is an existing, readable directory.

    Raises:
        AcquisitionError: if the path is missing, not a directory or not readable
    """
    root = Path(source)
    if not root.exists():
        raise AcquisitionError(message="Input path does not exist", source=source)
    if not root.is_dir():
        raise AcquisitionError(message="Input path is not a directory", source=source)
    if not os.access(root, os.R_OK | os.X_OK):
        raise AcquisitionError(message="Input path is not readable", source=source)
    return root


@contextmanager
def acquire_source(
    source: str,
    *,
    fetchers: Sequence[Fetcher] = DEFAULT_FETCHERS,
    depth: int = 1,
) -> Iterator[Path]:
    """Yield the local root directory for `source`.

    For a remote URL the clone lives in a fresh temporary directory which is
    removed when the context exits, whether the run succeeded or not.

    Args:
        source (str): remote repository URL or local folder path
        fetchers (Sequence[Fetcher]): the ordered clone attempt chain for remote inputs
        depth (int): the history depth of the shallow clone

    Raises:
        AcquisitionError: if the local path is unusable or every clone strategy failed

    Yields:
        Path: the root directory to walk
    """
    if not is_remote(source):
        root = resolve_local(source)
        logger.info("acquire_local", path=str(root))
        yield root
        return

    tmp = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
    try:
        fetch_with_fallback(source, tmp, fetchers=fetchers, depth=depth)
        yield tmp
    finally:
        if tmp.exists():
            shutil.rmtree(tmp, onexc=_make_writable)
