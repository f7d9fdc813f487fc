from __future__ import annotations

import fnmatch
import os
import stat
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import pathspec
from pydantic import BaseModel, ConfigDict, Field

from repo_concat.config import SelectionConfig, SelectionMode
from repo_concat.exceptions import FileIOError

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator, Sequence

IGNORE_FILES = (".gitignore", ".ignore")
GIT_DIR = ".git"


class FileEntry(BaseModel):
    """A regular file found while walking the root directory.

    Attributes:
        path: The file as produced by the walker (`root / rel`).
        rel: Path relative to the walked root, with POSIX separators.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: Path = Field(..., description="Walker path of the file")
    rel: str = Field(..., description="File path relative to the walked root")


class IgnoreRules(BaseModel):
    """Compiled ignore patterns of one directory, matched relative to that directory."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    base: str = Field(..., description="Directory of the ignore file, relative to the root ('' for the root)")
    spec: pathspec.GitIgnoreSpec


def match_any_glob(rel: str, globs: Sequence[str]) -> bool:
    """Check if a relative path matches any of the provided glob patterns.

    Args:
        rel (str): the relative path to check
        globs (Sequence[str]): the glob patterns to match against

    Returns:
        bool: True if `rel` matches any pattern in `globs`, False otherwise
    """
    return any(fnmatch.fnmatchcase(rel, g) for g in globs)


def file_extension(rel: str) -> str:
    """Return the extension of a path without its leading dot ('' if there is none)."""
    return PurePosixPath(rel).suffix.removeprefix(".")


def is_selected(rel: str, selection: SelectionConfig) -> bool:
    """Decide whether a root-relative path belongs in the output.

    - Glob mode: the path must match an include pattern and no exclude pattern.
    - Extension mode: the path's extension must be one of the allowed ones.

    Args:
        rel (str): the root-relative POSIX path
        selection (SelectionConfig): the active selection

    Returns:
        bool: True if the file is selected
    """
    if selection.mode is SelectionMode.EXTENSION:
        ext = file_extension(rel)
        return bool(ext) and ext in selection.extensions
    if match_any_glob(rel, selection.excludes):
        return False
    return match_any_glob(rel, selection.includes)


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular, following symlinks.

    Args:
        path (Path): path to test.

    Returns:
        bool: True if the file is regular, False otherwise (including broken links).
    """
    try:
        st = path.stat()
        return stat.S_ISREG(st.st_mode)
    except OSError:
        return False


def read_ignore_rules(directory: Path, base: str, names: Sequence[str] = IGNORE_FILES) -> list[IgnoreRules]:
    """Load the ignore files present in `directory`.

    Args:
        directory (Path): the directory holding the ignore files
        base (str): that directory relative to the walked root
        names (Sequence[str]): ignore file names to look for, lowest precedence first

    Raises:
        FileIOError: if an ignore file exists but cannot be read

    Returns:
        list[IgnoreRules]: one entry per ignore file found
    """
    rules: list[IgnoreRules] = []
    for name in names:
        candidate = directory / name
        if not candidate.is_file():
            continue
        try:
            lines = candidate.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as e:
            raise FileIOError(message=f"Failed to read ignore file: {e}", path=candidate, phase="select") from e
        rules.append(IgnoreRules(base=base, spec=pathspec.GitIgnoreSpec.from_lines(lines)))
    return rules


def is_ignored(rel: str, rules: Sequence[IgnoreRules], *, is_dir: bool) -> bool:
    """Apply the chain of ignore rules to a root-relative path.

    Deeper ignore files override shallower ones; within one file the last
    matching pattern wins, so `!pattern` re-includes.

    Args:
        rel (str): the root-relative POSIX path
        rules (Sequence[IgnoreRules]): the rules in effect, shallowest first
        is_dir (bool): whether `rel` is a directory

    Returns:
        bool: True if the path is ignored
    """
    for rule in reversed(rules):
        local = rel[len(rule.base) + 1 :] if rule.base else rel
        if is_dir:
            local += "/"
        result = rule.spec.check_file(local)
        if result.include is not None:
            return result.include
    return False


def walk_files(
    root: Path,
    *,
    hidden: bool = False,
    use_ignore_files: bool = True,
    skip: Collection[Path] = (),
) -> Iterator[FileEntry]:
    """Lazily walk the tree under `root`, depth-first and in sorted name order.

    The `.git` directory, hidden entries (unless `hidden`), ignored entries
    (unless `use_ignore_files` is False), non-regular files and the resolved
    paths in `skip` are left out. Symlinked directories are not descended.

    Args:
        root (Path): the root directory to walk
        hidden (bool): also yield dot-files and walk dot-directories
        use_ignore_files (bool): honor `.gitignore`/`.ignore` files and `.git/info/exclude`
        skip (Collection[Path]): resolved paths never to yield

    Raises:
        FileIOError: if a directory cannot be listed

    Yields:
        FileEntry: every regular file kept by the walk
    """
    rules: list[IgnoreRules] = []
    if use_ignore_files:
        rules.extend(read_ignore_rules(root / GIT_DIR / "info", "", names=("exclude",)))
    skipped = {p.resolve() for p in skip}
    yield from _walk_dir(root, "", rules, hidden=hidden, use_ignore_files=use_ignore_files, skip=skipped)


def _walk_dir(
    directory: Path,
    base: str,
    rules: list[IgnoreRules],
    *,
    hidden: bool,
    use_ignore_files: bool,
    skip: set[Path],
) -> Iterator[FileEntry]:
    if use_ignore_files:
        rules = [*rules, *read_ignore_rules(directory, base)]
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise FileIOError(message=f"Failed to list directory: {e}", path=directory, phase="select") from e

    for entry in entries:
        if entry.name == GIT_DIR or (not hidden and entry.name.startswith(".")):
            continue
        rel = f"{base}/{entry.name}" if base else entry.name
        path = directory / entry.name
        is_dir = entry.is_dir(follow_symlinks=False)
        if rules and is_ignored(rel, rules, is_dir=is_dir):
            continue
        if is_dir:
            yield from _walk_dir(path, rel, rules, hidden=hidden, use_ignore_files=use_ignore_files, skip=skip)
        elif is_regular_file(path) and not (skip and path.resolve() in skip):
            yield FileEntry(path=path, rel=rel)


def select_files(
    root: Path,
    selection: SelectionConfig,
    *,
    hidden: bool = False,
    use_ignore_files: bool = True,
    skip: Collection[Path] = (),
) -> Iterator[FileEntry]:
    """Walk `root` and keep the files accepted by `selection`, in traversal order."""
    for entry in walk_files(root, hidden=hidden, use_ignore_files=use_ignore_files, skip=skip):
        if is_selected(entry.rel, selection):
            yield entry
