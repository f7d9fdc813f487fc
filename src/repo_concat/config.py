from __future__ import annotations

import json
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from repo_concat.exceptions import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from repo_concat.settings import Settings


class SelectionMode(StrEnum):
    """Which predicate decides whether a walked file ends up in the output."""

    GLOB = auto()
    EXTENSION = auto()


DEFAULT_EXTENSIONS: tuple[str, ...] = (
    "py",
    "pyi",
    "rs",
    "go",
    "java",
    "js",
    "ts",
    "c",
    "h",
    "cpp",
    "hpp",
    "cc",
    "cs",
    "rb",
    "sh",
    "md",
    "rst",
    "txt",
    "toml",
    "yaml",
    "yml",
    "json",
    "cfg",
    "ini",
)

YAML_SUFFIXES = {".yaml", ".yml"}


def normalize_globs(globs: Iterable[str]) -> list[str]:
    """Normalize a sequence of path glob patterns.

    Strips whitespace, drops blanks and duplicates (keeping the first occurrence)
    and replaces backslashes with forward slashes.

    Args:
        globs (Iterable[str]): the glob patterns to normalize

    Returns:
        list[str]: the normalized glob patterns, in their original order
    """
    out: list[str] = []
    for g in globs:
        g2 = (g or "").strip().replace("\\", "/")
        if g2 and g2 not in out:
            out.append(g2)
    return out


def split_patterns(values: Iterable[str]) -> list[str]:
    """Split comma-delimited pattern lists (as given on the command line) into patterns.

    Args:
        values (Iterable[str]): raw values, each possibly holding several comma separated globs

    Returns:
        list[str]: the normalized glob patterns
    """
    return normalize_globs(part for value in values for part in value.split(","))


def check_glob(pattern: str) -> str:
    """Reject glob patterns that `fnmatch` would silently treat as literals.

    Args:
        pattern (str): the glob pattern to check

    Raises:
        ConfigError: if a character class is opened with `[` and never closed

    Returns:
        str: the pattern, unchanged
    """
    i = 0
    n = len(pattern)
    while i < n:
        if pattern[i] == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            close = pattern.find("]", j)
            if close == -1:
                raise ConfigError(message="Unclosed character class in glob pattern", source=pattern)
            i = close
        i += 1
    return pattern


class SelectionConfig(BaseModel):
    """Which files of the walked tree are selected.

    Attributes:
        mode: The active predicate.
        includes: Include globs (glob mode); a file must match at least one.
        excludes: Exclude globs (glob mode); a matching file is always dropped.
        extensions: Allowed extensions without the leading dot (extension mode);
            an entry such as `.py` is rejected.
    """

    model_config = ConfigDict(frozen=True)

    mode: SelectionMode = Field(default=SelectionMode.GLOB, description="Active predicate mode")
    includes: tuple[str, ...] = Field(default=(), description="Include glob patterns")
    excludes: tuple[str, ...] = Field(default=(), description="Exclude glob patterns")
    extensions: frozenset[str] = Field(default=frozenset(), description="Allowed file extensions")

    @field_validator("includes", "excludes", mode="before")
    @classmethod
    def normalize_patterns(cls, value: Any) -> tuple[str, ...]:  # noqa: ANN401
        return tuple(check_glob(g) for g in normalize_globs(value or ()))

    @field_validator("extensions")
    @classmethod
    def check_extensions(cls, value: frozenset[str]) -> frozenset[str]:
        for ext in value:
            if not ext or "/" in ext:
                msg = f"invalid file extension {ext!r}"
                raise ValueError(msg)
            if ext.startswith("."):
                msg = f"file extension {ext!r} must be given without its leading dot"
                raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def check_mode(self) -> SelectionConfig:
        if self.mode is SelectionMode.GLOB and self.extensions:
            msg = "extensions are only used in extension mode"
            raise ValueError(msg)
        if self.mode is SelectionMode.EXTENSION and (self.includes or self.excludes):
            msg = "include/exclude globs are only used in glob mode"
            raise ValueError(msg)
        return self


class ExtensionFileConfig(BaseModel):
    """Shape of the structured (JSON/YAML) configuration file."""

    model_config = ConfigDict(extra="forbid")

    file_extensions: list[str] = Field(..., description="Allowed file extensions, without the leading dot")


def default_extensions() -> frozenset[str]:
    """Return the extension set used when no structured config overrides it."""
    return frozenset(DEFAULT_EXTENSIONS)


def default_include_globs() -> tuple[str, ...]:
    """Return the default include globs, one `*.ext` pattern per default extension."""
    return tuple(f"*.{ext}" for ext in DEFAULT_EXTENSIONS)


def default_selection() -> SelectionConfig:
    """Build the glob-mode selection used when nothing is configured."""
    return SelectionConfig(mode=SelectionMode.GLOB, includes=default_include_globs())


def make_selection(
    includes: Iterable[str] = (),
    excludes: Iterable[str] = (),
) -> SelectionConfig:
    """Build a glob-mode selection, falling back to the default includes.

    Raises:
        ConfigError: if a pattern is malformed
    """
    inc = normalize_globs(includes) or list(default_include_globs())
    try:
        return SelectionConfig(mode=SelectionMode.GLOB, includes=inc, excludes=list(excludes))
    except ValidationError as e:
        raise ConfigError(message=f"Invalid glob selection: {e}") from e


def load_selection_config(path: Path) -> SelectionConfig:
    """Load an extension-mode selection from a JSON or YAML file.

    The file must hold an object with a single `file_extensions` list, e.g.
    `{"file_extensions": ["py", "rs"]}`. Files ending in `.yaml`/`.yml` are read
    as YAML, everything else as JSON.

    Args:
        path (Path): the configuration file

    Raises:
        ConfigError: if the file cannot be read, parsed or validated

    Returns:
        SelectionConfig: the extension-mode selection
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(message=f"Failed to read config file: {e}", source=str(path)) from e

    try:
        data = yaml.safe_load(raw) if path.suffix.lower() in YAML_SUFFIXES else json.loads(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(message=f"Failed to parse config file: {e}", source=str(path)) from e

    try:
        parsed = ExtensionFileConfig.model_validate(data)
        return SelectionConfig(mode=SelectionMode.EXTENSION, extensions=frozenset(parsed.file_extensions))
    except ValidationError as e:
        raise ConfigError(message=f"Invalid config file: {e}", source=str(path)) from e


def build_selection(settings: Settings) -> SelectionConfig:
    """Pick the selection mode for a run from its settings.

    A structured config file switches to extension mode; include/exclude globs
    cannot be combined with it.

    Raises:
        ConfigError: if both configuration shapes are given or one is malformed
    """
    includes = split_patterns(settings.include)
    excludes = split_patterns(settings.exclude)
    if settings.config is not None:
        if includes or excludes:
            raise ConfigError(
                message="--config (extension mode) cannot be combined with --include/--exclude",
                source=str(settings.config),
            )
        return load_selection_config(settings.config)
    return make_selection(includes, excludes)
