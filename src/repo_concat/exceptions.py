from dataclasses import dataclass, fields
from pathlib import Path


@dataclass(eq=False)
class RepoConcatError(Exception):
    """Base exception for errors in the repo_concat module."""

    message: str

    def __str__(self) -> str:
        context = [
            f"{f.name}={getattr(self, f.name)}"
            for f in fields(self)
            if f.name != "message" and getattr(self, f.name) not in {None, ""}
        ]
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


@dataclass(eq=False)
class ConfigError(RepoConcatError):
    """Raised when the selection configuration is malformed."""

    source: str = ""


@dataclass(eq=False)
class AcquisitionError(RepoConcatError):
    """Raised when the input cannot be resolved into a local directory."""

    source: str = ""


@dataclass(eq=False)
class FileIOError(RepoConcatError):
    """Raised when opening, reading or writing a file fails."""

    path: Path | None = None
    phase: str = ""


@dataclass(eq=False)
class DecodeError(RepoConcatError):
    """Raised when a file's bytes are not valid text under the configured encoding."""

    path: Path | None = None
    encoding: str = "utf-8"
    position: int | None = None
