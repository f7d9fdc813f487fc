from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_OUTPUT = "concatenated_output.txt"


class Settings(BaseModel):
    """Configuration settings for one repo_concat run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    input: str = Field(..., description="Remote repository URL or local folder path.")
    output: Path = Field(default=Path(DEFAULT_OUTPUT), description="Output file.")
    config: Path | None = Field(default=None, description="JSON/YAML file with allowed file extensions.")
    include: list[str] = Field(default_factory=list, description="Include globs (comma-delimited).")
    exclude: list[str] = Field(default_factory=list, description="Exclude globs (comma-delimited).")
    hidden: bool = Field(default=False, description="Also walk hidden files and directories.")
    no_ignore: bool = Field(default=False, description="Do not honor .gitignore/.ignore files.")
    encoding: str = Field(default="utf-8", description="Encoding used to decode every file (strict).")
    depth: int = Field(default=1, ge=1, description="History depth of the shallow clone.")
    log_file: str = Field(default="", description="Log file path.")
