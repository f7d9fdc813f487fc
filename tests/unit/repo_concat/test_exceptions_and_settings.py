from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from repo_concat.exceptions import AcquisitionError, DecodeError, FileIOError, RepoConcatError
from repo_concat.settings import Settings


@pytest.mark.unit
def test_error_message_carries_context() -> None:
    error = FileIOError(message="Failed to read file", path=Path("src/a.py"), phase="normalize")

    assert str(error) == "Failed to read file (path=src/a.py, phase=normalize)"
    assert isinstance(error, RepoConcatError)


@pytest.mark.unit
def test_error_message_skips_empty_context() -> None:
    assert str(AcquisitionError(message="Failed to clone repository")) == "Failed to clone repository"


@pytest.mark.unit
def test_decode_error_keeps_zero_position() -> None:
    error = DecodeError(message="bad bytes", path=Path("a.py"), position=0)

    assert "position=0" in str(error)
    assert "encoding=utf-8" in str(error)


@pytest.mark.unit
def test_errors_chain_their_cause() -> None:
    with pytest.raises(AcquisitionError) as exc_info:
        try:
            raise OSError("disk gone")
        except OSError as e:
            raise AcquisitionError(message="Input path is not readable", source="x") from e

    assert isinstance(exc_info.value.__cause__, OSError)


@pytest.mark.unit
def test_settings_defaults() -> None:
    settings = Settings(input="repo")

    assert settings.output == Path("concatenated_output.txt")
    assert settings.config is None
    assert settings.encoding == "utf-8"
    assert settings.depth == 1
    assert not settings.log_file


@pytest.mark.unit
def test_settings_rejects_zero_depth() -> None:
    with pytest.raises(ValidationError):
        Settings(input="repo", depth=0)
