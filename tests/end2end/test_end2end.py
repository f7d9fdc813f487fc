from pathlib import Path

import pytest

from repo_concat import cli


def test_end_to_end_local_folder(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = tmp_path / "repo"
    (repo / "src").mkdir(parents=True)
    (repo / "src" / "app.py").write_text("import sys   \n\n\nprint(sys.argv)\n", encoding="utf-8")
    (repo / "README.md").write_text("# App\n", encoding="utf-8")
    (repo / "logo.png").write_bytes(b"\x89PNG\r\n")
    output = tmp_path / "export.txt"

    exit_code = cli.main(["--input", str(repo), "--output", str(output)])

    assert exit_code == 0
    assert output.read_text(encoding="utf-8") == (
        f"*** {repo / 'README.md'}\n# App\n*** {repo / 'src' / 'app.py'}\nimport sys\nprint(sys.argv)\n"
    )
    assert "All text files have been concatenated into" in capsys.readouterr().out


def test_end_to_end_yaml_config_and_log_file(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "lib.rs").write_text("fn main() {}\n", encoding="utf-8")
    (repo / "lib.py").write_text("pass\n", encoding="utf-8")
    config = tmp_path / "config.yml"
    config.write_text("file_extensions: [rs]\n", encoding="utf-8")
    output = tmp_path / "export.txt"
    log_file = tmp_path / "run.log"

    exit_code = cli.main(
        [
            "--input",
            str(repo),
            "--output",
            str(output),
            "--config",
            str(config),
            "--log-file",
            str(log_file),
        ],
    )

    assert exit_code == 0
    assert output.read_text(encoding="utf-8") == f"*** {repo / 'lib.rs'}\nfn main() {{}}\n"
    log = log_file.read_text(encoding="utf-8")
    assert '"event": "file_written"' in log
    assert '"event": "run_completed"' in log


def test_end_to_end_missing_input_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "export.txt"

    exit_code = cli.main(["--input", str(tmp_path / "nowhere"), "--output", str(output)])

    assert exit_code == 1
    assert "AcquisitionError: Input path does not exist" in capsys.readouterr().err
    assert not output.exists()
