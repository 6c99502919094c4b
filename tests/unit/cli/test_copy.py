"""Unit tests for the copy CLI command."""

from pathlib import Path

from safefs.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


class TestCopy:
    """Tests for safefs copy."""

    def test_copy(self, tmp_path: Path) -> None:
        """The destination receives the source content."""
        src = tmp_path / "src.txt"
        src.write_text("payload")
        dst = tmp_path / "out" / "dst.txt"

        result = runner.invoke(app, ["copy", str(src), str(dst)])

        assert result.exit_code == 0
        assert dst.read_text() == "payload"
        assert "Copied" in result.stdout
        assert list(dst.parent.glob("*.tmp")) == []

    def test_replaces_existing(self, tmp_path: Path) -> None:
        """An existing destination is replaced."""
        src = tmp_path / "src.txt"
        src.write_text("new")
        dst = tmp_path / "dst.txt"
        dst.write_text("old")

        result = runner.invoke(app, ["copy", str(src), str(dst)])

        assert result.exit_code == 0
        assert dst.read_text() == "new"

    def test_dry_run(self, tmp_path: Path) -> None:
        """--dry-run validates paths without copying."""
        src = tmp_path / "src.txt"
        src.write_text("payload")
        dst = tmp_path / "dst.txt"

        result = runner.invoke(app, ["copy", str(src), str(dst), "--dry-run"])

        assert result.exit_code == 0
        assert "Dry-run" in result.stdout
        assert not dst.exists()

    def test_missing_source(self, tmp_path: Path) -> None:
        """A missing source exits with code 1."""
        result = runner.invoke(app, ["copy", str(tmp_path / "nope"), str(tmp_path / "dst")])

        assert result.exit_code == 1
        assert "Copy failed" in result.output
        assert not (tmp_path / "dst").exists()

    def test_directory_source(self, tmp_path: Path) -> None:
        """A directory cannot be copied."""
        src = tmp_path / "dir"
        src.mkdir()

        result = runner.invoke(app, ["copy", str(src), str(tmp_path / "dst")])

        assert result.exit_code == 1

    def test_missing_source_dry_run(self, tmp_path: Path) -> None:
        """Dry-run reports an unreadable source too."""
        result = runner.invoke(
            app, ["copy", str(tmp_path / "nope"), str(tmp_path / "dst"), "--dry-run"]
        )

        assert result.exit_code == 1
