"""Unit tests for the verify CLI command."""

from collections.abc import Callable
from pathlib import Path

from safefs.cli.commands.verify import EXIT_DIFFERENT, EXIT_ERROR, EXIT_IDENTICAL
from safefs.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


class TestVerify:
    """Tests for safefs verify."""

    def test_identical(self, sample_tree: Path, zip_of_directory: Callable[..., Path]) -> None:
        """A matching archive exits with code 0."""
        archive = zip_of_directory(sample_tree)

        result = runner.invoke(app, ["verify", str(sample_tree), str(archive)])

        assert result.exit_code == EXIT_IDENTICAL
        assert "matches" in result.stdout

    def test_only_in_directory(
        self, sample_tree: Path, zip_of_directory: Callable[..., Path]
    ) -> None:
        """Files missing from the archive are listed and exit with code 1."""
        archive = zip_of_directory(sample_tree, skip=("node_modules/",))

        result = runner.invoke(app, ["verify", str(sample_tree), str(archive)])

        assert result.exit_code == EXIT_DIFFERENT
        assert "+ node_modules/x.js" in result.stdout
        assert "only in directory" in result.stdout

    def test_only_in_archive_and_changed(
        self, sample_tree: Path, zip_of_directory: Callable[..., Path]
    ) -> None:
        """Removed and changed files are both reported."""
        archive = zip_of_directory(sample_tree)
        (sample_tree / "node_modules" / "x.js").unlink()
        (sample_tree / "a.txt").write_text("ALPHA")

        result = runner.invoke(app, ["verify", str(sample_tree), str(archive)])

        assert result.exit_code == EXIT_DIFFERENT
        assert "- node_modules/x.js" in result.stdout
        assert "~ a.txt" in result.stdout

    def test_exclude_option(
        self, sample_tree: Path, zip_of_directory: Callable[..., Path]
    ) -> None:
        """-x excludes directory content from the comparison."""
        archive = zip_of_directory(sample_tree, skip=("node_modules/",))

        result = runner.invoke(
            app, ["verify", str(sample_tree), str(archive), "-x", "node_modules/"]
        )

        assert result.exit_code == EXIT_IDENTICAL

    def test_git_excluded_by_default(
        self, sample_tree: Path, zip_of_directory: Callable[..., Path]
    ) -> None:
        """The default config ignores .git directories."""
        archive = zip_of_directory(sample_tree)
        (sample_tree / ".git").mkdir()
        (sample_tree / ".git" / "HEAD").write_text("ref: refs/heads/main\n")

        result = runner.invoke(app, ["verify", str(sample_tree), str(archive)])

        assert result.exit_code == EXIT_IDENTICAL

    def test_missing_archive(self, sample_tree: Path, tmp_path: Path) -> None:
        """A missing archive is an error, exit code 2."""
        result = runner.invoke(app, ["verify", str(sample_tree), str(tmp_path / "none.zip")])

        assert result.exit_code == EXIT_ERROR
        assert "Verification failed" in result.output

    def test_malformed_archive(self, sample_tree: Path, tmp_path: Path) -> None:
        """A corrupt archive is an error, exit code 2."""
        archive = tmp_path / "bad.zip"
        archive.write_bytes(b"garbage")

        result = runner.invoke(app, ["verify", str(sample_tree), str(archive)])

        assert result.exit_code == EXIT_ERROR

    def test_missing_directory(
        self, tmp_path: Path, make_zip: Callable[..., Path]
    ) -> None:
        """A missing directory is an error, exit code 2."""
        archive = make_zip({"a.txt": "alpha"})

        result = runner.invoke(app, ["verify", str(tmp_path / "nowhere"), str(archive)])

        assert result.exit_code == EXIT_ERROR
