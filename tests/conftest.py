"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_config_home(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Point XDG_CONFIG_HOME at an empty directory so tests never see user config."""
    config_home = tmp_path_factory.mktemp("xdg-config")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """Small directory tree used by traversal and comparison tests.

    Layout::

        tree/
          .hidden
          a.txt
          b/
            c.txt
            d/
              e.txt
          node_modules/
            x.js
    """
    root = tmp_path / "tree"
    (root / "b" / "d").mkdir(parents=True)
    (root / "node_modules").mkdir()
    (root / ".hidden").write_text("secret")
    (root / "a.txt").write_text("alpha")
    (root / "b" / "c.txt").write_text("charlie")
    (root / "b" / "d" / "e.txt").write_text("echo")
    (root / "node_modules" / "x.js").write_text("module.exports = 1;")
    return root


@pytest.fixture
def make_zip(tmp_path: Path) -> Callable[..., Path]:
    """Factory building a zip archive from a name -> content mapping.

    Names ending in '/' are written as explicit directory entries.
    """

    def _make(entries: dict[str, bytes | str], name: str = "archive.zip") -> Path:
        archive = tmp_path / name
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for entry_name, content in entries.items():
                if entry_name.endswith("/"):
                    zf.writestr(zipfile.ZipInfo(entry_name), b"")
                else:
                    zf.writestr(entry_name, content)
        return archive

    return _make


@pytest.fixture
def zip_of_directory(make_zip: Callable[..., Path]) -> Callable[..., Path]:
    """Factory zipping every file below a directory (relative names, '/' separators)."""

    def _zip(root: Path, skip: tuple[str, ...] = (), name: str = "archive.zip") -> Path:
        entries: dict[str, bytes | str] = {}
        for path in sorted(root.rglob("*")):
            relative = path.relative_to(root).as_posix()
            if path.is_file() and not any(relative.startswith(s) for s in skip):
                entries[relative] = path.read_bytes()
        return make_zip(entries, name=name)

    return _zip
