"""Directory and archive comparison.

Builds canonical, hash-annotated snapshots of a directory tree or of a
zip archive's contents and compares them structurally and by content.
Two snapshots are identical when they hold the same paths with the same
types, sizes and content hashes; modification times are recorded but
never compared.
"""

import hashlib
import logging
import os
import stat
import struct
import zipfile
import zlib
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from safefs.errors import MalformedArchiveError, PathNotFoundError, classify_os_error
from safefs.fileops.models import (
    DirectorySnapshot,
    FileRecord,
    SnapshotDiff,
    TraversalOptions,
    VisitSignal,
)
from safefs.fileops.traversal import Traverser

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 64 * 1024

# Info-ZIP "UT" extra field carrying a Unix mtime
_EXTENDED_TIMESTAMP_ID = 0x5455
_ZIP_EPOCH = datetime(1980, 1, 1, tzinfo=UTC)


class Comparer:
    """Creates and compares directory and archive snapshots.

    Args:
        traverser: Traverser used for directory snapshots.
    """

    def __init__(self, traverser: Traverser | None = None) -> None:
        self._traverser = traverser or Traverser()

    def snapshot_directory(
        self,
        root: str | Path,
        exclude_patterns: Iterable[str] = (),
    ) -> DirectorySnapshot:
        """Snapshot every entry below root, hashing regular files.

        Symlinks are followed, so linked files are recorded with their
        target's size and content. Excluded subtrees are pruned.

        Args:
            root: Directory to snapshot.
            exclude_patterns: Exclusion patterns applied to root-relative paths.

        Returns:
            DirectorySnapshot sorted by relative path.

        Raises:
            PathNotFoundError: If root does not exist.
            SafefsError: If any entry cannot be stat'ed or read.
        """
        root_path = Path(root)
        records: list[FileRecord] = []
        options = TraversalOptions(
            exclude_patterns=tuple(exclude_patterns),
            follow_symlinks=True,
        )

        def record(
            path: Path, info: os.stat_result | None, error: OSError | None
        ) -> VisitSignal | None:
            if error is not None or info is None:
                return None  # Abort with the classified error
            if path == root_path:
                return VisitSignal.CONTINUE

            relative = path.relative_to(root_path).as_posix()
            mtime = datetime.fromtimestamp(info.st_mtime, tz=UTC)

            if stat.S_ISDIR(info.st_mode):
                records.append(FileRecord(relative, 0, mtime, is_directory=True))
            elif stat.S_ISREG(info.st_mode):
                digest = hash_file(path)
                records.append(
                    FileRecord(
                        relative, info.st_size, mtime, is_directory=False, content_hash=digest
                    )
                )
            else:
                # Devices, sockets and FIFOs have no content to hash
                records.append(FileRecord(relative, info.st_size, mtime, is_directory=False))
            return VisitSignal.CONTINUE

        self._traverser.walk(root_path, options, record)
        logger.debug("Snapshot of %s: %d records", root_path, len(records))
        return DirectorySnapshot(tuple(records))

    def snapshot_archive(self, archive: str | Path) -> DirectorySnapshot:
        """Snapshot the contents of a zip archive.

        File entries are recorded under their stored name with the hash of
        their decompressed content. Directories are implicit in zip, so
        directory records are derived from explicit directory entries and
        from the parents implied by entry names.

        Raises:
            PathNotFoundError: If the archive does not exist.
            MalformedArchiveError: If the archive or an entry cannot be decoded.
        """
        archive_path = Path(archive)
        try:
            zf = zipfile.ZipFile(archive_path)
        except FileNotFoundError as e:
            raise PathNotFoundError(
                f"archive does not exist: {archive_path}",
                operation="snapshot_archive",
                path=archive_path,
                cause=e,
            ) from e
        except zipfile.BadZipFile as e:
            raise MalformedArchiveError(
                f"not a valid zip archive: {e}",
                operation="snapshot_archive",
                path=archive_path,
                cause=e,
            ) from e
        except OSError as e:
            raise classify_os_error("snapshot_archive", archive_path, e) from e

        records: list[FileRecord] = []
        directories: dict[str, datetime] = {}

        with zf:
            for info in zf.infolist():
                name = info.filename
                if info.is_dir():
                    directories[name.rstrip("/")] = _zip_modified_time(info)
                    continue

                parts = name.split("/")
                for i in range(1, len(parts)):
                    directories.setdefault("/".join(parts[:i]), _ZIP_EPOCH)

                records.append(
                    FileRecord(
                        relative_path=name,
                        size=info.file_size,
                        modified_time=_zip_modified_time(info),
                        is_directory=False,
                        content_hash=self._hash_archive_entry(zf, info, archive_path),
                    )
                )

        file_names = {r.relative_path for r in records}
        for name, mtime in directories.items():
            if name and name not in file_names:
                records.append(FileRecord(name, 0, mtime, is_directory=True))

        logger.debug("Snapshot of archive %s: %d records", archive_path, len(records))
        return DirectorySnapshot(tuple(records))

    def compare(self, first: DirectorySnapshot, second: DirectorySnapshot) -> bool:
        """Check whether two snapshots describe identical content.

        Returns:
            True if both hold the same records by path, type, size and
            content hash. Modification times are ignored.
        """
        if len(first) != len(second):
            return False
        return all(
            _records_equal(a, b) for a, b in zip(first.records, second.records, strict=True)
        )

    def diff(self, first: DirectorySnapshot, second: DirectorySnapshot) -> SnapshotDiff:
        """List the paths that differ between two snapshots."""
        old = {r.relative_path: r for r in first}
        new = {r.relative_path: r for r in second}
        return SnapshotDiff(
            added=tuple(p for p in new if p not in old),
            removed=tuple(p for p in old if p not in new),
            changed=tuple(p for p in old if p in new and not _records_equal(old[p], new[p])),
        )

    def directory_matches_archive(
        self,
        directory: str | Path,
        archive: str | Path,
        exclude_patterns: Iterable[str] = (),
    ) -> bool:
        """Check whether a directory is identical to a zip archive's contents.

        Directories are compared as entries of their own. A directory whose
        children are all excluded is still recorded, so the archive must carry
        an explicit entry for it to match.
        """
        dir_snapshot = self.snapshot_directory(directory, exclude_patterns)
        archive_snapshot = self.snapshot_archive(archive)
        return self.compare(dir_snapshot, archive_snapshot)

    @staticmethod
    def _hash_archive_entry(zf: zipfile.ZipFile, info: zipfile.ZipInfo, archive_path: Path) -> str:
        digest = hashlib.sha256()
        try:
            with zf.open(info) as entry:
                while chunk := entry.read(HASH_CHUNK_SIZE):
                    digest.update(chunk)
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError) as e:
            # RuntimeError covers encrypted entries
            raise MalformedArchiveError(
                f"cannot read entry {info.filename!r}: {e}",
                operation="snapshot_archive",
                path=archive_path,
                cause=e,
            ) from e
        return digest.hexdigest()


def hash_file(path: str | Path) -> str:
    """Compute the SHA-256 of a file's full content.

    Raises:
        SafefsError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            while chunk := f.read(HASH_CHUNK_SIZE):
                digest.update(chunk)
    except OSError as e:
        raise classify_os_error("hash", path, e) from e
    return digest.hexdigest()


def _records_equal(a: FileRecord, b: FileRecord) -> bool:
    if a.relative_path != b.relative_path or a.size != b.size or a.is_directory != b.is_directory:
        return False
    return a.is_directory or a.content_hash == b.content_hash


def _zip_modified_time(info: zipfile.ZipInfo) -> datetime:
    """Modification time of a zip entry as a UTC datetime."""
    extra = info.extra
    pos = 0
    while pos + 4 <= len(extra):
        header_id, size = struct.unpack_from("<HH", extra, pos)
        pos += 4
        if header_id == _EXTENDED_TIMESTAMP_ID and size >= 5 and pos + size <= len(extra):
            flags = extra[pos]
            if flags & 0x01:
                (mtime,) = struct.unpack_from("<i", extra, pos + 1)
                return datetime.fromtimestamp(mtime, tz=UTC)
        pos += size

    try:
        return datetime(*info.date_time, tzinfo=UTC)
    except ValueError:
        return _ZIP_EPOCH


_default_comparer = Comparer()


def snapshot_directory(root: str | Path, exclude_patterns: Iterable[str] = ()) -> DirectorySnapshot:
    """Snapshot a directory using the default comparer."""
    return _default_comparer.snapshot_directory(root, exclude_patterns)


def snapshot_archive(archive: str | Path) -> DirectorySnapshot:
    """Snapshot a zip archive using the default comparer."""
    return _default_comparer.snapshot_archive(archive)


def compare_snapshots(first: DirectorySnapshot, second: DirectorySnapshot) -> bool:
    """Compare two snapshots using the default comparer."""
    return _default_comparer.compare(first, second)


def directory_matches_archive(
    directory: str | Path,
    archive: str | Path,
    exclude_patterns: Iterable[str] = (),
) -> bool:
    """Check directory/archive identity using the default comparer."""
    return _default_comparer.directory_matches_archive(directory, archive, exclude_patterns)


def diff_snapshots(first: DirectorySnapshot, second: DirectorySnapshot) -> SnapshotDiff:
    """List differing paths using the default comparer."""
    return _default_comparer.diff(first, second)
