"""
Local disk storage.

A disk is a named root directory. Paths are always relative to a disk root
and are resolved with a containment check, so a path can never reach a file
outside its disk even through symlinks.
"""

import logging
import mimetypes
from pathlib import Path
from typing import BinaryIO, Protocol

from .errors import PathOutsideDiskError, UnknownDiskError

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    default_disk: str

    def exists(self, disk: str, path: str) -> bool: ...

    def read_stream(self, disk: str, path: str) -> BinaryIO: ...

    def delete(self, disk: str, path: str) -> bool: ...

    def mime_type(self, disk: str, path: str) -> str | None: ...


class DiskStorage:
    def __init__(self, disks: dict[str, str | Path], default_disk: str):
        self.disks = {name: Path(root) for name, root in disks.items()}
        self.default_disk = default_disk

    def root(self, disk: str) -> Path:
        try:
            return self.disks[disk]
        except KeyError:
            raise UnknownDiskError(f"Disk [{disk}] is not configured") from None

    def resolve(self, disk: str, path: str) -> Path:
        """Map *path* on *disk* to a filesystem path inside the disk root."""
        root = self.root(disk).resolve()
        candidate = (root / path.lstrip("/")).resolve()
        if candidate != root and root not in candidate.parents:
            raise PathOutsideDiskError(f"Path escapes disk [{disk}]")
        return candidate

    def exists(self, disk: str, path: str) -> bool:
        return self.resolve(disk, path).is_file()

    def read_stream(self, disk: str, path: str) -> BinaryIO:
        return open(self.resolve(disk, path), "rb")

    def delete(self, disk: str, path: str) -> bool:
        """Delete a file. Returns True if a file was removed."""
        target = self.resolve(disk, path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Deleted %s from disk %s", path, disk)
        return True

    def mime_type(self, disk: str, path: str) -> str | None:
        return mimetypes.guess_type(self.resolve(disk, path).name)[0]
