# sandboxfs/services/archives.py
from __future__ import annotations

import tarfile
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from sandboxfs.errors import InvalidArgument, IOFailure

COMPRESSIONS = ("bz2", "gz", "xz")

SUFFIXES = {"bz2": ".tar.bz2", "gz": ".tar.gz", "xz": ".tar.xz"}


@dataclass
class ArchiveCodec:
    """
    Archive format shared by every backend: a POSIX tar stream behind a
    compression filter (bzip2 unless configured otherwise).

    Members are stored under their sandbox-relative names and symbolic links
    are stored as links. Reading autodetects the compression, and extraction
    runs through the tar `data` filter so no member can be written outside the
    extraction directory.
    """
    compression: str = "bz2"

    def __post_init__(self):
        if self.compression not in COMPRESSIONS:
            raise InvalidArgument(
                f"Unsupported archive compression: {self.compression} "
                f"(expected one of {', '.join(COMPRESSIONS)})"
            )

    @property
    def suffix(self) -> str:
        return SUFFIXES[self.compression]

    def pack(self, archive_path: str, members: Iterable[Tuple[str, str]]) -> List[str]:
        """Write (arcname, full path) pairs into a new archive. Returns the arcnames."""
        written: List[str] = []
        try:
            with tarfile.open(archive_path, f"w:{self.compression}", format=tarfile.PAX_FORMAT) as tar:
                for arcname, full_path in members:
                    tar.add(full_path, arcname=arcname, recursive=True)
                    written.append(arcname)
        except (OSError, tarfile.TarError) as exc:
            raise IOFailure(f"Failed to write archive {archive_path}: {exc}", path=archive_path) from exc
        return written

    def unpack(self, archive_path: str, target_dir: str) -> List[str]:
        """Extract every member into `target_dir`. Returns the member names."""
        try:
            with tarfile.open(archive_path, "r:*") as tar:
                names = tar.getnames()
                tar.extractall(target_dir, filter="data")
        except (OSError, tarfile.TarError) as exc:
            raise IOFailure(
                f"Failed to extract archive {archive_path} to {target_dir}: {exc}", path=archive_path
            ) from exc
        return names
