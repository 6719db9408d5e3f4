# sandboxfs/di.py
from dataclasses import dataclass
from typing import Optional

from sandboxfs.config import Settings
from sandboxfs.services.archives import ArchiveCodec
from sandboxfs.services.backend import FileSystemBackend
from sandboxfs.services.filesystem import FileSystemService

@dataclass
class Container:
    settings: Settings
    fs_service: FileSystemBackend
    archive_codec: ArchiveCodec

def build_container(settings: Optional[Settings] = None) -> Container:
    s = settings or Settings()
    codec = ArchiveCodec(compression=s.ARCHIVE_COMPRESSION)
    fs = FileSystemService(
        s.SANDBOX_ROOT,
        create_root=s.SANDBOX_CREATE_ROOT,
        strict_containment=s.SANDBOX_STRICT_CONTAINMENT,
        archive_codec=codec,
    )
    return Container(s, fs, codec)
