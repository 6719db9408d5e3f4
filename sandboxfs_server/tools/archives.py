# sandboxfs_server/tools/archives.py
from __future__ import annotations
from typing import List
from pydantic import BaseModel, Field


class ArchiveCompressIn(BaseModel):
    path: str = Field(..., min_length=1, description="Relative path of the new archive, e.g. 'backup.tar.bz2'")
    files: List[str] = Field(..., min_length=1, description="Relative paths of files/directories to bundle")


class ArchiveExtractIn(BaseModel):
    path: str = Field(..., min_length=1, description="Relative path of the archive")
    extract_to: str = Field(..., description="Relative path of the directory to extract into")
