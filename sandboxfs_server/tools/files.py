# sandboxfs_server/tools/files.py
from __future__ import annotations
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator

from sandboxfs.config import parse_mode


class FsPathIn(BaseModel):
    path: str = Field("/", description="Relative path under sandbox root")


class FsListFilesIn(FsPathIn):
    include_hidden: bool = Field(True, description="Include names starting with a dot")


class FsWriteIn(BaseModel):
    path: str = Field(..., min_length=1, description="Relative path under sandbox root")
    content: str = Field(..., description="UTF-8 text content to write")
    mode: Optional[int] = Field(None, ge=0, le=0o7777, description="Permission bits, e.g. 420 or '644'")

    @field_validator("mode", mode="before")
    @classmethod
    def _octal_mode(cls, value: Any) -> Any:
        return parse_mode(value)


class FsReadIn(BaseModel):
    path: str = Field(..., min_length=1, description="Relative path under sandbox root")


class FsReplaceIn(BaseModel):
    path: str = Field(..., min_length=1, description="Relative path under sandbox root")
    search_and_replace: Dict[str, str] = Field(
        ..., description="Literal search -> replacement pairs, applied in order"
    )


class FsCopyIn(BaseModel):
    source: str = Field(..., min_length=1, description="Relative path of the file to copy")
    target: str = Field(..., min_length=1, description="Relative path of the new copy")
    mode: Optional[int] = Field(None, ge=0, le=0o7777, description="Permission bits for the copy")

    @field_validator("mode", mode="before")
    @classmethod
    def _octal_mode(cls, value: Any) -> Any:
        return parse_mode(value)


class FsLinkIn(BaseModel):
    source: str = Field(..., min_length=1, description="Relative path the link points to")
    target: str = Field(..., min_length=1, description="Relative path of the new link")


class FsRenameIn(BaseModel):
    path: str = Field(..., min_length=1, description="Relative path of the entry to rename")
    new_name: str = Field(..., description="New name in the same directory")


class FsChmodIn(BaseModel):
    path: str = Field(..., description="Relative path under sandbox root")
    mode: int = Field(0o777, ge=0, le=0o7777, description="Permission bits, e.g. 493 or '755'")
    recursive: bool = Field(False, description="Apply to the whole subtree of a directory")

    @field_validator("mode", mode="before")
    @classmethod
    def _octal_mode(cls, value: Any) -> Any:
        return parse_mode(value)
