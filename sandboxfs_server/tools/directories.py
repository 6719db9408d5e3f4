# sandboxfs_server/tools/directories.py
from __future__ import annotations
from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_validator

from sandboxfs.config import parse_mode


class DirCreateIn(BaseModel):
    path: str = Field(..., min_length=1, description="Relative path of the directory")
    mode: Optional[int] = Field(
        None, ge=0, le=0o7777, description="Permission bits (defaults to DEFAULT_DIR_MODE)"
    )
    recursive: bool = Field(True, description="Create missing parent directories")

    @field_validator("mode", mode="before")
    @classmethod
    def _octal_mode(cls, value: Any) -> Any:
        return parse_mode(value)


class DirCopyIn(BaseModel):
    source: str = Field(..., min_length=1, description="Relative path of the directory to copy")
    target: str = Field(..., min_length=1, description="Relative path of the copy")
    empty_target: bool = Field(False, description="Empty the target first when it already exists")


class DirEmptyIn(BaseModel):
    path: str = Field("/", description="Relative path of the directory to empty")
    exclude: List[str] = Field(
        default_factory=list, description="Relative paths of direct children to keep"
    )
