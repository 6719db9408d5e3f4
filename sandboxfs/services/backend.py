# sandboxfs/services/backend.py
from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Protocol, Union, runtime_checkable

FileData = Union[str, bytes]


@runtime_checkable
class FileSystemBackend(Protocol):
    """
    Capability set every sandbox backend offers. All paths are
    sandbox-relative unless a parameter is named `source`, which is an
    absolute path used as-is.
    """

    # ---- Sandbox
    def get_sandbox_path(self) -> str: ...
    def set_sandbox_path(self, sandbox_path: str) -> None: ...
    def get_full_path(self, path: str = "/") -> str: ...
    def get_contained_path(self, path: str) -> str: ...

    # ---- Listing
    def files(self, path: str = "/", include_hidden: bool = True) -> List[str]: ...
    def subdirs(self, path: str = "/") -> List[str]: ...

    # ---- Files
    def link(self, source: str, target: str) -> None: ...
    def create_file(self, path: str, data: FileData, mode: Optional[int] = None) -> None: ...
    def write_file(self, path: str, data: FileData, mode: Optional[int] = None) -> None: ...
    def read_file(self, path: str) -> str: ...
    def replace_in_file(self, path: str, search_and_replace: Mapping[str, str]) -> None: ...
    def copy_file(self, source: str, target: str, mode: Optional[int] = None) -> None: ...
    def rename_file(self, path: str, new_name: str) -> None: ...
    def delete(self, path: str = "/") -> None: ...

    # ---- Directories
    def create_dir(self, path: str, mode: int = 0o777, recursive: bool = True) -> bool: ...
    def copy_dir(self, source: str, target: str, empty_target: bool = False) -> None: ...
    def empty_dir(self, path: str = "/", exclude: Iterable[str] = ()) -> None: ...
    def delete_dir(self, path: str = "/") -> None: ...
    def rename_dir(self, path: str, new_name: str) -> None: ...

    # ---- Metadata
    def change_permissions(self, path: str, mode: int = 0o777, recursive: bool = False) -> bool: ...
    def is_dir(self, path: str = "/") -> bool: ...
    def is_file(self, path: str = "/") -> bool: ...
    def is_link(self, path: str = "/") -> bool: ...

    # ---- Archives
    def compress(self, path: str, files: Iterable[str]) -> None: ...
    def uncompress(self, path: str, extract_to: str) -> None: ...
