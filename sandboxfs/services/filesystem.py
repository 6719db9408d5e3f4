# sandboxfs/services/filesystem.py
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Set

from sandboxfs.errors import (
    AlreadyExists,
    InvalidArgument,
    InvalidTarget,
    IOFailure,
    MoveNotSupported,
    NotADirectory,
    NotFound,
    WriteFailed,
)
from sandboxfs.services.archives import ArchiveCodec
from sandboxfs.services.backend import FileData
from sandboxfs.services.paths import SandboxPaths, with_trailing_separator

logger = logging.getLogger(__name__)


def _raise(exc: OSError):
    raise exc


class FileSystemService:
    """
    Local filesystem backend. Sandbox all file operations inside the root.

    Paths are sandbox-relative and go through SandboxPaths before the disk is
    touched. Arguments named `source` are absolute paths used as-is, so callers
    can import content from outside of the sandbox (or pass `get_full_path()`).
    """

    def __init__(
        self,
        root: Path | str,
        *,
        create_root: bool = True,
        strict_containment: bool = True,
        archive_codec: Optional[ArchiveCodec] = None,
    ):
        if create_root:
            Path(root).mkdir(parents=True, exist_ok=True)
        self.paths = SandboxPaths(root, strict_containment=strict_containment)
        self.archives = archive_codec or ArchiveCodec()

    # ---------- Sandbox ----------

    def get_sandbox_path(self) -> str:
        return self.paths.root

    def set_sandbox_path(self, sandbox_path: str) -> None:
        self.paths.set_root(sandbox_path)

    def get_full_path(self, path: str = "/") -> str:
        return self.paths.resolve(path)

    def get_contained_path(self, path: str) -> str:
        """
        Full path of `path`, refusing a link whose target lies outside of the
        sandbox. Use it before handing the result to an operation taking a
        `source`.
        """
        full_path = self.paths.resolve(path)
        self.paths.ensure_inside(full_path, path)
        return full_path

    # ---------- Listing ----------

    def files(self, path: str = "/", include_hidden: bool = True) -> List[str]:
        """
        Files directly inside `path` (not recursive), sorted. Links are listed
        when they point to a regular file.
        """
        dir_path = self._existing_dir(path)
        result: List[str] = []
        for entry in self._entries(dir_path):
            if not entry.is_file():
                continue
            if entry.name.startswith(".") and not include_hidden:
                continue
            result.append(self.paths.relative(entry.path))
        return sorted(result)

    def subdirs(self, path: str = "/") -> List[str]:
        """
        Directories directly inside `path`, sorted. Hidden directories are
        included and links to directories count as directories.
        """
        dir_path = self._existing_dir(path)
        return sorted(self.paths.relative(e.path) for e in self._entries(dir_path) if e.is_dir())

    # ---------- Files ----------

    def link(self, source: str, target: str) -> None:
        target_path = self.paths.resolve(target)
        if os.path.lexists(target_path):
            raise AlreadyExists(f"{target} already exists", path=target)
        try:
            os.symlink(source, target_path)
        except OSError as exc:
            raise IOFailure(f"Failed to link {source} to {target}: {exc.strerror}", path=target) from exc

    def create_file(self, path: str, data: FileData, mode: Optional[int] = None) -> None:
        file_path = self.paths.resolve(path)
        if os.path.isfile(file_path):
            raise AlreadyExists(f"File {path} already exists", path=path)
        self._write(file_path, path, data, mode)

    def write_file(self, path: str, data: FileData, mode: Optional[int] = None) -> None:
        file_path = self.paths.resolve(path)
        if os.path.isfile(file_path):
            self._write(file_path, path, data, mode)
        else:
            self.create_file(path, data, mode)

    def read_file(self, path: str) -> str:
        file_path = self.paths.resolve(path)
        if not os.path.isfile(file_path):
            raise NotFound(f"File {path} does not exist", path=path)
        self.paths.ensure_inside(file_path, path)
        content = self._read(file_path, path)
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidTarget(f"File {path} is not UTF-8 text", path=path) from exc

    def replace_in_file(self, path: str, search_and_replace: Mapping[str, str]) -> None:
        """
        Literal find/replace on the raw bytes, so line endings and encodings
        other than UTF-8 survive untouched. Pairs are applied in mapping
        order, each on the result of the previous one.
        """
        file_path = self.paths.resolve(path)
        if not os.path.isfile(file_path):
            raise NotFound(f"File {path} does not exist", path=path)
        self.paths.ensure_inside(file_path, path)

        content = self._read(file_path, path)
        for search, replace in search_and_replace.items():
            if search:
                content = content.replace(search.encode("utf-8"), replace.encode("utf-8"))
        self._write(file_path, path, content, None)

    def copy_file(self, source: str, target: str, mode: Optional[int] = None) -> None:
        target_path = self.paths.resolve(target)
        if os.path.lexists(target_path):
            raise AlreadyExists(f"{target} already exists", path=target)
        if not os.path.isfile(source):
            raise NotFound(f"Source file {source} does not exist", path=source)
        try:
            shutil.copyfile(source, target_path)
        except OSError as exc:
            raise IOFailure(f"Failed to copy {source} to {target}: {exc.strerror}", path=target) from exc
        if mode is not None:
            self._apply_mode(target_path, target, mode)

    def rename_file(self, path: str, new_name: str) -> None:
        if not new_name:
            raise InvalidArgument("New file name is required", path=path)
        full_path = self.paths.resolve(path)
        if not (os.path.isfile(full_path) or os.path.islink(full_path)):
            raise NotFound(f"File {path} does not exist", path=path)
        if os.sep in new_name:
            raise MoveNotSupported(
                "Rename option can't be used to move file to a different directory", path=path
            )
        self._rename(full_path, path, new_name, "already exists")

    def delete(self, path: str = "/") -> None:
        """Remove a regular file, or a link to one (the link target stays)."""
        full_path = self.paths.resolve(path)
        if not os.path.isfile(full_path):
            raise InvalidTarget(f"{path} is not a file (or link to a file)", path=path)
        try:
            os.unlink(full_path)
        except OSError as exc:
            raise IOFailure(f"Failed to delete {path}: {exc.strerror}", path=path) from exc
        logger.info("delete path=%s", path)

    # ---------- Directories ----------

    def create_dir(self, path: str, mode: int = 0o777, recursive: bool = True) -> bool:
        """
        Create a directory (and missing parents when `recursive`). Every
        directory created gets exactly `mode`, whatever the process umask is.
        """
        dir_path = self.paths.resolve(path)
        if os.path.isdir(dir_path):
            return True

        created = self._missing_dirs(dir_path) if recursive else [dir_path.rstrip(os.sep)]
        try:
            if recursive:
                os.makedirs(dir_path, mode)
            else:
                os.mkdir(dir_path, mode)
            for created_path in created:
                os.chmod(created_path, mode)
        except OSError as exc:
            raise IOFailure(f"Failed to create directory {path}: {exc.strerror}", path=path) from exc
        return True

    def copy_dir(self, source: str, target: str, empty_target: bool = False) -> None:
        """
        Deep copy of the `source` tree into `target`. Links are recreated with
        their original target, never followed; files are copied with 0777.
        """
        source = with_trailing_separator(source)
        if not os.path.isdir(source):
            raise NotADirectory(f"Source path {source} is not a directory", path=source)

        target_path = self.paths.resolve(target)
        if with_trailing_separator(os.path.realpath(target_path)).startswith(os.path.realpath(source) + os.sep):
            raise InvalidArgument(f"Can't copy {source} into itself ({target})", path=target)

        if os.path.isdir(target_path):
            if empty_target:
                self.empty_dir(target)
        else:
            self.create_dir(target)

        target = with_trailing_separator(self.paths.relative(target_path))
        for entry in self._entries(source):
            entry_target = target + entry.name
            if entry.is_symlink():
                self.link(os.readlink(entry.path), entry_target)
            elif entry.is_dir(follow_symlinks=False):
                self.copy_dir(entry.path, entry_target)
            elif entry.is_file(follow_symlinks=False):
                self.copy_file(entry.path, entry_target, 0o777)

    def empty_dir(self, path: str = "/", exclude: Iterable[str] = ()) -> None:
        """
        Remove everything inside `path`, keeping the directory itself.

        Exclusions protect direct children of `path` only; an excluded path
        deeper in the tree is removed together with its parent.
        """
        dir_path = self._existing_dir(path, allow_link=False)
        excluded = {self.paths.resolve(p).rstrip(os.sep) for p in exclude}
        self._delete_tree(dir_path, path, delete_self=False, exclude=excluded)
        logger.info("empty_dir path=%s excluded=%d", path, len(excluded))

    def delete_dir(self, path: str = "/") -> None:
        dir_path = self._existing_dir(path, allow_link=False)
        self._delete_tree(dir_path, path)
        logger.info("delete_dir path=%s", path)

    def rename_dir(self, path: str, new_name: str) -> None:
        if not new_name:
            raise InvalidArgument("New directory name is required", path=path)
        full_path = self.paths.resolve(path)
        if not os.path.isdir(full_path):
            raise NotFound(f"Directory {path} does not exist", path=path)
        if full_path == self.paths.root:
            raise InvalidArgument("Sandbox root can't be renamed", path=path)
        if os.sep in new_name:
            raise MoveNotSupported(
                "Rename option can't be used to move a directory to a different directory", path=path
            )
        self._rename(full_path, path, new_name, "exists")

    # ---------- Metadata ----------

    def change_permissions(self, path: str, mode: int = 0o777, recursive: bool = False) -> bool:
        """
        chmod `path`; with `recursive`, the whole subtree. Links inside the
        subtree are skipped since chmod would follow them.
        """
        full_path = self.paths.resolve(path)
        if not os.path.lexists(full_path):
            raise NotFound(f"{path} does not exist", path=path)
        self.paths.ensure_inside(full_path, path)

        try:
            if recursive and os.path.isdir(full_path) and not os.path.islink(full_path.rstrip(os.sep)):
                # Bottom-up, so restrictive modes don't lock the walk out
                for root, dirs, files in os.walk(full_path, topdown=False, onerror=_raise):
                    for name in dirs + files:
                        child = os.path.join(root, name)
                        if not os.path.islink(child):
                            os.chmod(child, mode)
            os.chmod(full_path, mode)
        except OSError as exc:
            raise IOFailure(f"Failed to change permissions of {path}: {exc.strerror}", path=path) from exc
        return True

    def is_dir(self, path: str = "/") -> bool:
        return os.path.isdir(self.paths.resolve(path))

    def is_file(self, path: str = "/") -> bool:
        return os.path.isfile(self.paths.resolve(path))

    def is_link(self, path: str = "/") -> bool:
        return os.path.islink(self.paths.resolve(path).rstrip(os.sep))

    # ---------- Archives ----------

    def compress(self, path: str, files: Iterable[str]) -> None:
        """Bundle sandbox paths (files or whole directories) into a new archive at `path`."""
        archive_path = self.paths.resolve(path)
        if os.path.lexists(archive_path):
            raise AlreadyExists(f"Archive {path} already exists", path=path)

        members = []
        for rel_path in files:
            full_path = self.paths.resolve(rel_path)
            if not os.path.lexists(full_path):
                raise NotFound(f"Path {rel_path} does not exist, can't add it to {path}", path=rel_path)
            members.append((self.paths.relative(full_path).rstrip(os.sep) or ".", full_path))
        if not members:
            raise InvalidArgument(f"Nothing to compress into {path}", path=path)

        written = self.archives.pack(archive_path, members)
        logger.info("compress path=%s members=%d", path, len(written))

    def uncompress(self, path: str, extract_to: str) -> None:
        archive_path = self.paths.resolve(path)
        if not os.path.isfile(archive_path):
            raise NotFound(f"Archive {path} does not exist", path=path)
        self.paths.ensure_inside(archive_path, path)

        target_path = self.paths.resolve(extract_to)
        self.paths.ensure_inside(target_path, extract_to)
        if not os.path.isdir(target_path):
            self.create_dir(extract_to)

        names = self.archives.unpack(archive_path, target_path)
        logger.info("uncompress path=%s extract_to=%s members=%d", path, extract_to, len(names))

    # ---------- Internals ----------

    def _existing_dir(self, path: str, allow_link: bool = True) -> str:
        dir_path = self.paths.resolve(path)
        if not os.path.isdir(dir_path):
            raise NotADirectory(f"{path} is not a directory", path=path)
        if not allow_link and os.path.islink(dir_path.rstrip(os.sep)):
            raise InvalidTarget(f"{path} is a link to a directory, not a directory", path=path)
        self.paths.ensure_inside(dir_path, path)
        return with_trailing_separator(dir_path)

    @staticmethod
    def _entries(dir_path: str) -> List[os.DirEntry]:
        # Listing is materialized so the handle is closed before any recursion
        with os.scandir(dir_path) as it:
            return list(it)

    @staticmethod
    def _missing_dirs(dir_path: str) -> List[str]:
        missing: List[str] = []
        current = dir_path.rstrip(os.sep)
        while current and not os.path.exists(current):
            missing.append(current)
            current = os.path.dirname(current)
        return list(reversed(missing))

    @staticmethod
    def _read(file_path: str, path: str) -> bytes:
        try:
            return Path(file_path).read_bytes()
        except OSError as exc:
            raise IOFailure(f"Failed to read {path}: {exc.strerror}", path=path) from exc

    def _write(self, file_path: str, path: str, data: FileData, mode: Optional[int]) -> None:
        payload = data.encode("utf-8") if isinstance(data, str) else data
        self.paths.ensure_inside(file_path, path)
        try:
            Path(file_path).write_bytes(payload)
        except OSError as exc:
            raise WriteFailed(f"Failed to write to {path}: {exc.strerror}", path=path) from exc
        if mode is not None:
            self._apply_mode(file_path, path, mode)

    def _apply_mode(self, full_path: str, path: str, mode: int) -> None:
        # chmod is not subject to the umask, so the bits land exactly as given
        try:
            os.chmod(full_path, mode)
        except OSError as exc:
            raise IOFailure(f"Failed to change permissions of {path}: {exc.strerror}", path=path) from exc

    def _rename(self, full_path: str, path: str, new_name: str, taken: str) -> None:
        if new_name in (".", ".."):
            raise InvalidArgument(f"{new_name} is not a valid name", path=path)
        target_path = os.path.join(os.path.dirname(full_path.rstrip(os.sep)), new_name)
        if os.path.lexists(target_path):
            raise AlreadyExists(
                f"Failed to rename {path} to {new_name}, {new_name} {taken}", path=path
            )
        try:
            os.rename(full_path, target_path)
        except OSError as exc:
            raise IOFailure(f"Failed to rename {path} to {new_name}: {exc.strerror}", path=path) from exc
        logger.info("rename path=%s new_name=%s", path, new_name)

    def _delete_tree(
        self, dir_path: str, path: str, delete_self: bool = True, exclude: Set[str] = frozenset()
    ) -> None:
        try:
            self._delete_entries(dir_path, delete_self, exclude)
        except OSError as exc:
            raise IOFailure(f"Failed to delete contents of {path}: {exc.strerror}", path=path) from exc

    def _delete_entries(self, dir_path: str, delete_self: bool = True, exclude: Set[str] = frozenset()) -> None:
        # Entries that vanish mid-walk are already gone; that is what we want
        try:
            entries = self._entries(dir_path)
        except FileNotFoundError:
            return
        for entry in entries:
            if entry.path in exclude:
                continue
            try:
                if entry.is_symlink() or not entry.is_dir(follow_symlinks=False):
                    os.unlink(entry.path)
                else:
                    self._delete_entries(entry.path)
            except FileNotFoundError:
                continue
        if delete_self:
            os.rmdir(dir_path)
