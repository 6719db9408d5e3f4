# sandboxfs_server/registry.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type
from pydantic import BaseModel

from sandboxfs.di import Container, build_container
from sandboxfs.errors import InvalidTarget
from sandboxfs.logging import log_tool_call

# Import only the Pydantic input models from the tool modules.
from sandboxfs_server.tools.files import (
    FsChmodIn,
    FsCopyIn,
    FsLinkIn,
    FsListFilesIn,
    FsPathIn,
    FsReadIn,
    FsRenameIn,
    FsReplaceIn,
    FsWriteIn,
)
from sandboxfs_server.tools.directories import DirCopyIn, DirCreateIn, DirEmptyIn
from sandboxfs_server.tools.archives import ArchiveCompressIn, ArchiveExtractIn

logger = logging.getLogger("sandboxfs.tools")


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[BaseModel], Any]


class ToolHandlers:
    """
    Named handlers for each tool (no lambdas).
    Keeps all cross-cutting logic and observability in one place.

    Tools only ever see sandbox-relative paths: `source` arguments are
    resolved here before reaching the service, which accepts absolute ones.
    """
    def __init__(self, container: Optional[Container] = None):
        self.container = container or build_container()
        self.fs = self.container.fs_service

    def _log(self, name: str, args: BaseModel) -> None:
        log_tool_call(logger, name, args.model_dump())

    def _source(self, source: str, allow_link: bool = True) -> str:
        if not allow_link and self.fs.is_link(source):
            raise InvalidTarget(f"{source} is a link, not a directory", path=source)
        return self.fs.get_contained_path(source)

    # ---- Files
    def fs_list_files(self, args: FsListFilesIn) -> List[str]:
        self._log("fs_list_files", args)
        return self.fs.files(args.path, args.include_hidden)

    def fs_create(self, args: FsWriteIn) -> str:
        self._log("fs_create", args)
        self.fs.create_file(args.path, args.content, args.mode)
        return "OK"

    def fs_write(self, args: FsWriteIn) -> str:
        self._log("fs_write", args)
        self.fs.write_file(args.path, args.content, args.mode)
        return "OK"

    def fs_read(self, args: FsReadIn) -> str:
        self._log("fs_read", args)
        return self.fs.read_file(args.path)

    def fs_replace(self, args: FsReplaceIn) -> str:
        self._log("fs_replace", args)
        self.fs.replace_in_file(args.path, args.search_and_replace)
        return "OK"

    def fs_copy_file(self, args: FsCopyIn) -> str:
        self._log("fs_copy_file", args)
        self.fs.copy_file(self._source(args.source), args.target, args.mode)
        return "OK"

    def fs_link(self, args: FsLinkIn) -> str:
        self._log("fs_link", args)
        self.fs.link(self._source(args.source), args.target)
        return "OK"

    def fs_rename_file(self, args: FsRenameIn) -> str:
        self._log("fs_rename_file", args)
        self.fs.rename_file(args.path, args.new_name)
        return "OK"

    def fs_delete(self, args: FsReadIn) -> str:
        self._log("fs_delete", args)
        self.fs.delete(args.path)
        return "OK"

    def fs_chmod(self, args: FsChmodIn) -> str:
        self._log("fs_chmod", args)
        self.fs.change_permissions(args.path, args.mode, args.recursive)
        return "OK"

    def fs_info(self, args: FsPathIn) -> Dict[str, Any]:
        self._log("fs_info", args)
        return {
            "path": args.path,
            "is_dir": self.fs.is_dir(args.path),
            "is_file": self.fs.is_file(args.path),
            "is_link": self.fs.is_link(args.path),
        }

    # ---- Directories
    def dir_list(self, args: FsPathIn) -> List[str]:
        self._log("dir_list", args)
        return self.fs.subdirs(args.path)

    def dir_create(self, args: DirCreateIn) -> str:
        self._log("dir_create", args)
        mode = args.mode if args.mode is not None else self.container.settings.DEFAULT_DIR_MODE
        self.fs.create_dir(args.path, mode, args.recursive)
        return "OK"

    def dir_copy(self, args: DirCopyIn) -> str:
        self._log("dir_copy", args)
        self.fs.copy_dir(self._source(args.source, allow_link=False), args.target, args.empty_target)
        return "OK"

    def dir_empty(self, args: DirEmptyIn) -> str:
        self._log("dir_empty", args)
        self.fs.empty_dir(args.path, args.exclude)
        return "OK"

    def dir_delete(self, args: FsPathIn) -> str:
        self._log("dir_delete", args)
        self.fs.delete_dir(args.path)
        return "OK"

    def dir_rename(self, args: FsRenameIn) -> str:
        self._log("dir_rename", args)
        self.fs.rename_dir(args.path, args.new_name)
        return "OK"

    # ---- Archives
    def archive_compress(self, args: ArchiveCompressIn) -> str:
        self._log("archive_compress", args)
        self.fs.compress(args.path, args.files)
        return "OK"

    def archive_extract(self, args: ArchiveExtractIn) -> str:
        self._log("archive_extract", args)
        self.fs.uncompress(args.path, args.extract_to)
        return "OK"


TOOLS = [
    ("fs_list_files", "List files directly inside a sandbox directory", FsListFilesIn),
    ("fs_create", "Create a new text file (fails if it exists)", FsWriteIn),
    ("fs_write", "Write a text file under sandbox root, creating it if missing", FsWriteIn),
    ("fs_read", "Read a text file under sandbox root", FsReadIn),
    ("fs_replace", "Literal search and replace inside a text file", FsReplaceIn),
    ("fs_copy_file", "Copy a file to a new path inside the sandbox", FsCopyIn),
    ("fs_link", "Create a symbolic link inside the sandbox", FsLinkIn),
    ("fs_rename_file", "Rename a file within its directory", FsRenameIn),
    ("fs_delete", "Delete a file or a link to a file", FsReadIn),
    ("fs_chmod", "Change permission bits, optionally recursively", FsChmodIn),
    ("fs_info", "Tell whether a path is a directory, a file and/or a link", FsPathIn),
    ("dir_list", "List subdirectories directly inside a sandbox directory", FsPathIn),
    ("dir_create", "Create a directory (and its parents) with exact permissions", DirCreateIn),
    ("dir_copy", "Copy a directory tree inside the sandbox, keeping symbolic links as links", DirCopyIn),
    ("dir_empty", "Delete everything inside a directory except excluded entries", DirEmptyIn),
    ("dir_delete", "Delete a directory and everything inside it", FsPathIn),
    ("dir_rename", "Rename a directory within its parent", FsRenameIn),
    ("archive_compress", "Bundle sandbox files and directories into a compressed tar archive.", ArchiveCompressIn),
    ("archive_extract", "Extract a tar archive into a sandbox directory (created if missing).", ArchiveExtractIn),
]


def _schema_from_model(model: Type[BaseModel]) -> Dict[str, Any]:
    return model.model_json_schema()


def build_tool_registry(handlers: Optional[ToolHandlers] = None) -> Dict[str, ToolSpec]:
    """
    Build a registry once at startup using DI.
    The stdio host registers from it and tests dispatch through it.
    """
    handlers = handlers or ToolHandlers()
    return {
        name: ToolSpec(
            name=name,
            description=description,
            input_model=model,
            handler=getattr(handlers, name),
        )
        for name, description, model in TOOLS
    }


def list_tools_payload(registry: Dict[str, ToolSpec]) -> Dict[str, Any]:
    """
    Produce the `tools/list` payload body.
    """
    tools = []
    for spec in registry.values():
        tools.append({
            "name": spec.name,
            "description": spec.description,
            "inputSchema": _schema_from_model(spec.input_model),
        })
    return {"tools": tools}


def dispatch_tool_call(registry: Dict[str, ToolSpec], name: str, arguments: Dict[str, Any]) -> Any:
    """
    Validate args with the tool's Pydantic model, then invoke the named handler.
    """
    if name not in registry:
        raise KeyError(f"Tool not found: {name}")
    spec = registry[name]
    args_obj = spec.input_model(**arguments)
    return spec.handler(args_obj)


def register_into_fastmcp(mcp, registry: Dict[str, ToolSpec]) -> None:
    """
    Register all registry tools into a FastMCP stdio host, so names,
    descriptions and input models come from TOOLS alone.
    """
    for spec in registry.values():
        # Create a local closure so each handler binds to its spec
        def make_tool(spec: ToolSpec):
            def tool_handler(input):
                return spec.handler(input)
            # FastMCP derives the input schema from the annotation
            tool_handler.__annotations__ = {"input": spec.input_model}
            tool_handler.__name__ = spec.name
            return tool_handler

        mcp.tool(name=spec.name, description=spec.description)(make_tool(spec))
