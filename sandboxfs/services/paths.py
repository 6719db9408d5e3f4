# sandboxfs/services/paths.py
from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath

from sandboxfs.errors import InvalidArgument, OutOfSandbox

logger = logging.getLogger(__name__)

TRAVERSAL = ".."


def with_trailing_separator(path: str) -> str:
    """Return `path` ending in exactly one separator."""
    return path.rstrip(os.sep) + os.sep


class SandboxPaths:
    """
    Confine sandbox-relative paths to a single root directory.

    The root is canonicalized once and kept with a trailing separator, so the
    containment check is a plain string prefix comparison.

    - Paths with a `..` segment are fully canonicalized (symlinks included) and
      must exist; anything that lands outside the root raises OutOfSandbox.
    - With `strict_containment`, every other path has its parent directory
      canonicalized too, which catches escapes through symlinked directories.
      The last component is never followed, so a link inside the sandbox can
      still be inspected or removed as a link.
    """

    def __init__(self, root: str | Path, *, strict_containment: bool = True):
        self.strict_containment = strict_containment
        self._root = ""
        self.set_root(root)

    @property
    def root(self) -> str:
        return self._root

    def set_root(self, root: str | Path) -> None:
        if not str(root):
            raise InvalidArgument("Sandbox root is required")
        self._root = with_trailing_separator(str(Path(root).resolve()))

    def resolve(self, rel_path: str = "/") -> str:
        if "\x00" in rel_path:
            raise OutOfSandbox(f"Path {rel_path!r} contains a NUL byte", path=rel_path)

        rel = rel_path[1:] if rel_path.startswith(os.sep) else rel_path
        full = self._root + rel

        if TRAVERSAL in PurePosixPath(rel).parts:
            return self._canonical(rel_path, full)

        if self.strict_containment and rel.strip(os.sep):
            parent = os.path.dirname(full.rstrip(os.sep))
            try:
                canonical_parent = str(Path(parent).resolve())
            except (OSError, RuntimeError) as exc:
                raise OutOfSandbox(f"Path {rel_path} can't be resolved: {exc}", path=rel_path) from exc
            if not self._contains(canonical_parent):
                logger.warning("path_rejected path=%s reason=symlinked parent", rel_path)
                raise OutOfSandbox(
                    f"Path {rel_path} resolves outside of the sandbox through a linked directory",
                    path=rel_path,
                )

        return full

    def ensure_inside(self, full_path: str, rel_path: str) -> None:
        """
        With `strict_containment`, reject a resolved path whose link target
        lands outside the root. Used before following a leaf link to read,
        write or chmod through it.
        """
        if not self.strict_containment or not os.path.islink(full_path.rstrip(os.sep)):
            return
        if not self._contains(os.path.realpath(full_path)):
            logger.warning("path_rejected path=%s reason=link target", rel_path)
            raise OutOfSandbox(f"Path {rel_path} links to a location outside of the sandbox", path=rel_path)

    def relative(self, full_path: str) -> str:
        """Strip the root prefix from a full path returned by `resolve`."""
        if full_path.startswith(self._root):
            return full_path[len(self._root):]
        if with_trailing_separator(full_path) == self._root:
            return ""
        raise OutOfSandbox(f"Path {full_path} is not inside of the sandbox", path=full_path)

    # ---------- Internals ----------

    def _contains(self, canonical: str) -> bool:
        return with_trailing_separator(canonical).startswith(self._root)

    def _canonical(self, rel_path: str, full: str) -> str:
        try:
            canonical = str(Path(full).resolve(strict=True))
        except (OSError, RuntimeError) as exc:
            logger.warning("path_rejected path=%s reason=%s", rel_path, exc.__class__.__name__)
            raise OutOfSandbox(
                f"Path {rel_path} can't be resolved to an existing location inside of the sandbox",
                path=rel_path,
            ) from exc

        if not self._contains(canonical):
            logger.warning("path_rejected path=%s reason=traversal", rel_path)
            raise OutOfSandbox(f"Path {rel_path} is outside of the sandbox", path=rel_path)

        if with_trailing_separator(canonical) == self._root:
            return self._root
        return canonical
