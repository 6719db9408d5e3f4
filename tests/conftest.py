from pathlib import Path

import pytest

from sandboxfs.services.filesystem import FileSystemService


@pytest.fixture
def sandbox(tmp_path: Path) -> Path:
    root = (tmp_path / "sandbox").resolve()
    root.mkdir()
    (root / ".gitignore").write_text("*\n")
    return root


@pytest.fixture
def fs(sandbox: Path) -> FileSystemService:
    return FileSystemService(sandbox)


@pytest.fixture
def outside(tmp_path: Path) -> Path:
    """A file next to the sandbox, never inside of it."""
    p = tmp_path.resolve() / "outside.txt"
    p.write_text("keep me")
    return p
