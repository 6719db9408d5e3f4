import os
import stat
from pathlib import Path

import pytest

from sandboxfs.errors import InvalidArgument, InvalidTarget, NotADirectory, NotFound
from sandboxfs.services.filesystem import FileSystemService


def _mode(p: Path) -> int:
    return stat.S_IMODE(os.lstat(p).st_mode)


def test_subdirs_are_sorted_and_include_hidden(fs: FileSystemService, sandbox: Path):
    (sandbox / "subdirectory1" / "subsubdirectory1").mkdir(parents=True)
    (sandbox / "subdirectory2").mkdir()
    (sandbox / ".hidden").mkdir()

    assert fs.subdirs() == [".hidden", "subdirectory1", "subdirectory2"]
    assert fs.subdirs("subdirectory1") == ["subdirectory1/subsubdirectory1"]
    assert fs.subdirs("subdirectory2") == []


def test_subdirs_count_links_to_directories(fs: FileSystemService, sandbox: Path):
    (sandbox / "real").mkdir()
    os.symlink(sandbox / "real", sandbox / "alias")
    assert fs.subdirs() == ["alias", "real"]


def test_subdirs_requires_a_directory(fs: FileSystemService):
    with pytest.raises(NotADirectory):
        fs.subdirs(".gitignore")
    with pytest.raises(NotADirectory):
        fs.subdirs("this-directory-does-not-exist")


def test_create_dir_creates_parents_with_exact_mode(fs: FileSystemService, sandbox: Path):
    old = os.umask(0o022)
    try:
        assert fs.create_dir("subdirectory1/subsubdirectory1") is True
    finally:
        os.umask(old)

    assert (sandbox / "subdirectory1" / "subsubdirectory1").is_dir()
    assert _mode(sandbox / "subdirectory1") == 0o777
    assert _mode(sandbox / "subdirectory1" / "subsubdirectory1") == 0o777


def test_create_dir_is_a_noop_for_existing_directory(fs: FileSystemService, sandbox: Path):
    (sandbox / "existing").mkdir(mode=0o755)
    os.chmod(sandbox / "existing", 0o755)
    assert fs.create_dir("existing", 0o700) is True
    assert _mode(sandbox / "existing") == 0o755


def test_copy_dir_keeps_links_as_links(fs: FileSystemService, sandbox: Path):
    fs.create_file("file-to-be-linked.txt", "File content", 0o777)
    fs.create_dir("dir-to-be-copied/subfolder")
    fs.create_file("dir-to-be-copied/file.txt", "File #1", 0o777)
    fs.create_file("dir-to-be-copied/subfolder/file.txt", "File #2", 0o777)
    fs.link(fs.get_full_path("file-to-be-linked.txt"), "dir-to-be-copied/linked-file.txt")

    fs.copy_dir(fs.get_full_path("dir-to-be-copied"), "dir-copy")

    assert (sandbox / "dir-copy" / "subfolder").is_dir()
    assert (sandbox / "dir-copy" / "file.txt").read_text() == "File #1"
    assert (sandbox / "dir-copy" / "subfolder" / "file.txt").read_text() == "File #2"
    assert _mode(sandbox / "dir-copy" / "file.txt") == 0o777

    link = sandbox / "dir-copy" / "linked-file.txt"
    assert link.is_symlink()
    assert os.readlink(link) == f"{sandbox}/file-to-be-linked.txt"


def test_copy_dir_empties_existing_target_on_request(fs: FileSystemService, sandbox: Path):
    fs.create_dir("source")
    fs.create_file("source/new.txt", "new")
    fs.create_dir("target")
    fs.create_file("target/stale.txt", "stale")

    fs.copy_dir(fs.get_full_path("source"), "target", empty_target=True)

    assert fs.files("target") == ["target/new.txt"]


def test_copy_dir_requires_source_directory(fs: FileSystemService, sandbox: Path):
    with pytest.raises(NotADirectory):
        fs.copy_dir(str(sandbox / "missing"), "target")
    with pytest.raises(NotADirectory):
        fs.copy_dir(str(sandbox / ".gitignore"), "target")


def test_copy_dir_into_itself_is_rejected(fs: FileSystemService, sandbox: Path):
    fs.create_dir("tree")
    with pytest.raises(InvalidArgument):
        fs.copy_dir(fs.get_full_path("tree"), "tree/nested")
    assert not (sandbox / "tree" / "nested").exists()


def test_empty_dir_keeps_excluded_entries(fs: FileSystemService, sandbox: Path, outside: Path):
    (sandbox / "subdirectory1" / "subsubdirectory1").mkdir(parents=True)
    (sandbox / "subdirectory2").mkdir()
    (sandbox / ".hidden").mkdir()
    (sandbox / "subdirectory1" / "subsubdirectory1" / "a-file.txt").write_text("123")
    (sandbox / ".hidden" / "a-file-2.txt").write_text("123")
    os.symlink(outside, sandbox / ".hidden" / "outside.txt")

    fs.empty_dir("/", [".gitignore"])

    assert (sandbox / ".gitignore").exists()
    assert sorted(os.listdir(sandbox)) == [".gitignore"]
    assert fs.subdirs() == []
    # links are unlinked, never followed
    assert outside.read_text() == "keep me"


def test_empty_dir_exclusions_only_protect_direct_children(fs: FileSystemService, sandbox: Path):
    fs.create_dir("sub")
    fs.create_file("sub/keep.txt", "x")
    fs.create_file("keep.txt", "x")

    fs.empty_dir("/", ["keep.txt", "sub/keep.txt"])

    assert sorted(os.listdir(sandbox)) == ["keep.txt"]


def test_empty_dir_requires_a_directory(fs: FileSystemService, sandbox: Path):
    with pytest.raises(NotADirectory):
        fs.empty_dir(".gitignore")
    (sandbox / "real").mkdir()
    os.symlink(sandbox / "real", sandbox / "alias")
    with pytest.raises(InvalidTarget):
        fs.empty_dir("alias")


def test_delete_dir(fs: FileSystemService, sandbox: Path, outside: Path):
    (sandbox / "subdirectory1" / "folder").mkdir(parents=True)
    (sandbox / "subdirectory1" / ".hidden").mkdir()
    (sandbox / "subdirectory1" / "folder" / "a-file.txt").write_text("123")
    (sandbox / "subdirectory1" / ".hidden" / "a-file-2.txt").write_text("123")
    os.symlink(outside, sandbox / "subdirectory1" / ".hidden" / "outside.txt")

    fs.delete_dir("subdirectory1")

    assert (sandbox / ".gitignore").exists()
    assert not (sandbox / "subdirectory1").exists()
    assert outside.exists()


def test_delete_dir_rejects_missing_paths_and_links(fs: FileSystemService, sandbox: Path):
    with pytest.raises(NotADirectory):
        fs.delete_dir("file-that-does-not-exist.txt")

    (sandbox / "real").mkdir()
    (sandbox / "real" / "file.txt").write_text("x")
    os.symlink(sandbox / "real", sandbox / "alias")
    with pytest.raises(InvalidTarget):
        fs.delete_dir("alias")
    assert (sandbox / "real" / "file.txt").exists()


def test_change_permissions(fs: FileSystemService, sandbox: Path):
    (sandbox / "subdirectory123").mkdir(mode=0o777)
    assert fs.change_permissions("subdirectory123/", 0o400) is True
    assert _mode(sandbox / "subdirectory123") == 0o400
    fs.change_permissions("subdirectory123", 0o755)


def test_change_permissions_recursive(fs: FileSystemService, sandbox: Path):
    fs.create_dir("/subdirectory001/subdirectory002/subdirectory003/subdirectory004", 0o777, True)
    fs.create_file("subdirectory001/subdirectory002/file.txt", "x", 0o666)
    deepest = sandbox / "subdirectory001" / "subdirectory002" / "subdirectory003" / "subdirectory004"
    assert _mode(deepest) == 0o777

    fs.change_permissions("/subdirectory001", 0o755, True)

    current = sandbox / "subdirectory001"
    for name in ("subdirectory002", "subdirectory003", "subdirectory004"):
        assert _mode(current) == 0o755
        current = current / name
    assert _mode(deepest) == 0o755
    assert _mode(sandbox / "subdirectory001" / "subdirectory002" / "file.txt") == 0o755


def test_change_permissions_skips_links(fs: FileSystemService, sandbox: Path, outside: Path):
    os.chmod(outside, 0o644)
    fs.create_dir("tree")
    os.symlink(outside, sandbox / "tree" / "outside.txt")

    fs.change_permissions("tree", 0o700, recursive=True)

    assert _mode(sandbox / "tree") == 0o700
    assert _mode(outside) == 0o644


def test_change_permissions_on_missing_path(fs: FileSystemService):
    with pytest.raises(NotFound):
        fs.change_permissions("missing", 0o700)
