"""
File Operations - Primitive copy/delete/zip operations

These are the only places the toolchain touches the file system for
pack contents. All functions are blocking; the executor runs them on
worker threads.
"""
import shutil
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from addon_toolchain.schemas import FileEntry


def read_tree(base_dir: Path, subdir: str = ".", prefix: Optional[str] = None) -> List[FileEntry]:
    """
    Read every file under base_dir/subdir

    Args:
        base_dir: Directory the entry paths are relative to
        subdir: Sub-directory of base_dir to read (POSIX relative path)
        prefix: When given, entry paths are relative to base_dir/subdir and
            prefixed with this folder instead

    Returns:
        Entries sorted by relative path
    """
    base_dir = Path(base_dir)
    start = base_dir / subdir
    if not start.is_dir():
        return []

    entries = []
    for path in sorted(start.rglob("*")):
        if not path.is_file():
            continue
        if prefix is None:
            relative = path.relative_to(base_dir).as_posix()
        else:
            relative = f"{prefix}/{path.relative_to(start).as_posix()}"
        entries.append(FileEntry(relative_path=relative, contents=path.read_bytes(), source_path=path))
    return entries


def read_files(paths: Iterable[Path], base_dir: Path) -> List[FileEntry]:
    """Read the given files as entries relative to base_dir"""
    base_dir = Path(base_dir)
    return [
        FileEntry(relative_path=Path(p).relative_to(base_dir).as_posix(), contents=Path(p).read_bytes(), source_path=Path(p))
        for p in sorted(paths)
    ]


def write_entries(entries: Iterable[FileEntry], dest_dir: Path) -> Dict[str, Any]:
    """Write entries under dest_dir, creating directories as needed"""
    dest_dir = Path(dest_dir)
    written = []
    for entry in entries:
        target = dest_dir / entry.relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(entry.contents)
        written.append(str(target))

    return {
        "status": "success",
        "dest_dir": str(dest_dir),
        "files_written": len(written),
    }


def remove_tree(path: Path) -> bool:
    """Delete a file or directory tree (forced). Missing paths are fine."""
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False


def write_archive(entries: Iterable[FileEntry], archive_path: Path) -> Dict[str, Any]:
    """Zip entries into archive_path (deflated), replacing any existing archive"""
    archive_path = Path(archive_path)
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for entry in entries:
            archive.writestr(entry.relative_path, entry.contents)
            count += 1

    return {
        "status": "success",
        "archive_path": str(archive_path),
        "files_archived": count,
    }


__all__ = ["read_tree", "read_files", "write_entries", "remove_tree", "write_archive"]
