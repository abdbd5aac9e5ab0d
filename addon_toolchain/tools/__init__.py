"""
Tools for the Add-on Toolchain

Primitive file operations invoked by the executor:
- Reading a pack's files into a stream of entries
- Writing entries to a directory
- Forced directory removal
- Zip archive creation (.mcpack / .mcaddon)
"""
from .fileops import read_tree, read_files, write_entries, remove_tree, write_archive

__all__ = [
    "read_tree",
    "read_files",
    "write_entries",
    "remove_tree",
    "write_archive",
]
