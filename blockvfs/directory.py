"""Entries of the root directory."""

from __future__ import annotations

import os
import string
from typing import Iterator

from .blockdev import read_block, write_block
from .inode import get_block_number_at, read_inode
from .layout import (
    DIR_ENTRY_SIZE,
    FILENAME_MAX_LEN,
    ROOTDIR_INODE,
    DirEntry,
    NoSpaceError,
    VfsError,
    dir_entries_from_block,
)

_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "._-")


def name_is_valid(name: str) -> bool:
    """True when `name` is 1 to 27 letters, digits, '.', '_' or '-'."""
    if not name or len(name) >= FILENAME_MAX_LEN:
        return False
    return all(c in _NAME_CHARS for c in name)


def _names_match(entry_name: str, filename: str) -> bool:
    return entry_name[:FILENAME_MAX_LEN] == filename[:FILENAME_MAX_LEN]


def _directory_blocks(image_path: str | os.PathLike) -> Iterator[tuple[int, bytes]]:
    root = read_inode(image_path, ROOTDIR_INODE)
    for index in range(root.blocks):
        block_num = get_block_number_at(image_path, root, index)
        if block_num <= 0:
            raise VfsError(f"unexpected error looking up block {index} of the root directory")
        yield block_num, read_block(image_path, block_num)


def iter_dir_entries(image_path: str | os.PathLike) -> Iterator[DirEntry]:
    """Yield the used entries of the root directory in on-disk order."""
    for _, data in _directory_blocks(image_path):
        yield from (entry for entry in dir_entries_from_block(data) if entry.inode != 0)


def dir_lookup(image_path: str | os.PathLike, filename: str) -> int:
    """Return the inode number named `filename`, or 0 if there is none."""
    for entry in iter_dir_entries(image_path):
        if _names_match(entry.name, filename):
            return entry.inode
    return 0


def add_dir_entry(image_path: str | os.PathLike, filename: str, inode_number: int) -> None:
    """Put `filename` -> `inode_number` in the first free slot of the root directory."""
    if not name_is_valid(filename):
        raise VfsError(f"invalid file name for a directory entry: {filename!r}")

    for block_num, data in _directory_blocks(image_path):
        for slot, entry in enumerate(dir_entries_from_block(data)):
            if entry.inode == 0:
                block = bytearray(data)
                start = slot * DIR_ENTRY_SIZE
                block[start : start + DIR_ENTRY_SIZE] = DirEntry(inode_number, filename).pack()
                write_block(image_path, block_num, block)
                return

    raise NoSpaceError("no free entry in the root directory")


def remove_dir_entry(image_path: str | os.PathLike, filename: str) -> bool:
    """Clear the entry named `filename`; returns False if it was not there."""
    for block_num, data in _directory_blocks(image_path):
        for slot, entry in enumerate(dir_entries_from_block(data)):
            if entry.inode != 0 and _names_match(entry.name, filename):
                block = bytearray(data)
                start = slot * DIR_ENTRY_SIZE
                block[start : start + DIR_ENTRY_SIZE] = bytes(DIR_ENTRY_SIZE)
                write_block(image_path, block_num, block)
                return True
    return False