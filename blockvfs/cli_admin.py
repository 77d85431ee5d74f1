"""Commands that create, describe and list a filesystem image."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import Iterator, Sequence

from .bitmap import format_bitmap_block
from .blockdev import create_block_device, read_block
from .format import create_root_dir, init_superblock
from .inode import get_block_number_at, read_inode
from .layout import (
    BLOCK_SIZE,
    INODES_PER_BLOCK,
    MAGIC_NUMBER,
    ROOTDIR_INODE,
    VFS_MAX_BLOCKS,
    VFS_MIN_BLOCKS,
    DirEntry,
    Inode,
    VfsError,
    dir_entries_from_block,
)
from .listing import format_inode
from .superblock import format_superblock, read_superblock

_EMPTY_DIRECTORY = "The directory is empty."
_UINT32 = 0xFFFFFFFF


def _args(argv: Sequence[str] | None) -> list[str]:
    return list(sys.argv[1:] if argv is None else argv)


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def _atoi(text: str) -> int:
    """Leading integer of `text`, 0 when there is none."""
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def round_up_inodes(count: int) -> int:
    """Round an inode count up so the inodes fill whole blocks."""
    return (count + INODES_PER_BLOCK - 1) // INODES_PER_BLOCK * INODES_PER_BLOCK


def mkfs_main(argv: Sequence[str] | None = None) -> int:
    """Create a new image: vfs-mkfs <image> <total_blocks> <inode_count>."""
    args = _args(argv)
    if len(args) != 3:
        _err("Usage: vfs-mkfs <image_name> <total_blocks> <inode_count>")
        return 1
    image_path, blocks_arg, inodes_arg = args

    total_blocks = _atoi(blocks_arg) & _UINT32
    if total_blocks < VFS_MIN_BLOCKS or total_blocks >= VFS_MAX_BLOCKS:
        _err(
            f"Error: total_blocks must be an integer between "
            f"{VFS_MIN_BLOCKS} and {VFS_MAX_BLOCKS}."
        )
        return 1

    inode_count = _atoi(inodes_arg) & _UINT32
    if inode_count < INODES_PER_BLOCK or inode_count >= total_blocks:
        _err(
            f"Error: inode_count must be at least {INODES_PER_BLOCK} "
            f"and less than the number of blocks."
        )
        return 1

    try:
        create_block_device(image_path, total_blocks, BLOCK_SIZE)
    except VfsError as exc:
        _err(f"Error creating the block device: {exc}")
        return 1
    print(f"Block device created: {image_path}")

    try:
        init_superblock(image_path, total_blocks, round_up_inodes(inode_count))
    except VfsError as exc:
        _err(f"Error: could not initialise the superblock: {exc}")
        return 1

    try:
        create_root_dir(image_path)
    except VfsError as exc:
        _err(f"Error: could not create the root directory: {exc}")
        return 1

    _err(f"Block device initialised: {image_path}")
    return 0


def info_main(argv: Sequence[str] | None = None) -> int:
    """Describe an image's superblock and block bitmap: vfs-info <image>."""
    args = _args(argv)
    if len(args) != 1:
        _err("Usage: vfs-info <image>")
        return 1
    image_path = args[0]

    try:
        sb = read_superblock(image_path)
    except VfsError as exc:
        _err(f"Error reading the superblock: {exc}")
        return 1

    sys.stdout.write(format_superblock(sb))
    sys.stdout.write("\nBlock bitmap:\n")
    to_print = sb.total_blocks
    for i in range(sb.bitmap_blocks):
        try:
            buffer = read_block(image_path, sb.bitmap_start + i)
        except VfsError as exc:
            _err(f"Error reading bitmap block {i}: {exc}")
            return 1
        sys.stdout.write(format_bitmap_block(buffer, min(to_print, BLOCK_SIZE)))
        to_print = (to_print - BLOCK_SIZE) & _UINT32
    return 0


def _open_root(image_path: str) -> Inode | None:
    """Check the image and return its root inode, reporting failures."""
    try:
        sb = read_superblock(image_path)
    except VfsError:
        _err("Error: could not read the superblock")
        return None
    if sb.magic != MAGIC_NUMBER:
        _err("Error: invalid image (wrong magic number)")
        return None
    try:
        return read_inode(image_path, ROOTDIR_INODE)
    except VfsError:
        _err("Error: could not read the root directory inode")
        return None


def _root_entries(image_path: str, root: Inode, report: bool) -> Iterator[DirEntry]:
    """Used root directory entries; unreadable blocks are skipped."""
    for index in range(root.blocks):
        try:
            block_num = get_block_number_at(image_path, root, index)
        except VfsError:
            block_num = -1
        if block_num <= 0:
            if report:
                _err(
                    f"Error: invalid block ({block_num}) in the root directory "
                    f"(logical position {index})"
                )
            continue
        try:
            data = read_block(image_path, block_num)
        except VfsError:
            if report:
                _err(f"Error: could not read block {block_num}")
            continue
        yield from (entry for entry in dir_entries_from_block(data) if entry.inode != 0)


def ls_main(argv: Sequence[str] | None = None) -> int:
    """List the root directory in on-disk order: vfs-ls <image>."""
    args = _args(argv)
    if len(args) != 1:
        _err("Usage: vfs-ls <image.vfs>")
        return 1
    image_path = args[0]

    root = _open_root(image_path)
    if root is None:
        return 1
    if root.blocks == 0:
        print(_EMPTY_DIRECTORY)
        return 0

    found = False
    for entry in _root_entries(image_path, root, report=True):
        try:
            inode = read_inode(image_path, entry.inode)
        except VfsError:
            _err(f"Warning: could not read inode {entry.inode}")
            continue
        print(format_inode(inode, entry.inode, entry.name))
        found = True

    if not found:
        print(_EMPTY_DIRECTORY)
    return 0


@dataclass
class _FileInfo:
    name: str
    inode_number: int
    inode: Inode | None


def lsort_main(argv: Sequence[str] | None = None) -> int:
    """List the root directory sorted by name: vfs-lsort <image>."""
    args = _args(argv)
    if len(args) != 1:
        _err("Usage: vfs-lsort <image.vfs>")
        return 1
    image_path = args[0]

    root = _open_root(image_path)
    if root is None:
        return 1

    files: list[_FileInfo] = []
    for entry in _root_entries(image_path, root, report=False):
        try:
            inode: Inode | None = read_inode(image_path, entry.inode)
        except VfsError:
            inode = None
        files.append(_FileInfo(entry.name, entry.inode, inode))

    if not files:
        print(_EMPTY_DIRECTORY)
        return 0

    for info in sorted(files, key=lambda f: f.name.encode("latin-1")):
        if info.inode is not None:
            print(format_inode(info.inode, info.inode_number, info.name))
    return 0