"""Laying out a fresh filesystem: superblock, bitmap and root directory."""

from __future__ import annotations

import os

from .bitmap import bitmap_set_first_free
from .blockdev import write_block
from .inode import _now, _owner_ids, write_inode
from .layout import (
    BITS_PER_BLOCK,
    BLOCK_SIZE,
    INODE_MODE_DIR,
    INODE_SIZE,
    INODES_PER_BLOCK,
    MAX_INODE_BLOCKS,
    ROOTDIR_INODE,
    DirEntry,
    Inode,
    NoSpaceError,
    Superblock,
    VfsError,
    dir_entries_to_block,
)
from .superblock import read_superblock, write_superblock


def init_superblock(image_path: str | os.PathLike, total_blocks: int, total_inodes: int) -> None:
    """Write a new superblock and mark the metadata blocks as used in the bitmap."""
    inode_blocks = total_inodes // INODES_PER_BLOCK
    bitmap_blocks = (total_blocks + BITS_PER_BLOCK - 1) // BITS_PER_BLOCK
    if bitmap_blocks > MAX_INODE_BLOCKS:
        raise VfsError(
            f"{total_blocks} blocks need {bitmap_blocks} bitmap blocks, "
            f"at most {MAX_INODE_BLOCKS} are supported"
        )

    sb = Superblock(
        total_blocks=total_blocks,
        free_blocks=total_blocks,
        superblock_blocks=1,
        inode_blocks=inode_blocks,
        bitmap_blocks=bitmap_blocks,
        inode_count=total_inodes,
        inode_size=INODE_SIZE,
        free_inodes=total_inodes,
    )
    sb.inode_start = sb.superblock_blocks
    sb.bitmap_start = sb.inode_start + sb.inode_blocks
    sb.data_start = sb.bitmap_start + sb.bitmap_blocks

    sb.bitmap_zeroes[0] = BITS_PER_BLOCK - sb.data_start
    for i in range(1, bitmap_blocks):
        sb.bitmap_zeroes[i] = BITS_PER_BLOCK

    write_superblock(image_path, sb)

    for expected in range(sb.data_start):
        if bitmap_set_first_free(image_path) != expected:
            raise VfsError("unexpected error while reserving metadata blocks")


def create_root_dir(image_path: str | os.PathLike) -> None:
    """Create the root directory with its '.' and '..' entries."""
    sb = read_superblock(image_path)
    if sb.free_inodes == 0 or sb.free_blocks == 0:
        raise NoSpaceError("no room for the root directory")

    data_block = bitmap_set_first_free(image_path)
    entries = [DirEntry(ROOTDIR_INODE, "."), DirEntry(ROOTDIR_INODE, "..")]
    write_block(image_path, data_block, dir_entries_to_block(entries))

    uid, gid = _owner_ids()
    now = _now()
    root = Inode(
        mode=INODE_MODE_DIR | 0o755,
        uid=uid,
        gid=gid,
        blocks=1,
        size=BLOCK_SIZE,
        atime=now,
        mtime=now,
        ctime=now,
    )
    root.direct[0] = data_block
    write_inode(image_path, ROOTDIR_INODE, root)

    sb = read_superblock(image_path)
    sb.free_inodes -= 1
    write_superblock(image_path, sb)