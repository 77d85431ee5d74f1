"""Reading, writing and describing the superblock."""

from __future__ import annotations

import os

from .blockdev import read_block, write_block
from .layout import MAGIC_NUMBER, SB_BLOCK_NUMBER, Superblock, VfsError


def read_superblock(image_path: str | os.PathLike) -> Superblock:
    """Read block 0 and return its superblock, checking the magic number."""
    sb = Superblock.unpack(read_block(image_path, SB_BLOCK_NUMBER))
    if sb.magic != MAGIC_NUMBER:
        raise VfsError(f"{image_path} does not contain a valid filesystem")
    return sb


def write_superblock(image_path: str | os.PathLike, sb: Superblock) -> None:
    """Write the superblock to block 0; the rest of the block is zeroed."""
    if sb.magic != MAGIC_NUMBER:
        raise VfsError("superblock does not carry a valid magic number")
    write_block(image_path, SB_BLOCK_NUMBER, sb.pack())


def format_superblock(sb: Superblock) -> str:
    """Return a human-readable description of the superblock."""
    lines = [
        "Superblock:",
        f"  Magic: 0x{sb.magic:08X}",
        f"  Block size: {sb.block_size} bytes.",
        f"  Total blocks: {sb.total_blocks}",
        f"  Superblock blocks: {sb.superblock_blocks}",
        f"  Inode blocks: {sb.inode_blocks}",
        f"  Bitmap blocks: {sb.bitmap_blocks}",
        f"  Free blocks: {sb.free_blocks}",
        f"  Inode size: {sb.inode_size} bytes.",
        f"  Inode count: {sb.inode_count}",
        f"  Free inodes: {sb.free_inodes}",
        f"  Superblock start block: {SB_BLOCK_NUMBER}",
        f"  Inode start block: {sb.inode_start}",
        f"  Bitmap start block: {sb.bitmap_start}",
        f"  Data start block: {sb.data_start}",
    ]
    return "\n".join(lines) + "\n"