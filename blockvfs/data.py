"""Reading and writing file contents through an inode."""

from __future__ import annotations

import os

from .bitmap import bitmap_set_first_free
from .blockdev import read_block, write_block
from .inode import _now, get_block_number_at, inode_append_block, read_inode, write_inode
from .layout import (
    BLOCK_SIZE,
    NUM_DIRECT_PTRS,
    NUM_INDIRECT_PTRS,
    Inode,
    NoSpaceError,
    VfsError,
)
from .superblock import read_superblock

MAX_FILE_SIZE = (NUM_DIRECT_PTRS + NUM_INDIRECT_PTRS) * BLOCK_SIZE


def _block_at(image_path: str | os.PathLike, inode: Inode, index: int) -> int:
    block_num = get_block_number_at(image_path, inode, index)
    if block_num <= 0:
        raise VfsError(f"unexpected error getting block number {index} of the file")
    return block_num


def inode_write_data(
    image_path: str | os.PathLike, inode_number: int, data: bytes, offset: int = 0
) -> int:
    """Write `data` into a file starting at `offset`, allocating blocks as needed.

    Returns the number of bytes written.
    """
    if offset < 0:
        raise ValueError(f"negative offset ({offset})")
    payload = bytes(data)
    inode = read_inode(image_path, inode_number)

    end = offset + len(payload)
    if end > MAX_FILE_SIZE:
        raise VfsError("write exceeds the maximum allowed file size")

    sb = read_superblock(image_path)
    required_blocks = (end + BLOCK_SIZE - 1) // BLOCK_SIZE
    if required_blocks > inode.blocks:
        to_allocate = required_blocks - inode.blocks
        if to_allocate > sb.free_blocks:
            raise NoSpaceError(f"not enough free blocks ({to_allocate} required)")
        for _ in range(to_allocate):
            inode_append_block(image_path, inode, bitmap_set_first_free(image_path))

    index, block_offset = divmod(offset, BLOCK_SIZE)
    position = 0
    while position < len(payload):
        block_num = _block_at(image_path, inode, index)
        block = bytearray(read_block(image_path, block_num))
        chunk = payload[position : position + BLOCK_SIZE - block_offset]
        block[block_offset : block_offset + len(chunk)] = chunk
        write_block(image_path, block_num, block)
        position += len(chunk)
        index += 1
        block_offset = 0

    if end > inode.size:
        inode.size = end
    now = _now()
    inode.mtime = inode.atime = now
    write_inode(image_path, inode_number, inode)
    return len(payload)


def inode_read_data(
    image_path: str | os.PathLike, inode_number: int, length: int, offset: int = 0
) -> bytes:
    """Read up to `length` bytes of a file from `offset`; updates the access time."""
    if offset < 0 or length < 0:
        raise ValueError("offset and length must not be negative")
    inode = read_inode(image_path, inode_number)
    if offset >= inode.size:
        raise VfsError("offset beyond the size of the file")

    remaining = min(length, inode.size - offset)
    index, block_offset = divmod(offset, BLOCK_SIZE)
    chunks: list[bytes] = []
    while remaining > 0:
        block_num = _block_at(image_path, inode, index)
        block = read_block(image_path, block_num)
        chunk = block[block_offset : block_offset + remaining]
        chunks.append(chunk)
        remaining -= len(chunk)
        index += 1
        block_offset = 0

    inode.atime = _now()
    write_inode(image_path, inode_number, inode)
    return b"".join(chunks)