"""Inode table access and block bookkeeping of a file's data."""

from __future__ import annotations

import contextlib
import os
import struct
import time

from .bitmap import bitmap_free_block, bitmap_set_first_free
from .blockdev import read_block, write_block
from .layout import (
    INODE_MODE_FILE,
    INODE_SIZE,
    INODES_PER_BLOCK,
    NUM_DIRECT_PTRS,
    NUM_INDIRECT_PTRS,
    ROOTDIR_INODE,
    Inode,
    NoSpaceError,
    Superblock,
    VfsError,
)
from .superblock import read_superblock, write_superblock

_POINTERS = struct.Struct(f"<{NUM_INDIRECT_PTRS}I")


def _now() -> int:
    """Current Unix time as stored on disk (32 bits)."""
    return int(time.time()) & 0xFFFFFFFF


def _owner_ids() -> tuple[int, int]:
    """User and group ids of the running process, as stored on disk (16 bits)."""
    uid = os.getuid() if hasattr(os, "getuid") else 0
    gid = os.getgid() if hasattr(os, "getgid") else 0
    return uid & 0xFFFF, gid & 0xFFFF


def _read_pointers(image_path: str | os.PathLike, block_number: int) -> list[int]:
    return list(_POINTERS.unpack(read_block(image_path, block_number)))


def _write_pointers(image_path: str | os.PathLike, block_number: int, pointers: list[int]) -> None:
    write_block(image_path, block_number, _POINTERS.pack(*pointers))


def _locate(sb: Superblock, inode_number: int, lowest: int, action: str) -> tuple[int, int]:
    if inode_number < lowest or inode_number >= sb.inode_count:
        raise VfsError(f"{action}: invalid inode number ({inode_number})")
    block_index, slot = divmod(inode_number, INODES_PER_BLOCK)
    return sb.inode_start + block_index, slot * INODE_SIZE


def read_inode(image_path: str | os.PathLike, inode_number: int) -> Inode:
    """Return the inode stored at position `inode_number`."""
    sb = read_superblock(image_path)
    block_number, start = _locate(sb, inode_number, ROOTDIR_INODE, "read_inode")
    data = read_block(image_path, block_number)
    return Inode.unpack(data[start : start + INODE_SIZE])


def write_inode(image_path: str | os.PathLike, inode_number: int, inode: Inode) -> None:
    """Store `inode` at position `inode_number` of the inode table."""
    sb = read_superblock(image_path)
    block_number, start = _locate(sb, inode_number, ROOTDIR_INODE, "write_inode")
    data = bytearray(read_block(image_path, block_number))
    data[start : start + INODE_SIZE] = inode.pack()
    write_block(image_path, block_number, data)


def free_inode(image_path: str | os.PathLike, inode_number: int) -> bool:
    """Clear an inode and count it as free.

    Returns False, changing nothing, when the inode was already free.
    The root directory inode can not be freed.
    """
    sb = read_superblock(image_path)
    _locate(sb, inode_number, ROOTDIR_INODE + 1, "free_inode")

    if read_inode(image_path, inode_number).mode == 0:
        return False

    write_inode(image_path, inode_number, Inode())
    sb.free_inodes += 1
    write_superblock(image_path, sb)
    return True


def get_block_number_at(image_path: str | os.PathLike, inode: Inode, index: int) -> int:
    """Return the block holding the `index`-th block of a file, or 0 past its end."""
    if index >= inode.blocks:
        return 0
    if index < NUM_DIRECT_PTRS:
        return inode.direct[index]

    if inode.indirect == 0:
        raise VfsError(
            f"indirect block is 0, with index {index} and {inode.blocks} blocks in the inode"
        )
    indirect_index = index - NUM_DIRECT_PTRS
    if indirect_index >= NUM_INDIRECT_PTRS:
        raise VfsError(f"indirect index {indirect_index} is beyond {NUM_INDIRECT_PTRS}")
    return _read_pointers(image_path, inode.indirect)[indirect_index]


def create_empty_file_in_free_inode(image_path: str | os.PathLike, perms: int) -> int:
    """Take the first free inode for a new empty regular file and return its number."""
    sb = read_superblock(image_path)
    if sb.free_inodes == 0:
        raise NoSpaceError("no free inodes")

    for inode_nbr in range(ROOTDIR_INODE + 1, sb.inode_count):
        if read_inode(image_path, inode_nbr).mode != 0:
            continue
        uid, gid = _owner_ids()
        now = _now()
        inode = Inode(
            mode=(INODE_MODE_FILE | perms) & 0xFFFF,
            uid=uid,
            gid=gid,
            atime=now,
            mtime=now,
            ctime=now,
        )
        write_inode(image_path, inode_nbr, inode)
        sb.free_inodes -= 1
        write_superblock(image_path, sb)
        return inode_nbr

    raise NoSpaceError("no free inodes")


def inode_append_block(image_path: str | os.PathLike, inode: Inode, new_block_number: int) -> None:
    """Add an already allocated block at the end of the file described by `inode`.

    The inode is updated in place; storing it is left to the caller.
    """
    sb = read_superblock(image_path)
    if new_block_number < sb.data_start or new_block_number >= sb.total_blocks:
        raise VfsError(f"block {new_block_number} out of range to append to a file")

    for i, pointer in enumerate(inode.direct):
        if pointer == 0:
            inode.direct[i] = new_block_number
            inode.blocks += 1
            return

    if inode.indirect == 0:
        try:
            inode.indirect = bitmap_set_first_free(image_path)
        except VfsError as exc:
            raise NoSpaceError("no blocks available for the indirect block") from exc
        pointers = [0] * NUM_INDIRECT_PTRS
    else:
        pointers = _read_pointers(image_path, inode.indirect)

    for i, pointer in enumerate(pointers):
        if pointer == 0:
            pointers[i] = new_block_number
            _write_pointers(image_path, inode.indirect, pointers)
            inode.blocks += 1
            return

    raise VfsError("the file has reached its block limit")


def _release(image_path: str | os.PathLike, block_number: int) -> None:
    # A block that can not be released does not stop the truncation.
    with contextlib.suppress(VfsError):
        bitmap_free_block(image_path, block_number)


def inode_trunc_data(image_path: str | os.PathLike, inode: Inode) -> None:
    """Release every data block of a file and set its size to zero.

    The inode is updated in place; storing it is left to the caller.
    """
    for i, pointer in enumerate(inode.direct):
        if pointer != 0:
            _release(image_path, pointer)
            inode.direct[i] = 0

    if inode.indirect != 0:
        for pointer in _read_pointers(image_path, inode.indirect):
            if pointer != 0:
                _release(image_path, pointer)
        _release(image_path, inode.indirect)
        inode.indirect = 0

    inode.size = 0
    inode.blocks = 0
    now = _now()
    inode.mtime = inode.atime = now