"""On-disk layout of the block filesystem: constants, errors and record codecs."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Iterable

MAGIC_NUMBER = 0x20250604
BLOCK_SIZE = 1024

VFS_MIN_BLOCKS = 50
VFS_MAX_BLOCKS = 64 * BLOCK_SIZE

MAX_INODE_BLOCKS = 8
MAX_VFS_BLOCKS = MAX_INODE_BLOCKS * BLOCK_SIZE * 8

INODE_MODE_FILE = 0x8000
INODE_MODE_DIR = 0x4000
DEFAULT_PERM = 0o640

FILENAME_MAX_LEN = 28

# Inode 0 marks a free directory entry, so the root directory uses inode 1.
ROOTDIR_INODE = 1
SB_BLOCK_NUMBER = 0

NUM_DIRECT_PTRS = 7
NUM_INDIRECT_PTRS = BLOCK_SIZE // 4
BITS_PER_BLOCK = BLOCK_SIZE * 8

_SUPERBLOCK_STRUCT = struct.Struct(f"<10I{MAX_INODE_BLOCKS}H3I")
_INODE_STRUCT = struct.Struct(f"<4HI{NUM_DIRECT_PTRS}I4I6s2x")
_DIR_ENTRY_STRUCT = struct.Struct(f"<I{FILENAME_MAX_LEN}s")

SUPERBLOCK_SIZE = _SUPERBLOCK_STRUCT.size
INODE_SIZE = _INODE_STRUCT.size
INODES_PER_BLOCK = BLOCK_SIZE // INODE_SIZE
DIR_ENTRY_SIZE = _DIR_ENTRY_STRUCT.size
DIR_ENTRIES_PER_BLOCK = BLOCK_SIZE // DIR_ENTRY_SIZE


class VfsError(Exception):
    """Raised when an operation on a filesystem image fails."""


class NoSpaceError(VfsError):
    """Raised when the filesystem has no free blocks, inodes or entries left."""


def _unpack_from(layout: struct.Struct, data: bytes, what: str) -> tuple:
    if len(data) < layout.size:
        raise VfsError(f"{what} needs {layout.size} bytes, got {len(data)}")
    return layout.unpack_from(data)


def _pack(layout: struct.Struct, what: str, *values) -> bytes:
    try:
        return layout.pack(*values)
    except struct.error as exc:
        raise VfsError(f"cannot encode {what}: {exc}") from exc


@dataclass
class Superblock:
    """Filesystem metadata stored in block 0."""

    magic: int = MAGIC_NUMBER
    block_size: int = BLOCK_SIZE
    total_blocks: int = 0
    superblock_blocks: int = 1
    inode_blocks: int = 0
    bitmap_blocks: int = 0
    free_blocks: int = 0
    inode_size: int = INODE_SIZE
    inode_count: int = 0
    free_inodes: int = 0
    bitmap_zeroes: list[int] = field(default_factory=lambda: [0] * MAX_INODE_BLOCKS)
    inode_start: int = 0
    bitmap_start: int = 0
    data_start: int = 0

    def pack(self) -> bytes:
        if len(self.bitmap_zeroes) != MAX_INODE_BLOCKS:
            raise VfsError(f"bitmap_zeroes must hold {MAX_INODE_BLOCKS} counters")
        return _pack(
            _SUPERBLOCK_STRUCT,
            "superblock",
            self.magic,
            self.block_size,
            self.total_blocks,
            self.superblock_blocks,
            self.inode_blocks,
            self.bitmap_blocks,
            self.free_blocks,
            self.inode_size,
            self.inode_count,
            self.free_inodes,
            *self.bitmap_zeroes,
            self.inode_start,
            self.bitmap_start,
            self.data_start,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Superblock:
        values = _unpack_from(_SUPERBLOCK_STRUCT, data, "superblock")
        head = values[:10]
        zeroes = list(values[10 : 10 + MAX_INODE_BLOCKS])
        inode_start, bitmap_start, data_start = values[10 + MAX_INODE_BLOCKS :]
        return cls(
            *head,
            bitmap_zeroes=zeroes,
            inode_start=inode_start,
            bitmap_start=bitmap_start,
            data_start=data_start,
        )


@dataclass
class Inode:
    """Metadata of one file or directory."""

    mode: int = 0
    uid: int = 0
    gid: int = 0
    blocks: int = 0
    size: int = 0
    direct: list[int] = field(default_factory=lambda: [0] * NUM_DIRECT_PTRS)
    indirect: int = 0
    atime: int = 0
    mtime: int = 0
    ctime: int = 0
    reserved: bytes = bytes(6)

    def pack(self) -> bytes:
        if len(self.direct) != NUM_DIRECT_PTRS:
            raise VfsError(f"an inode holds exactly {NUM_DIRECT_PTRS} direct pointers")
        return _pack(
            _INODE_STRUCT,
            "inode",
            self.mode,
            self.uid,
            self.gid,
            self.blocks,
            self.size,
            *self.direct,
            self.indirect,
            self.atime,
            self.mtime,
            self.ctime,
            self.reserved,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Inode:
        values = _unpack_from(_INODE_STRUCT, data, "inode")
        mode, uid, gid, blocks, size = values[:5]
        direct = list(values[5 : 5 + NUM_DIRECT_PTRS])
        indirect, atime, mtime, ctime, reserved = values[5 + NUM_DIRECT_PTRS :]
        return cls(mode, uid, gid, blocks, size, direct, indirect, atime, mtime, ctime, reserved)


@dataclass
class DirEntry:
    """A name in a directory; inode 0 marks a free slot."""

    inode: int = 0
    name: str = ""

    def pack(self) -> bytes:
        raw_name = self.name.encode("latin-1")
        if len(raw_name) > FILENAME_MAX_LEN:
            raise VfsError(f"name longer than {FILENAME_MAX_LEN} bytes: {self.name!r}")
        return _pack(_DIR_ENTRY_STRUCT, "directory entry", self.inode, raw_name)

    @classmethod
    def unpack(cls, data: bytes) -> DirEntry:
        inode, raw_name = _unpack_from(_DIR_ENTRY_STRUCT, data, "directory entry")
        return cls(inode, raw_name.split(b"\0", 1)[0].decode("latin-1"))


def dir_entries_from_block(data: bytes) -> list[DirEntry]:
    """Decode every entry slot of a directory data block."""
    if len(data) < BLOCK_SIZE:
        raise VfsError(f"directory block needs {BLOCK_SIZE} bytes, got {len(data)}")
    return [
        DirEntry.unpack(data[start : start + DIR_ENTRY_SIZE])
        for start in range(0, DIR_ENTRIES_PER_BLOCK * DIR_ENTRY_SIZE, DIR_ENTRY_SIZE)
    ]


def dir_entries_to_block(entries: Iterable[DirEntry]) -> bytes:
    """Encode entries into a directory block, filling the rest with free slots."""
    packed = [entry.pack() for entry in entries]
    if len(packed) > DIR_ENTRIES_PER_BLOCK:
        raise VfsError(f"a directory block holds at most {DIR_ENTRIES_PER_BLOCK} entries")
    return b"".join(packed).ljust(BLOCK_SIZE, b"\0")