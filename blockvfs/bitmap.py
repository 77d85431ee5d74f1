"""Allocation bitmap of data blocks."""

from __future__ import annotations

import os

from .blockdev import read_block, write_block
from .layout import BITS_PER_BLOCK, BLOCK_SIZE, NoSpaceError, VfsError
from .superblock import read_superblock, write_superblock

_ROW_WIDTH = 64


def _mask(bit_index: int) -> int:
    # Bits are numbered from the most significant one of each byte.
    return 0x80 >> bit_index


def bitmap_free_block(image_path: str | os.PathLike, block_nbr: int) -> bool:
    """Mark a data block free and zero it.

    Returns False, changing nothing, when the block was already free.
    """
    sb = read_superblock(image_path)
    # The first data block holds the root directory and is never released.
    if block_nbr <= sb.data_start or block_nbr >= sb.total_blocks:
        raise VfsError(f"invalid block number ({block_nbr})")

    bitmap_offset, bit_in_block = divmod(block_nbr, BITS_PER_BLOCK)
    byte_index, bit_index = divmod(bit_in_block, 8)
    mask = _mask(bit_index)

    bitmap_block_num = sb.bitmap_start + bitmap_offset
    bitmap = bytearray(read_block(image_path, bitmap_block_num))
    if not bitmap[byte_index] & mask:
        return False

    bitmap[byte_index] &= ~mask & 0xFF
    write_block(image_path, bitmap_block_num, bitmap)
    write_block(image_path, block_nbr, bytes(BLOCK_SIZE))

    sb.bitmap_zeroes[bitmap_offset] += 1
    sb.free_blocks += 1
    write_superblock(image_path, sb)
    return True


def bitmap_set_first_free(image_path: str | os.PathLike) -> int:
    """Mark the first free block as used and return its number."""
    sb = read_superblock(image_path)
    if sb.free_blocks == 0:
        raise NoSpaceError("no free blocks")

    bitmap_offset = next(
        (i for i, zeroes in enumerate(sb.bitmap_zeroes[: sb.bitmap_blocks]) if zeroes > 0),
        None,
    )
    if bitmap_offset is None:
        raise VfsError("inconsistency: bitmap_zeroes shows no free blocks")

    bitmap_block_num = sb.bitmap_start + bitmap_offset
    bitmap = bytearray(read_block(image_path, bitmap_block_num))

    byte_index = next((i for i, byte in enumerate(bitmap) if byte != 0xFF), None)
    if byte_index is None:
        raise VfsError("inconsistency: bitmap block is full but metadata shows free space")

    bit_index = next(b for b in range(8) if not bitmap[byte_index] & _mask(b))
    block_number = bitmap_offset * BITS_PER_BLOCK + byte_index * 8 + bit_index
    if block_number >= sb.total_blocks:
        raise VfsError(f"block number out of range ({block_number})")

    bitmap[byte_index] |= _mask(bit_index)
    write_block(image_path, bitmap_block_num, bitmap)

    sb.bitmap_zeroes[bitmap_offset] -= 1
    sb.free_blocks -= 1
    write_superblock(image_path, sb)
    return block_number


def format_bitmap_block(buffer: bytes, size: int) -> str:
    """Render the first `size` bits of a bitmap: '#' used, '.' free, 64 per row."""
    cells = "".join(
        "#" if buffer[i // 8] & _mask(i % 8) else "." for i in range(size)
    )
    return "".join(
        cells[start : start + _ROW_WIDTH] + "\n" for start in range(0, size, _ROW_WIDTH)
    )