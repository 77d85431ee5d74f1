"""Whole-block reads and writes on an image file."""

from __future__ import annotations

import os

from .layout import BLOCK_SIZE, VfsError


def read_block(image_path: str | os.PathLike, block_number: int) -> bytes:
    """Return the BLOCK_SIZE bytes of a block of the image."""
    if block_number < 0:
        raise VfsError(f"negative block number ({block_number})")
    try:
        with open(image_path, "rb") as image:
            image.seek(block_number * BLOCK_SIZE)
            data = image.read(BLOCK_SIZE)
    except OSError as exc:
        raise VfsError(f"cannot read block {block_number} of {image_path}: {exc}") from exc
    if len(data) != BLOCK_SIZE:
        raise VfsError(f"short read of block {block_number} of {image_path}")
    return data


def write_block(image_path: str | os.PathLike, block_number: int, data: bytes) -> None:
    """Write a block of an existing image; shorter data is padded with zeros."""
    if len(data) > BLOCK_SIZE:
        raise ValueError(f"block data is {len(data)} bytes, more than {BLOCK_SIZE}")
    if block_number < 0:
        raise VfsError(f"negative block number ({block_number})")
    payload = bytes(data).ljust(BLOCK_SIZE, b"\0")
    try:
        with open(image_path, "r+b") as image:
            image.seek(block_number * BLOCK_SIZE)
            image.write(payload)
    except OSError as exc:
        raise VfsError(f"cannot write block {block_number} of {image_path}: {exc}") from exc


def create_block_device(image_path: str | os.PathLike, total_blocks: int, block_size: int) -> None:
    """Create a new zero-filled image; fails if the file already exists."""
    if not 0 < block_size <= BLOCK_SIZE:
        raise ValueError(f"block size must be between 1 and {BLOCK_SIZE}")
    zero = bytes(block_size)
    try:
        fd = os.open(image_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "wb") as image:
            for _ in range(total_blocks):
                image.write(zero)
    except OSError as exc:
        raise VfsError(f"cannot create block device {image_path}: {exc}") from exc