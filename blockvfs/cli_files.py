"""Commands that create, read, fill and remove files inside an image."""

from __future__ import annotations

import os
import sys
from functools import partial
from typing import Sequence

from .data import inode_read_data, inode_write_data
from .directory import add_dir_entry, dir_lookup, name_is_valid, remove_dir_entry
from .inode import (
    create_empty_file_in_free_inode,
    free_inode,
    inode_trunc_data,
    read_inode,
    write_inode,
)
from .layout import BLOCK_SIZE, DEFAULT_PERM, INODE_MODE_FILE, Inode, VfsError
from .superblock import read_superblock

_MULTI_FILE_USAGE = "Usage: {} <image.vfs> <file1> [file2] ..."


def _args(argv: Sequence[str] | None) -> list[str]:
    return list(sys.argv[1:] if argv is None else argv)


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def _write_bytes(data: bytes) -> None:
    """Write raw bytes to standard output."""
    out = sys.stdout
    buffer = getattr(out, "buffer", None)
    if buffer is None:
        out.write(data.decode("utf-8", "replace"))
        return
    out.flush()
    buffer.write(data)
    buffer.flush()


def _superblock_ok(image_path: str) -> bool:
    try:
        read_superblock(image_path)
    except VfsError:
        _err("Error: could not read the superblock")
        return False
    return True


def _exists(image_path: str, filename: str) -> bool:
    """True when the name is taken; a failed lookup counts as taken."""
    try:
        return dir_lookup(image_path, filename) != 0
    except VfsError:
        return True


def _regular_file(image_path: str, filename: str) -> tuple[int, Inode] | None:
    """Find a regular file by name, reporting why it can not be used."""
    try:
        inode_nbr = dir_lookup(image_path, filename)
    except VfsError:
        _err(f"Error: the file '{filename}' does not exist")
        return None
    try:
        inode = read_inode(image_path, inode_nbr)
    except VfsError:
        _err(f"Error: could not read the inode of '{filename}'")
        return None
    if inode.mode & INODE_MODE_FILE != INODE_MODE_FILE:
        _err(f"Error: '{filename}' is not a regular file")
        return None
    return inode_nbr, inode


def cat_main(argv: Sequence[str] | None = None) -> int:
    """Print the contents of files: vfs-cat <image> <file>..."""
    args = _args(argv)
    if len(args) < 2:
        _err(_MULTI_FILE_USAGE.format("vfs-cat"))
        return 1
    image_path, *filenames = args
    if not _superblock_ok(image_path):
        return 1

    status = 0
    for filename in filenames:
        if not name_is_valid(filename):
            _err(f"Error: invalid file name: '{filename}'")
            status = 1
            continue
        found = _regular_file(image_path, filename)
        if found is None:
            status = 1
            continue
        inode_nbr, inode = found
        if inode.size == 0:
            continue
        try:
            content = inode_read_data(image_path, inode_nbr, inode.size, 0)
        except VfsError:
            content = b""
        if not content:
            _err(f"Error: could not read the contents of '{filename}'")
            status = 1
            continue
        # Contents are shown as a C string: output stops at the first NUL byte.
        _write_bytes(content.split(b"\0", 1)[0])
    return status


def copy_main(argv: Sequence[str] | None = None) -> int:
    """Copy a host file into the image: vfs-copy <image> <source> <name>."""
    args = _args(argv)
    if len(args) != 3:
        _err("Usage: vfs-copy <image> <source_file> <destination_name>")
        return 1
    image_path, host_file, dest_name = args

    try:
        read_superblock(image_path)
    except VfsError:
        _err("Error reading the superblock")
        return 1
    if not name_is_valid(dest_name):
        _err(f"Invalid name: {dest_name}")
        return 1
    if _exists(image_path, dest_name):
        _err(f"The name '{dest_name}' already exists in the directory")
        return 1

    try:
        source = open(host_file, "rb")
    except OSError as exc:
        _err(f"Error ({exc.strerror}) opening file {host_file}")
        return 1

    with source:
        try:
            perms = os.fstat(source.fileno()).st_mode & 0o777
        except OSError:
            _err(f"Error getting the size of file {host_file}.")
            return 1
        try:
            new_inode = create_empty_file_in_free_inode(image_path, perms)
        except VfsError:
            _err("Error creating the destination file in the image")
            return 1
        try:
            add_dir_entry(image_path, dest_name, new_inode)
        except VfsError:
            _err(f"Error adding the directory entry for {dest_name}")
            return 1

        offset = 0
        try:
            chunks = iter(partial(source.read, BLOCK_SIZE), b"")
            for chunk in chunks:
                try:
                    written = inode_write_data(image_path, new_inode, chunk, offset)
                except VfsError:
                    written = -1
                if written != len(chunk):
                    _err(
                        f"Error writing data to the image, inode {new_inode}, "
                        f"{len(chunk)} bytes at offset {offset}."
                    )
                    return 1
                offset += len(chunk)
        except OSError:
            _err(f"Error reading source file {host_file}")
            return 1
    return 0


def touch_main(argv: Sequence[str] | None = None) -> int:
    """Create empty files: vfs-touch <image> <file>..."""
    args = _args(argv)
    if len(args) < 2:
        _err(_MULTI_FILE_USAGE.format("vfs-touch"))
        return 1
    image_path, *filenames = args
    if not _superblock_ok(image_path):
        return 1

    status = 0
    for filename in filenames:
        if not name_is_valid(filename):
            _err(f"Error: invalid file name: '{filename}'")
            status = 1
            continue
        if _exists(image_path, filename):
            _err(f"Error: a file with that name already exists: '{filename}'")
            status = 1
            continue
        try:
            new_inode = create_empty_file_in_free_inode(image_path, DEFAULT_PERM)
        except VfsError:
            _err(f"Error: no free inodes to create the file '{filename}'")
            status = 1
            continue
        try:
            add_dir_entry(image_path, filename, new_inode)
        except VfsError:
            _err(f"Error: could not add the file '{filename}' to the root directory")
            try:
                free_inode(image_path, new_inode)
            except VfsError:
                pass
            status = 1
            continue

        if _exists(image_path, filename):
            print(f"File '{filename}' created in image '{image_path}'.")
        else:
            print(f"Verification: file '{filename}' is NOT in the directory (something failed).")
    return status


def rm_main(argv: Sequence[str] | None = None) -> int:
    """Remove files: vfs-rm <image> <file>...; problems are reported, not fatal."""
    args = _args(argv)
    if len(args) < 2:
        _err(_MULTI_FILE_USAGE.format("vfs-rm"))
        return 1
    image_path, *filenames = args
    if not _superblock_ok(image_path):
        return 1

    for filename in filenames:
        if not name_is_valid(filename):
            _err(f"Error: invalid name '{filename}'")
            continue
        found = _regular_file(image_path, filename)
        if found is None:
            continue
        inode_nbr, inode = found
        try:
            inode_trunc_data(image_path, inode)
        except VfsError:
            _err(f"Error: could not truncate '{filename}'")
            continue
        try:
            free_inode(image_path, inode_nbr)
        except VfsError:
            _err(f"Error: could not free the inode of '{filename}'")
            continue
        try:
            remove_dir_entry(image_path, filename)
        except VfsError:
            _err(f"Error: could not remove '{filename}' from the directory")
            continue
        print(f"File '{filename}' removed.")
    return 0


def trunc_main(argv: Sequence[str] | None = None) -> int:
    """Empty files, keeping them: vfs-trunc <image> <file>..."""
    args = _args(argv)
    if len(args) < 2:
        _err(_MULTI_FILE_USAGE.format("vfs-trunc"))
        return 1
    image_path, *filenames = args
    if not _superblock_ok(image_path):
        return 1

    status = 0
    for filename in filenames:
        if not name_is_valid(filename):
            _err(f"Error: invalid name: '{filename}'")
            status = 1
            continue
        found = _regular_file(image_path, filename)
        if found is None:
            status = 1
            continue
        inode_nbr, inode = found
        try:
            inode_trunc_data(image_path, inode)
        except VfsError:
            _err(f"Error: could not truncate '{filename}'")
            status = 1
            continue
        try:
            write_inode(image_path, inode_nbr, inode)
        except VfsError:
            _err(f"Error: could not store the truncated inode of '{filename}'")
            status = 1
            continue
        print(f"File '{filename}' truncated.")
    return status


def write_main(argv: Sequence[str] | None = None) -> int:
    """Write text at the start of a file: vfs-write <image> <file> <text>."""
    args = _args(argv)
    if len(args) != 3:
        _err("Usage: vfs-write <image.vfs> <file> <text>")
        return 1
    image_path, filename, text = args

    try:
        inode_nbr = dir_lookup(image_path, filename)
    except VfsError:
        _err(f"Error: the file '{filename}' does not exist")
        return 1

    payload = os.fsencode(text)
    try:
        written = inode_write_data(image_path, inode_nbr, payload, 0)
    except VfsError:
        written = -1
    if written != len(payload):
        _err(f"Error writing to '{filename}'")
        return 1

    print(f"Text written to '{filename}'.")
    return 0