"""Long-listing style descriptions of inodes."""

from __future__ import annotations

import time

from .layout import INODE_MODE_DIR, INODE_MODE_FILE, Inode

try:
    import pwd
except ImportError:  # platforms without a user database
    pwd = None

try:
    import grp
except ImportError:  # platforms without a group database
    grp = None

_RWX = "rwxrwxrwx"


def str_file_type(mode: int) -> str:
    """'d' for directories, '-' for regular files, '?' otherwise."""
    if mode & INODE_MODE_DIR == INODE_MODE_DIR:
        return "d"
    if mode & INODE_MODE_FILE == INODE_MODE_FILE:
        return "-"
    return "?"


def str_file_permissions(mode: int) -> str:
    """Unix permission string such as 'rwxr-xr-x'."""
    return "".join(
        letter if mode & (1 << (8 - i)) else "-" for i, letter in enumerate(_RWX)
    )


def str_user(uid: int) -> str:
    """User name for `uid`, or the number itself when it is unknown."""
    if pwd is not None:
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError:
            pass
    return str(uid)


def str_group(gid: int) -> str:
    """Group name for `gid`, or the number itself when it is unknown."""
    if grp is not None:
        try:
            return grp.getgrgid(gid).gr_name
        except KeyError:
            pass
    return str(gid)


def str_timestamp(ts: int) -> str:
    """Local time of a Unix timestamp as 'YYYY-MM-DD HH:MM:SS'."""
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))


def format_inode(inode: Inode, inode_nbr: int, filename: str) -> str:
    """One listing line describing a file and its inode."""
    return (
        f"{inode_nbr:4d} {str_file_type(inode.mode)}{str_file_permissions(inode.mode)} "
        f"{str_user(inode.uid):<10} {str_group(inode.gid):<10} "
        f"{inode.blocks:3d} {inode.size:8d} "
        f"{str_timestamp(inode.ctime)} {str_timestamp(inode.mtime)} "
        f"{str_timestamp(inode.atime)} {filename}"
    )