import re
import time
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from blockvfs.layout import INODE_MODE_DIR, INODE_MODE_FILE, Inode
from blockvfs.listing import (
    format_inode,
    str_file_permissions,
    str_file_type,
    str_group,
    str_timestamp,
    str_user,
)


@pytest.mark.parametrize(
    "mode, expected",
    [
        (INODE_MODE_DIR | 0o755, "d"),
        (INODE_MODE_FILE | 0o644, "-"),
        (0, "?"),
    ],
)
def test_str_file_type(mode, expected):
    assert str_file_type(mode) == expected


def test_permissions_all_and_none():
    assert str_file_permissions(0o777) == "rwxrwxrwx"
    assert str_file_permissions(0) == "---------"
    assert str_file_permissions(INODE_MODE_FILE | 0o640) == "rw-r-----"


@pytest.mark.parametrize("bit", range(9))
def test_permissions_single_bit(bit):
    text = str_file_permissions(1 << (8 - bit))
    assert text[bit] == "rwxrwxrwx"[bit]
    assert text.count("-") == 8


def test_str_user_known():
    with patch("pwd.getpwuid", return_value=SimpleNamespace(pw_name="alice")):
        assert str_user(1000) == "alice"


def test_str_user_unknown_falls_back_to_number():
    with patch("pwd.getpwuid", side_effect=KeyError(4242)):
        assert str_user(4242) == "4242"


def test_str_group_known_and_unknown():
    with patch("grp.getgrgid", return_value=SimpleNamespace(gr_name="staff")):
        assert str_group(50) == "staff"
    with patch("grp.getgrgid", side_effect=KeyError(4343)):
        assert str_group(4343) == "4343"


def test_str_timestamp_round_trip():
    ts = 1700000000
    text = str_timestamp(ts)
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", text)
    assert int(time.mktime(time.strptime(text, "%Y-%m-%d %H:%M:%S"))) == ts


def test_format_inode_fields():
    inode = Inode(
        mode=INODE_MODE_FILE | 0o640,
        uid=1000,
        gid=50,
        blocks=3,
        size=2500,
        atime=1700000300,
        mtime=1700000200,
        ctime=1700000100,
    )
    with patch("pwd.getpwuid", return_value=SimpleNamespace(pw_name="alice")), patch(
        "grp.getgrgid", return_value=SimpleNamespace(gr_name="staff")
    ):
        line = format_inode(inode, 7, "notes.txt")

    fields = line.split()
    assert line[:4] == "   7"
    assert len(fields) == 13
    assert fields[0] == "7"
    assert fields[1] == "-" + str_file_permissions(0o640)
    assert fields[2] == "alice"
    assert fields[3] == "staff"
    assert fields[4] == "3"
    assert fields[5] == "2500"
    assert " ".join(fields[6:8]) == str_timestamp(inode.ctime)
    assert " ".join(fields[8:10]) == str_timestamp(inode.mtime)
    assert " ".join(fields[10:12]) == str_timestamp(inode.atime)
    assert fields[12] == "notes.txt"
    assert "alice".ljust(10) + " " + "staff".ljust(10) + " " in line


def test_format_inode_directory():
    inode = Inode(mode=INODE_MODE_DIR | 0o755, uid=0, gid=0, blocks=1, size=1024)
    with patch("pwd.getpwuid", side_effect=KeyError(0)), patch(
        "grp.getgrgid", side_effect=KeyError(0)
    ):
        line = format_inode(inode, 1, ".")
    fields = line.split()
    assert fields[1] == "d" + str_file_permissions(0o755)
    assert fields[2] == "0"
    assert fields[-1] == "."