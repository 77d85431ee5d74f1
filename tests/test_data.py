import pytest

from blockvfs.blockdev import create_block_device
from blockvfs.data import MAX_FILE_SIZE, inode_read_data, inode_write_data
from blockvfs.format import create_root_dir, init_superblock
from blockvfs.inode import create_empty_file_in_free_inode, read_inode
from blockvfs.layout import BLOCK_SIZE, NUM_DIRECT_PTRS, NoSpaceError, VfsError
from blockvfs.superblock import read_superblock


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "fs.img"
    create_block_device(path, 100, BLOCK_SIZE)
    init_superblock(path, 100, 64)
    create_root_dir(path)
    return path


@pytest.fixture
def file_inode(image):
    return create_empty_file_in_free_inode(image, 0o644)


def test_write_then_read_round_trip(image, file_inode):
    payload = b"hello, block world"
    assert inode_write_data(image, file_inode, payload, 0) == len(payload)
    assert inode_read_data(image, file_inode, len(payload), 0) == payload


def test_write_updates_size_and_blocks(image, file_inode):
    payload = bytes(range(256)) * 10
    inode_write_data(image, file_inode, payload, 0)
    inode = read_inode(image, file_inode)
    assert inode.size == len(payload)
    assert inode.blocks == (len(payload) + BLOCK_SIZE - 1) // BLOCK_SIZE


def test_multi_block_round_trip_with_offset(image, file_inode):
    payload = bytes(i % 251 for i in range(3000))
    inode_write_data(image, file_inode, payload, 0)
    assert inode_read_data(image, file_inode, 1500, 1000) == payload[1000:2500]


def test_partial_overwrite_keeps_other_bytes(image, file_inode):
    inode_write_data(image, file_inode, b"a" * 2000, 0)
    inode_write_data(image, file_inode, b"XYZ", 1022)
    data = inode_read_data(image, file_inode, 2000, 0)
    assert data == b"a" * 1022 + b"XYZ" + b"a" * (2000 - 1025)
    assert read_inode(image, file_inode).size == 2000


def test_read_is_clamped_to_file_size(image, file_inode):
    inode_write_data(image, file_inode, b"short", 0)
    assert inode_read_data(image, file_inode, 1000, 2) == b"ort"


def test_read_at_or_past_end_raises(image, file_inode):
    inode_write_data(image, file_inode, b"abc", 0)
    with pytest.raises(VfsError):
        inode_read_data(image, file_inode, 1, 3)


def test_read_empty_file_raises(image, file_inode):
    with pytest.raises(VfsError):
        inode_read_data(image, file_inode, 10, 0)


def test_sparse_write_reads_zeros_before_data(image, file_inode):
    inode_write_data(image, file_inode, b"tail", 3000)
    data = inode_read_data(image, file_inode, 3004, 0)
    assert data == bytes(3000) + b"tail"


def test_write_beyond_max_size_raises(image, file_inode):
    with pytest.raises(VfsError):
        inode_write_data(image, file_inode, b"x", MAX_FILE_SIZE)
    assert read_inode(image, file_inode).blocks == 0


def test_write_without_enough_free_blocks_raises(image, file_inode):
    before = read_superblock(image).free_blocks
    with pytest.raises(NoSpaceError):
        inode_write_data(image, file_inode, bytes(200 * BLOCK_SIZE), 0)
    assert read_superblock(image).free_blocks == before


def test_large_write_uses_indirect_block(image, file_inode):
    before = read_superblock(image).free_blocks
    blocks = NUM_DIRECT_PTRS + 3
    payload = bytes(i % 7 for i in range(blocks * BLOCK_SIZE))
    inode_write_data(image, file_inode, payload, 0)
    inode = read_inode(image, file_inode)
    assert inode.blocks == blocks
    assert inode.indirect > 0
    assert read_superblock(image).free_blocks == before - blocks - 1
    assert inode_read_data(image, file_inode, len(payload), 0) == payload


def test_invalid_inode_raises(image):
    with pytest.raises(VfsError):
        inode_write_data(image, 0, b"x", 0)
    with pytest.raises(VfsError):
        inode_read_data(image, 64, 1, 0)