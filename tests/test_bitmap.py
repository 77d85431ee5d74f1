import pytest

from blockvfs.bitmap import bitmap_free_block, bitmap_set_first_free, format_bitmap_block
from blockvfs.blockdev import create_block_device, read_block, write_block
from blockvfs.layout import (
    BITS_PER_BLOCK,
    BLOCK_SIZE,
    INODE_SIZE,
    INODES_PER_BLOCK,
    MAGIC_NUMBER,
    NoSpaceError,
    Superblock,
    VfsError,
)
from blockvfs.superblock import read_superblock, write_superblock

TOTAL_BLOCKS = 100
INODE_COUNT = 32


def _fresh_superblock():
    inode_blocks = INODE_COUNT // INODES_PER_BLOCK
    sb = Superblock(
        magic=MAGIC_NUMBER,
        block_size=BLOCK_SIZE,
        total_blocks=TOTAL_BLOCKS,
        superblock_blocks=1,
        inode_blocks=inode_blocks,
        bitmap_blocks=1,
        free_blocks=TOTAL_BLOCKS,
        inode_size=INODE_SIZE,
        inode_count=INODE_COUNT,
        free_inodes=INODE_COUNT,
        inode_start=1,
        bitmap_start=1 + inode_blocks,
        data_start=2 + inode_blocks,
    )
    sb.bitmap_zeroes[0] = BITS_PER_BLOCK - sb.data_start
    return sb


@pytest.fixture
def raw_image(tmp_path):
    path = tmp_path / "disk.img"
    create_block_device(path, TOTAL_BLOCKS, BLOCK_SIZE)
    write_superblock(path, _fresh_superblock())
    return path


@pytest.fixture
def image(raw_image):
    for _ in range(_fresh_superblock().data_start):
        bitmap_set_first_free(raw_image)
    return raw_image


def test_metadata_blocks_allocated_in_order(raw_image):
    sb = _fresh_superblock()
    allocated = [bitmap_set_first_free(raw_image) for _ in range(sb.data_start)]
    assert allocated == list(range(sb.data_start))
    assert read_superblock(raw_image).free_blocks == TOTAL_BLOCKS - sb.data_start


def test_bits_are_most_significant_first(image):
    sb = read_superblock(image)
    assert read_block(image, sb.bitmap_start)[0] == 0xF0


def test_set_first_free_updates_superblock(image):
    before = read_superblock(image)
    block = bitmap_set_first_free(image)
    after = read_superblock(image)
    assert block == before.data_start
    assert after.free_blocks == before.free_blocks - 1
    assert after.bitmap_zeroes[0] == before.bitmap_zeroes[0] - 1


def test_free_block_round_trip(image):
    bitmap_set_first_free(image)
    second = bitmap_set_first_free(image)
    write_block(image, second, b"\x5a" * BLOCK_SIZE)
    before = read_superblock(image)

    assert bitmap_free_block(image, second) is True
    after = read_superblock(image)
    assert read_block(image, second) == bytes(BLOCK_SIZE)
    assert after.free_blocks == before.free_blocks + 1
    assert after.bitmap_zeroes[0] == before.bitmap_zeroes[0] + 1
    assert bitmap_set_first_free(image) == second


def test_free_block_already_free(image):
    bitmap_set_first_free(image)
    second = bitmap_set_first_free(image)
    assert bitmap_free_block(image, second) is True
    before = read_superblock(image)
    assert bitmap_free_block(image, second) is False
    assert read_superblock(image) == before


@pytest.mark.parametrize("block", [0, 1, 3, 4, TOTAL_BLOCKS, TOTAL_BLOCKS + 5])
def test_free_block_rejects_invalid_numbers(image, block):
    before = read_superblock(image)
    with pytest.raises(VfsError):
        bitmap_free_block(image, block)
    assert read_superblock(image) == before


def test_allocates_every_block_then_runs_out(image):
    sb = read_superblock(image)
    allocated = [bitmap_set_first_free(image) for _ in range(sb.free_blocks)]
    assert allocated == list(range(sb.data_start, TOTAL_BLOCKS))
    assert read_superblock(image).free_blocks == 0
    with pytest.raises(NoSpaceError):
        bitmap_set_first_free(image)


def test_block_beyond_total_is_refused(image):
    sb = read_superblock(image)
    for _ in range(sb.free_blocks):
        bitmap_set_first_free(image)
    sb = read_superblock(image)
    sb.free_blocks = 5
    write_superblock(image, sb)
    with pytest.raises(VfsError) as info:
        bitmap_set_first_free(image)
    assert not isinstance(info.value, NoSpaceError)
    assert read_superblock(image).free_blocks == 5


def test_inconsistent_zero_counters(image):
    sb = read_superblock(image)
    sb.bitmap_zeroes = [0] * len(sb.bitmap_zeroes)
    write_superblock(image, sb)
    with pytest.raises(VfsError) as info:
        bitmap_set_first_free(image)
    assert not isinstance(info.value, NoSpaceError)


def test_format_bitmap_single_byte():
    assert format_bitmap_block(bytes([0xF0]), 8) == "####....\n"


def test_format_bitmap_wraps_rows():
    text = format_bitmap_block(bytes(BLOCK_SIZE), 70)
    assert text == "." * 64 + "\n" + "." * 6 + "\n"


def test_format_bitmap_exact_row():
    text = format_bitmap_block(b"\xff" * 8, 64)
    assert text == "#" * 64 + "\n"


def test_format_bitmap_empty():
    assert format_bitmap_block(bytes(BLOCK_SIZE), 0) == ""