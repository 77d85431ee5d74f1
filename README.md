# blockvfs

`blockvfs` keeps a small filesystem inside an ordinary image file. The
image is split into 1024-byte blocks:

- block 0 holds the superblock (magic number `0x20250604`);
- the inode table comes next, 16 inodes of 64 bytes per block;
- after the inode table comes the block bitmap (one bit per block, set when
  the block is in use);
- the remaining blocks hold data.

There is a single root directory (inode 1). It holds the entries `.` and
`..` and the files you add. Each file uses up to 7 direct block pointers and
one indirect block of 256 more, so a file holds at most 263 KiB.

File names may use letters, digits, `.`, `_` and `-`, and must be 1 to 27
characters long.

## Installation

```
pip install .
```

## Command-line tools

Create an image of 1000 blocks with room for 64 inodes. The block count
must be at least 50 and below 65536. The inode count must be at least 16 and
below the block count, and is rounded up to fill whole inode blocks. The
image file must not already exist.

```
vfs-mkfs disk.vfs 1000 64
```

Show the superblock and a map of the block bitmap (`#` used, `.` free):

```
vfs-info disk.vfs
```

Create empty files, copy a file in from the host, or write a piece of text
over the start of an existing file:

```
vfs-touch disk.vfs notes.txt todo.txt
vfs-copy disk.vfs /etc/hostname hostname
vfs-write disk.vfs notes.txt "hello"
```

`vfs-copy` gives the new file the permission bits of the host file.
`vfs-touch` creates files with permissions `rw-r-----`.

List the root directory, in directory order or sorted by name. Each line
shows the inode number, type and permissions, owner, group, block count,
size, and the creation, modification and access times. The `.` and `..`
entries are listed too:

```
vfs-ls disk.vfs
vfs-lsort disk.vfs
```

Print file contents, empty files, or remove files:

```
vfs-cat disk.vfs notes.txt hostname
vfs-trunc disk.vfs notes.txt
vfs-rm disk.vfs todo.txt
```

`vfs-cat` stops printing a file at its first NUL byte.

Commands that take several files handle each file in turn and report any
that fail on standard error. `vfs-rm` exits with status 0 even when some
files could not be removed.

## Using the library

The same operations are available from Python. Failures raise
`blockvfs.layout.VfsError`. Running out of free blocks, inodes or directory
slots raises its subclass `blockvfs.layout.NoSpaceError`.

```python
from blockvfs.directory import add_dir_entry, dir_lookup, iter_dir_entries
from blockvfs.inode import create_empty_file_in_free_inode
from blockvfs.data import inode_read_data, inode_write_data

image = "disk.vfs"

inode_nbr = create_empty_file_in_free_inode(image, 0o640)
add_dir_entry(image, "greeting.txt", inode_nbr)
inode_write_data(image, inode_nbr, b"hello, world\n", 0)

assert dir_lookup(image, "greeting.txt") == inode_nbr
print(inode_read_data(image, inode_nbr, 5, 0))

for entry in iter_dir_entries(image):
    print(entry.inode, entry.name)
```

You can also:

- read and print the superblock with `blockvfs.superblock.read_superblock`
  and `blockvfs.superblock.format_superblock`;
- build a directory listing line with `blockvfs.listing.format_inode`;
- create a fresh filesystem in an existing zero-filled image with
  `blockvfs.format.init_superblock` followed by
  `blockvfs.format.create_root_dir`.

## What it does not do

- There is only the root directory. No subdirectories can be created.
- Files cannot be renamed.
- Files cannot be copied back out to the host, except by printing them with
  `vfs-cat`.
- The image cannot be mounted. It is reached only through these commands and
  the library functions.

## Running the tests

```
pip install .[test]
pytest
```