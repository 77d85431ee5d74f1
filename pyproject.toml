[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blockvfs"
version = "0.1.0"
description = "A small single-directory filesystem stored in a block image file, with tools to create, inspect and edit it"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "vfs", "inode", "bitmap", "block device", "disk image"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
vfs-mkfs = "blockvfs.cli_admin:mkfs_main"
vfs-info = "blockvfs.cli_admin:info_main"
vfs-ls = "blockvfs.cli_admin:ls_main"
vfs-lsort = "blockvfs.cli_admin:lsort_main"
vfs-cat = "blockvfs.cli_files:cat_main"
vfs-copy = "blockvfs.cli_files:copy_main"
vfs-touch = "blockvfs.cli_files:touch_main"
vfs-rm = "blockvfs.cli_files:rm_main"
vfs-trunc = "blockvfs.cli_files:trunc_main"
vfs-write = "blockvfs.cli_files:write_main"

[tool.hatch.build.targets.wheel]
packages = ["blockvfs"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
