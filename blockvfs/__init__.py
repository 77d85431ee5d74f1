"""A small single-directory filesystem kept in a block image file, with command-line tools."""

__version__ = "0.1.0"