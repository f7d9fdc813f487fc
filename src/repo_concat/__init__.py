"""Flatten a local folder or a remote repository into a single text file."""

__version__ = "0.1.0"
