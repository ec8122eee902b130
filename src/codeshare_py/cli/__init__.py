"""Litestar CLI extensions for codeshare-py."""

from codeshare_py.cli.database import CodeshareCLIPlugin

__all__ = ["CodeshareCLIPlugin"]
