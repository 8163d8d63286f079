"""HOUSEEDGE Interfaces - command line."""

from .cli_app import cli, main

__all__ = ["cli", "main"]
