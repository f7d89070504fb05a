"""Command line interface."""

from .commands import main, main_async
from .parser import create_parser

__all__ = ["create_parser", "main", "main_async"]
