"""Utility helpers for the scanner."""

from .fileio import read_yaml_file, read_yaml_text
from .logger import configure_logging, get_logger

__all__ = [
    "read_yaml_file",
    "read_yaml_text",
    "configure_logging",
    "get_logger",
]
