"""Directory adapter registry (in-memory by default)."""

from checkout.directory.memory_adapter import InMemoryDirectory
from checkout.directory.port import Directory

_current_directory: Directory | None = None


def get_directory() -> Directory:
    global _current_directory
    if _current_directory is None:
        _current_directory = InMemoryDirectory()
    return _current_directory


def set_directory(directory: Directory) -> None:
    global _current_directory
    _current_directory = directory


def reset_directory() -> None:
    global _current_directory
    _current_directory = None
