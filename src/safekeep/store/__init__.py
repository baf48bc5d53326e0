"""Account persistence backends for safekeep."""

from .base import SafeStore
from .json_file import JsonFileSafeStore
from .memory import MemorySafeStore

__all__ = ["JsonFileSafeStore", "MemorySafeStore", "SafeStore"]
