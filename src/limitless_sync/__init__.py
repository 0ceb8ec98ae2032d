"""Public API for limitless_sync package."""

from .api import ApiClient
from .cli import main
from .errors import ApiError, ErrorKind
from .store import FileSystemStore, LocalStore
from .sync import SyncManager, SyncResult

__all__ = ["ApiClient", "ApiError", "ErrorKind", "FileSystemStore", "LocalStore", "SyncManager", "SyncResult", "main"]
