# -*- coding: utf-8 -*-
"""
Local storage for rendered notes.

Paths handed to a store are vault-relative and always use "/" separators,
e.g. "Limitless Lifelogs/2025-02-09.md".
"""

from __future__ import annotations
import re
from pathlib import Path
from typing import List, Optional, Protocol


def normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    path = re.sub(r"/+", "/", path)
    return path.strip("/")

def join_path(folder: str, name: str) -> str:
    folder = normalize_path(folder)
    return f"{folder}/{name}" if folder else name


class LocalStore(Protocol):
    def exists(self, path: str) -> bool: ...
    def ensure_folder(self, path: str) -> None: ...
    def read(self, path: str) -> Optional[str]: ...  # None when the file does not exist
    def write(self, path: str, text: str) -> None: ...
    def list(self, prefix: str) -> List[str]: ...  # every file below `prefix`, at any depth


class FileSystemStore:
    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    def _resolve(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def ensure_folder(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def read(self, path: str) -> Optional[str]:
        try:
            with self._resolve(path).open(encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def write(self, path: str, text: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="") as f:
            f.write(text)

    def list(self, prefix: str) -> List[str]:
        base = self._resolve(prefix)
        if not base.is_dir():
            return []
        return sorted(p.relative_to(self.root).as_posix() for p in base.rglob("*") if p.is_file())
