"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import requests

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from limitless_sync.api import clamp_max_chats
from limitless_sync.errors import ApiError, ErrorKind
from limitless_sync.store import normalize_path


class MemoryStore:
    """Dict-backed store that records every write."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self.files: Dict[str, str] = dict(files or {})
        self.folders: set = set()
        self.writes: List[str] = []

    def exists(self, path):
        path = normalize_path(path)
        return path in self.files or path in self.folders

    def ensure_folder(self, path):
        self.folders.add(normalize_path(path))

    def read(self, path):
        return self.files.get(normalize_path(path))

    def write(self, path, text):
        path = normalize_path(path)
        self.files[path] = text
        self.writes.append(path)

    def list(self, prefix):
        prefix = normalize_path(prefix) + "/"
        return sorted(p for p in self.files if p.startswith(prefix))


class FakeClient:
    """Stands in for ApiClient in sync tests: canned lifelogs per day, canned chats."""

    def __init__(self, lifelogs_by_day=None, chats=None, fail_on_day=None):
        self.key = ""
        self.lifelogs_by_day = lifelogs_by_day or {}
        self.chats = chats or []
        self.fail_on_day = fail_on_day
        self.days_requested = []
        self.chat_calls = []

    def set_api_key(self, api_key):
        self.key = api_key

    def get_lifelogs(self, day, tz_name):
        self.days_requested.append(day)
        if day == self.fail_on_day:
            raise ApiError("boom", ErrorKind.HTTP, 500)
        return list(self.lifelogs_by_day.get(day, []))

    def iter_chats(self, max_chats, direction="desc", tz_name=None):
        self.chat_calls.append((max_chats, direction, tz_name))
        return iter(self.chats[:clamp_max_chats(max_chats)])


@pytest.fixture
def make_response():
    """Build real requests.Response objects for patched sessions."""

    def _make(status: int = 200, body=None, headers: Optional[Dict[str, str]] = None, text: Optional[str] = None):
        resp = requests.Response()
        resp.status_code = status
        if text is None:
            text = json.dumps(body) if body is not None else ""
        resp._content = text.encode("utf-8")
        resp.encoding = "utf-8"
        resp.headers.update(headers or {})
        resp.url = "https://api.limitless.ai/v1/test"
        return resp

    return _make


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in ["LIMITLESS_API_KEY", "LIMITLESS_SYNC_CONFIG"]:
        monkeypatch.delenv(var, raising=False)
    yield
