# -*- coding: utf-8 -*-
"""
Settings for a sync run.

Layering, lowest precedence first:
  1. defaults below
  2. JSON settings file (~/.limitless/sync.json, $LIMITLESS_SYNC_CONFIG, or --config)
  3. LIMITLESS_API_KEY environment variable
  4. command-line flags (applied by the CLI with `Settings.replace`)
"""

from __future__ import annotations
import dataclasses
import json
import os
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .api import clamp_max_chats
from .utils import API_DATE_FMT, eprint

API_KEY_ENV_VAR = "LIMITLESS_API_KEY"
CONFIG_ENV_VAR  = "LIMITLESS_SYNC_CONFIG"
CONFIG_PATH     = Path.home() / ".limitless" / "sync.json"


class ChatFileFormat(Enum):
    PER_CHAT = "per-chat"
    DAILY    = "daily"
    MONTHLY  = "monthly"


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    folder_path: str = "Limitless Lifelogs"
    start_date: str = "2025-02-09"
    chat_folder_path: str = "Limitless Chats"
    sync_chats: bool = False
    chat_file_format: ChatFileFormat = ChatFileFormat.PER_CHAT
    max_chats_per_sync: int = 50
    timezone: str = ""  # empty: host timezone
    vault_path: str = "."

    def __post_init__(self):
        if not isinstance(self.chat_file_format, ChatFileFormat):
            try:
                object.__setattr__(self, "chat_file_format", ChatFileFormat(self.chat_file_format))
            except ValueError:
                choices = ", ".join(f.value for f in ChatFileFormat)
                raise ValueError(f"Invalid chat file format '{self.chat_file_format}' (expected one of: {choices}).")
        object.__setattr__(self, "max_chats_per_sync", clamp_max_chats(self.max_chats_per_sync))
        self.default_start_date  # raises on a malformed date

    @property
    def default_start_date(self) -> date:
        try:
            return datetime.strptime(self.start_date, API_DATE_FMT).date()
        except ValueError:
            raise ValueError(f"Invalid start date '{self.start_date}' (expected YYYY-MM-DD).")

    def replace(self, **changes: Any) -> Settings:
        """Copy with the non-None entries of `changes` applied."""
        return dataclasses.replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Settings:
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            eprint(f"[Config] Ignoring unknown settings: {', '.join(unknown)}", True)
        return cls(**{k: v for k, v in data.items() if k in known})


def load_settings(path: Optional[Path]=None) -> Settings:
    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_VAR) or CONFIG_PATH)

    data: Dict[str, Any] = {}
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse settings file {path}: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"Invalid settings format in {path}, expected a JSON object.")

    env_key = os.environ.get(API_KEY_ENV_VAR)
    if env_key:
        data["api_key"] = env_key
    return Settings.from_dict(data)
