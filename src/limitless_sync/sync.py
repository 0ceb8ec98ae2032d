# -*- coding: utf-8 -*-
"""
Lifelog and chat sync.

Lifelogs are written one file per day (`{folder}/YYYY-MM-DD.md`). Nothing about
past runs is stored besides those files: the next run resumes from the most
recent day file it finds, re-fetching that day because it may have been
written before the device finished syncing to the cloud.

Chats are walked newest first, up to `max_chats_per_sync` per run, and a file
is only written when its rendered text differs from what is on disk.
"""

from __future__ import annotations
import concurrent.futures
import re
import sys
import traceback
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional

from .api import ApiClient
from .config import ChatFileFormat, Settings
from .errors import ApiError
from .models import Chat, Lifelog
from .render import format_chat, format_lifelogs
from .store import LocalStore, join_path, normalize_path
from .utils import daterange, eprint, get_tz, localize, parse_date_name, progress_print

UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
MAX_FILENAME_LEN      = 100


def sanitize_filename(name: str) -> str:
    return UNSAFE_FILENAME_CHARS.sub("_", name)[:MAX_FILENAME_LEN]


@dataclass
class SyncResult:
    processed: int = 0
    written: int = 0
    unchanged: int = 0
    failed: int = 0
    days: List[date] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SyncManager:
    def __init__(self, client: ApiClient, store: LocalStore, settings: Settings,
                 verbose: bool=False, quiet: bool=False,
                 notify: Optional[Callable[[str], None]]=None):
        self.client = client
        self.store = store
        self.verbose = verbose
        self.quiet = quiet
        self.notify = notify or (lambda msg: progress_print(msg, self.quiet))
        self.update_settings(settings)

    def _log(self, msg: str):
        eprint(f"[Sync] {msg}", self.verbose)

    def update_settings(self, settings: Settings):
        self.settings = settings
        self.tz = get_tz(settings.timezone)
        self.client.set_api_key(settings.api_key)

    def _report_failure(self, what: str, e: Exception):
        print(f"Error syncing {what}: {e}", file=sys.stderr)
        eprint(traceback.format_exc(), self.verbose)

    # ── Lifelogs ────────────────────────────────────────────────────────────
    def last_synced_date(self) -> Optional[date]:
        """Most recent `YYYY-MM-DD.md` directly inside the lifelog folder."""
        folder = normalize_path(self.settings.folder_path)
        latest: Optional[date] = None
        for path in self.store.list(folder):
            parent, _, name = path.rpartition("/")
            if parent != folder or not name.endswith(".md"):
                continue
            d = parse_date_name(name[:-3])
            if d is not None and (latest is None or d > latest):
                latest = d
        return latest

    def sync_lifelogs(self, today: Optional[date]=None) -> SyncResult:
        result = SyncResult()
        if not self.settings.api_key:
            self.notify("Please set your Limitless API key in settings")
            return result

        try:
            folder = normalize_path(self.settings.folder_path)
            self.store.ensure_folder(folder)

            start = self.last_synced_date() or self.settings.default_start_date
            end = today or datetime.now(self.tz).date()
            self._log(f"Lifelog range {start} to {end}")

            self.notify("Starting Limitless lifelog sync...")
            for day in daterange(start, end):
                raw = self.client.get_lifelogs(day, self.tz.key)
                result.days.append(day)
                if not raw:
                    continue
                lifelogs = [Lifelog.from_dict(lg) for lg in raw]
                self.store.write(join_path(folder, f"{day.isoformat()}.md"), format_lifelogs(lifelogs, self.tz))
                result.processed += len(lifelogs)
                result.written += 1
                self.notify(f"Synced entries for {day.isoformat()}")

            self.notify("Limitless lifelog sync complete!")
        except (ApiError, OSError, ValueError, TypeError) as e:
            result.error = e
            self._report_failure("lifelogs", e)
            self.notify("Error syncing Limitless lifelogs. Check logs for details.")
        return result

    # ── Chats ───────────────────────────────────────────────────────────────
    def chat_file_path(self, chat: Chat) -> str:
        folder = normalize_path(self.settings.chat_folder_path)
        fmt = self.settings.chat_file_format
        if fmt is ChatFileFormat.PER_CHAT:
            title = sanitize_filename(chat.summary or f"Chat {chat.id}")
            return join_path(folder, f"{title} - {chat.id[:8]}.md")
        created = localize(chat.created_at, self.tz)
        if fmt is ChatFileFormat.DAILY:
            return join_path(folder, f"{created:%Y-%m-%d}-Chats.md")
        return join_path(folder, f"{created:%Y-%m}-Chats.md")

    def process_chat(self, raw: dict) -> bool:
        """Render one chat and write it if it changed. Returns True if written."""
        chat = Chat.from_dict(raw)
        path = self.chat_file_path(chat)
        content = format_chat(chat, self.tz)
        if self.store.read(path) == content:
            self._log(f"Unchanged: {path}")
            return False
        self.store.write(path, content)
        self._log(f"Wrote {path}")
        return True

    def sync_chats(self) -> SyncResult:
        result = SyncResult()
        if not self.settings.sync_chats:
            return result
        if not self.settings.api_key:
            self.notify("Please set your Limitless API key in settings")
            return result

        try:
            self.store.ensure_folder(normalize_path(self.settings.chat_folder_path))
            self.notify("Starting chat sync...")

            chats = self.client.iter_chats(self.settings.max_chats_per_sync, direction="desc", tz_name=self.tz.key)
            for raw in chats:
                try:
                    if self.process_chat(raw):
                        result.written += 1
                    else:
                        result.unchanged += 1
                except (ApiError, OSError, ValueError, TypeError) as e:
                    result.failed += 1
                    chat_id = raw.get("id", "?") if isinstance(raw, dict) else "?"
                    print(f"Error processing chat {chat_id}: {e}", file=sys.stderr)
                    eprint(traceback.format_exc(), self.verbose)
                result.processed += 1

            self.notify(f"Chat sync complete! Processed {result.processed} chats.")
        except (ApiError, OSError, ValueError, TypeError) as e:
            result.error = e
            self._report_failure("chats", e)
            self.notify("Error syncing chats. Check logs for details.")
        return result

    # ── Both ────────────────────────────────────────────────────────────────
    def sync_all(self) -> tuple[SyncResult, SyncResult]:
        """Run lifelog and chat sync side by side; each waits out its own rate limits."""
        with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
            lifelogs = executor.submit(self.sync_lifelogs)
            chats = executor.submit(self.sync_chats)
            return lifelogs.result(), chats.result()
