#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Limitless Sync – v0.1.0

Pulls lifelogs and Ask AI chats from the Limitless API into markdown files
inside a local folder (an Obsidian vault, typically).
"""

from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .api import ApiClient
from .config import ChatFileFormat, Settings, load_settings
from .errors import ApiError
from .models import Chat
from .render import format_chat
from .store import FileSystemStore
from .sync import SyncManager
from .utils import get_tz, progress_print

__version__ = "0.1.0"


# ── Command Handlers ────────────────────────────────────────────────────────
def build_manager(args, settings: Settings) -> SyncManager:
    client = ApiClient(verbose=args.verbose, quiet=args.quiet)
    store = FileSystemStore(Path(settings.vault_path))
    return SyncManager(client, store, settings, verbose=args.verbose, quiet=args.quiet)

def handle_lifelogs(args, settings: Settings) -> int:
    result = build_manager(args, settings).sync_lifelogs()
    return 0 if result.ok else 1

def handle_chats(args, settings: Settings) -> int:
    if not settings.sync_chats:
        progress_print("Chat sync is disabled (enable it in settings or pass --sync-chats).", args.quiet)
    result = build_manager(args, settings).sync_chats()
    return 0 if result.ok else 1

def handle_all(args, settings: Settings) -> int:
    progress_print("Starting data fetch...", args.quiet)
    lifelogs, chats = build_manager(args, settings).sync_all()
    return 0 if lifelogs.ok and chats.ok else 1

def handle_get_chat(args, settings: Settings) -> int:
    client = ApiClient(api_key=settings.api_key, verbose=args.verbose, quiet=args.quiet)
    tz = get_tz(settings.timezone)
    data = client.get_chat(args.id, tz.key)
    if args.raw:
        print(json.dumps(data, indent=2))
    else:
        print(format_chat(Chat.from_dict(data), tz))
    return 0

def handle_delete_chat(args, settings: Settings) -> int:
    client = ApiClient(api_key=settings.api_key, verbose=args.verbose, quiet=args.quiet)
    client.delete_chat(args.id)
    progress_print(f"Deleted chat {args.id}", args.quiet)
    return 0


# ── CLI Setup ────────────────────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="limitless-sync", description="Limitless Sync - mirror lifelogs and chats into markdown files")

    parser.add_argument("-v","--verbose", action="store_true", help="Enable verbose output for debugging.")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress messages to stderr.")
    parser.add_argument("--config", type=Path, help="Settings file (default: $LIMITLESS_SYNC_CONFIG or ~/.limitless/sync.json).")
    parser.add_argument("--vault", type=str, help="Root folder that note paths are relative to.")
    parser.add_argument("--timezone", type=str, help="IANA timezone for dates and timestamps (default: the host timezone).")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subs = parser.add_subparsers(dest="cmd", title="Commands", required=True)

    def lifelog_args(p):
        p.add_argument("--folder", type=str, help="Folder for lifelog notes, relative to the vault.")
        p.add_argument("--start-date", type=str, metavar="YYYY-MM-DD", help="First day to sync when no lifelog notes exist yet.")

    def chat_args(p):
        p.add_argument("--chat-folder", type=str, help="Folder for chat notes, relative to the vault.")
        p.add_argument("--format", dest="chat_file_format", choices=[f.value for f in ChatFileFormat], help="How chat notes are organised.")
        p.add_argument("--max-chats", type=int, help="Maximum number of chats to sync per run (clamped to 1-200).")
        p.add_argument("--sync-chats", action=argparse.BooleanOptionalAction, default=None, help="Enable or disable chat sync for this run.")

    p_lifelogs = subs.add_parser("lifelogs", help="Sync lifelogs, one note per day.")
    lifelog_args(p_lifelogs)
    p_lifelogs.set_defaults(func=handle_lifelogs)

    p_chats = subs.add_parser("chats", help="Sync Ask AI chats.")
    chat_args(p_chats)
    p_chats.set_defaults(func=handle_chats)

    p_all = subs.add_parser("all", help="Sync lifelogs and chats concurrently.")
    lifelog_args(p_all)
    chat_args(p_all)
    p_all.set_defaults(func=handle_all)

    p_chat = subs.add_parser("chat", help="Print a single chat as markdown.")
    p_chat.add_argument("id", type=str, help="The ID of the chat to retrieve.")
    p_chat.add_argument("--raw", action="store_true", help="Output raw JSON instead of formatted markdown.")
    p_chat.set_defaults(func=handle_get_chat)

    p_delete = subs.add_parser("delete-chat", help="Delete a chat on the server.")
    p_delete.add_argument("id", type=str, help="The ID of the chat to delete.")
    p_delete.set_defaults(func=handle_delete_chat)

    return parser

def resolve_settings(args) -> Settings:
    settings = load_settings(args.config)
    return settings.replace(
        vault_path=args.vault,
        timezone=args.timezone,
        folder_path=getattr(args, "folder", None),
        start_date=getattr(args, "start_date", None),
        chat_folder_path=getattr(args, "chat_folder", None),
        chat_file_format=getattr(args, "chat_file_format", None),
        max_chats_per_sync=getattr(args, "max_chats", None),
        sync_chats=getattr(args, "sync_chats", None),
    )

def main(argv: Optional[List[str]]=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = resolve_settings(args)
    except ValueError as e:
        parser.error(str(e))

    if not settings.api_key and args.cmd in ("chat", "delete-chat"):
        parser.error("Missing API key (set LIMITLESS_API_KEY or api_key in the settings file).")

    try:
        return args.func(args, settings)
    except ApiError as e:
        print(f"API error: {e}", file=sys.stderr)
        return 1

if __name__=="__main__":
    sys.exit(main())
