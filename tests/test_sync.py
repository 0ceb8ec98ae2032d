from __future__ import annotations

from datetime import date

import pytest

from conftest import FakeClient, MemoryStore
from limitless_sync.config import Settings
from limitless_sync.errors import ErrorKind
from limitless_sync.models import Chat
from limitless_sync.store import FileSystemStore
from limitless_sync.sync import SyncManager, sanitize_filename

D = date


def chat(id, summary=None, created="2025-02-09T10:00:00Z", text="hi"):
    return {
        "id": id,
        "summary": summary,
        "createdAt": created,
        "startedAt": created,
        "visibility": "private",
        "messages": [{"id": f"{id}-m", "text": text, "createdAt": created, "user": {"role": "user"}}],
    }


def manager(client, store, notices=None, **settings):
    base = {"api_key": "k", "start_date": "2025-02-01", "timezone": "UTC"}
    base.update(settings)
    notify = notices.append if notices is not None else (lambda msg: None)
    return SyncManager(client, store, Settings(**base), notify=notify)


# ── Lifelogs ─────────────────────────────────────────────────────────────────
def test_first_sync_starts_at_default_date():
    client = FakeClient(lifelogs_by_day={D(2025, 2, 2): [{"markdown": "entry"}]})
    store = MemoryStore()
    result = manager(client, store).sync_lifelogs(today=D(2025, 2, 3))

    assert client.days_requested == [D(2025, 2, 1), D(2025, 2, 2), D(2025, 2, 3)]
    assert store.files == {"Limitless Lifelogs/2025-02-02.md": "entry"}
    assert result.ok
    assert result.written == 1
    assert "Limitless Lifelogs" in store.folders


def test_resume_from_latest_day_file():
    store = MemoryStore({
        "Limitless Lifelogs/2025-02-05.md": "old",
        "Limitless Lifelogs/2025-02-07.md": "old",
        "Limitless Lifelogs/notes.md": "x",
        "Limitless Lifelogs/2025-13-40.md": "not a date",
        "Limitless Lifelogs/sub/2025-03-01.md": "nested",
        "Limitless Lifelogs/2025-02-08.txt": "wrong extension",
    })
    client = FakeClient()
    mgr = manager(client, store)

    assert mgr.last_synced_date() == D(2025, 2, 7)
    mgr.sync_lifelogs(today=D(2025, 2, 9))
    assert client.days_requested == [D(2025, 2, 7), D(2025, 2, 8), D(2025, 2, 9)]
    assert min(client.days_requested) >= D(2025, 2, 7)


def test_each_day_visited_once_and_files_joined():
    days = {
        D(2025, 2, 1): [{"markdown": "a\n\nb"}, {"title": "T", "contents": [{"type": "paragraph", "content": "p"}]}],
    }
    client = FakeClient(lifelogs_by_day=days)
    store = MemoryStore()
    manager(client, store).sync_lifelogs(today=D(2025, 2, 4))

    assert len(client.days_requested) == len(set(client.days_requested)) == 4
    assert store.files["Limitless Lifelogs/2025-02-01.md"] == "a\nb\n\n# T\n\n\np"


def test_empty_day_leaves_existing_file_alone():
    store = MemoryStore({"Limitless Lifelogs/2025-02-03.md": "keep me"})
    manager(FakeClient(), store).sync_lifelogs(today=D(2025, 2, 3))
    assert store.files["Limitless Lifelogs/2025-02-03.md"] == "keep me"
    assert store.writes == []


def test_lifelogs_are_overwritten_without_comparison():
    store = MemoryStore({"Limitless Lifelogs/2025-02-03.md": "same"})
    client = FakeClient(lifelogs_by_day={D(2025, 2, 3): [{"markdown": "same"}]})
    manager(client, store).sync_lifelogs(today=D(2025, 2, 3))
    assert store.writes == ["Limitless Lifelogs/2025-02-03.md"]


def test_fetch_failure_keeps_earlier_days_and_stops():
    client = FakeClient(
        lifelogs_by_day={D(2025, 2, 1): [{"markdown": "one"}], D(2025, 2, 3): [{"markdown": "three"}]},
        fail_on_day=D(2025, 2, 2),
    )
    store = MemoryStore()
    notices = []
    result = manager(client, store, notices).sync_lifelogs(today=D(2025, 2, 3))

    assert not result.ok
    assert list(store.files) == ["Limitless Lifelogs/2025-02-01.md"]
    assert D(2025, 2, 3) not in client.days_requested
    assert notices[-1] == "Error syncing Limitless lifelogs. Check logs for details."


def test_malformed_lifelog_fails_the_run():
    client = FakeClient(lifelogs_by_day={D(2025, 2, 1): [{"title": "T", "contents": ["oops"]}]})
    store = MemoryStore()
    notices = []
    result = manager(client, store, notices).sync_lifelogs(today=D(2025, 2, 1))

    assert not result.ok
    assert result.error.kind is ErrorKind.INVALID_RESPONSE
    assert store.files == {}
    assert notices[-1] == "Error syncing Limitless lifelogs. Check logs for details."


def test_lifelog_notices():
    client = FakeClient(lifelogs_by_day={D(2025, 2, 1): [{"markdown": "x"}]})
    notices = []
    manager(client, MemoryStore(), notices).sync_lifelogs(today=D(2025, 2, 1))
    assert notices == [
        "Starting Limitless lifelog sync...",
        "Synced entries for 2025-02-01",
        "Limitless lifelog sync complete!",
    ]


def test_missing_api_key_is_a_noop():
    client = FakeClient()
    notices = []
    result = manager(client, MemoryStore(), notices, api_key="").sync_lifelogs(today=D(2025, 2, 3))
    assert client.days_requested == []
    assert result.ok
    assert notices == ["Please set your Limitless API key in settings"]


def test_update_settings_rotates_key():
    client = FakeClient()
    mgr = manager(client, MemoryStore())
    assert client.key == "k"
    mgr.update_settings(Settings(api_key="new"))
    assert client.key == "new"


# ── Chat paths ───────────────────────────────────────────────────────────────
def test_per_chat_path_is_stable():
    mgr = manager(FakeClient(), MemoryStore())
    c = Chat.from_dict(chat("abcd1234-xxxx", summary="Plan"))
    assert mgr.chat_file_path(c) == "Limitless Chats/Plan - abcd1234.md"
    assert mgr.chat_file_path(Chat.from_dict(chat("abcd1234-xxxx", summary="Plan", created="2026-01-01T00:00:00Z"))) == mgr.chat_file_path(c)


def test_per_chat_path_without_summary():
    mgr = manager(FakeClient(), MemoryStore())
    assert mgr.chat_file_path(Chat.from_dict(chat("12345678-90"))) == "Limitless Chats/Chat 12345678-90 - 12345678.md"


def test_sanitize_filename():
    assert sanitize_filename('a/b:c<d>e"f\\g|h?i*j') == "a_b_c_d_e_f_g_h_i_j"
    assert len(sanitize_filename("x" * 300)) == 100


def test_per_chat_path_sanitizes_summary():
    mgr = manager(FakeClient(), MemoryStore())
    path = mgr.chat_file_path(Chat.from_dict(chat("abcdefgh-1", summary="Q3/Q4: plan " + "z" * 200)))
    name = path.split("/", 1)[1]
    assert name.startswith("Q3_Q4_ plan ")
    assert name.endswith(" - abcdefgh.md")
    assert len(name[: -len(" - abcdefgh.md")]) == 100


def test_daily_and_monthly_paths_use_local_date():
    c = Chat.from_dict(chat("id", created="2025-03-01T02:00:00Z"))
    daily = manager(FakeClient(), MemoryStore(), chat_file_format="daily", timezone="America/Los_Angeles")
    monthly = manager(FakeClient(), MemoryStore(), chat_file_format="monthly", timezone="America/Los_Angeles")
    assert daily.chat_file_path(c) == "Limitless Chats/2025-02-28-Chats.md"
    assert monthly.chat_file_path(c) == "Limitless Chats/2025-02-Chats.md"


# ── Chat sync ────────────────────────────────────────────────────────────────
def test_chat_sync_disabled_is_silent():
    client = FakeClient(chats=[chat("a")])
    notices = []
    result = manager(client, MemoryStore(), notices, sync_chats=False).sync_chats()
    assert client.chat_calls == []
    assert notices == []
    assert result.processed == 0


def test_chat_sync_is_idempotent():
    client = FakeClient(chats=[chat("aaaaaaaa-1", "One"), chat("bbbbbbbb-2", "Two")])
    store = MemoryStore()
    mgr = manager(client, store, sync_chats=True)

    first = mgr.sync_chats()
    assert first.written == 2
    assert sorted(store.writes) == ["Limitless Chats/One - aaaaaaaa.md", "Limitless Chats/Two - bbbbbbbb.md"]

    store.writes.clear()
    second = mgr.sync_chats()
    assert store.writes == []
    assert second.written == 0
    assert second.unchanged == 2
    assert second.processed == 2


def test_changed_chat_is_rewritten():
    store = MemoryStore()
    manager(FakeClient(chats=[chat("aaaaaaaa-1", "One", text="v1")]), store, sync_chats=True).sync_chats()
    store.writes.clear()
    manager(FakeClient(chats=[chat("aaaaaaaa-1", "One", text="v2")]), store, sync_chats=True).sync_chats()
    assert store.writes == ["Limitless Chats/One - aaaaaaaa.md"]
    assert "v2" in store.files["Limitless Chats/One - aaaaaaaa.md"]


def test_chat_sync_requests_newest_first_with_cap():
    client = FakeClient(chats=[chat(f"chat{i:04d}") for i in range(300)])
    result = manager(client, MemoryStore(), sync_chats=True, max_chats_per_sync=120, timezone="Europe/Berlin").sync_chats()
    assert client.chat_calls == [(120, "desc", "Europe/Berlin")]
    assert result.processed == 120


def test_bad_chat_is_skipped():
    chats = [chat("aaaaaaaa-1", "One"), {"summary": "no id"}, chat("cccccccc-3", "Three")]
    store = MemoryStore()
    notices = []
    result = manager(FakeClient(chats=chats), store, notices, sync_chats=True).sync_chats()

    assert result.ok
    assert result.failed == 1
    assert result.written == 2
    assert result.processed == 3
    assert notices[-1] == "Chat sync complete! Processed 3 chats."


def test_malformed_chat_records_are_skipped():
    bad_user = chat("aaaaaaaa-1", "Bad")
    bad_user["messages"][0]["user"] = "bob"
    chats = [bad_user, "oops", chat("cccccccc-3", "Good")]
    store = MemoryStore()
    notices = []
    result = manager(FakeClient(chats=chats), store, notices, sync_chats=True).sync_chats()

    assert result.ok
    assert result.failed == 2
    assert result.written == 1
    assert store.writes == ["Limitless Chats/Good - cccccccc.md"]
    assert notices[-1] == "Chat sync complete! Processed 3 chats."


def test_write_failure_is_isolated_per_chat():
    class FlakyStore(MemoryStore):
        def write(self, path, text):
            if "One" in path:
                raise OSError("disk full")
            super().write(path, text)

    store = FlakyStore()
    result = manager(FakeClient(chats=[chat("aaaaaaaa-1", "One"), chat("bbbbbbbb-2", "Two")]), store, sync_chats=True).sync_chats()
    assert result.failed == 1
    assert store.writes == ["Limitless Chats/Two - bbbbbbbb.md"]


def test_shared_daily_file_keeps_last_chat():
    chats = [chat("aaaaaaaa-1", "Late", created="2025-02-09T18:00:00Z"), chat("bbbbbbbb-2", "Early", created="2025-02-09T08:00:00Z")]
    store = MemoryStore()
    manager(FakeClient(chats=chats), store, sync_chats=True, chat_file_format="daily").sync_chats()
    assert list(store.files) == ["Limitless Chats/2025-02-09-Chats.md"]
    assert store.files["Limitless Chats/2025-02-09-Chats.md"].startswith("# Early")


# ── Both, on disk ────────────────────────────────────────────────────────────
def test_sync_all_on_filesystem(tmp_path):
    client = FakeClient(lifelogs_by_day={D(2025, 2, 1): [{"markdown": "day one"}]}, chats=[chat("aaaaaaaa-1", "One")])
    store = FileSystemStore(tmp_path)
    settings = Settings(api_key="k", start_date="2025-02-01", sync_chats=True, timezone="UTC")
    mgr = SyncManager(client, store, settings, notify=lambda msg: None)

    lifelogs, chats = mgr.sync_all()

    assert lifelogs.ok and chats.ok
    assert (tmp_path / "Limitless Lifelogs" / "2025-02-01.md").read_text(encoding="utf-8") == "day one"
    assert (tmp_path / "Limitless Chats" / "One - aaaaaaaa.md").exists()
    assert mgr.last_synced_date() == D(2025, 2, 1)


def test_chat_with_carriage_returns_is_not_rewritten(tmp_path):
    client = FakeClient(chats=[chat("aaaaaaaa-1", "One", text="line1\r\nline2\rline3")])
    mgr = manager(client, FileSystemStore(tmp_path), sync_chats=True)

    assert mgr.sync_chats().written == 1
    second = mgr.sync_chats()
    assert second.written == 0
    assert second.unchanged == 1
