# -*- coding: utf-8 -*-
"""Markdown rendering for lifelogs and chats."""

from __future__ import annotations
import json
from typing import List

from zoneinfo import ZoneInfo

from .models import Blockquote, Chat, Heading1, Heading2, Lifelog, TextNode
from .utils import format_short_timestamp, format_timestamp, localize


# ── Lifelogs ─────────────────────────────────────────────────────────────────
def format_lifelog(lifelog: Lifelog, tz: ZoneInfo) -> str:
    if lifelog.markdown:
        return lifelog.markdown.replace("\n\n", "\n")

    blocks: List[str] = []
    if lifelog.title:
        blocks.append(f"# {lifelog.title}\n")

    section = ""
    lines: List[str] = []

    def flush(trailing_blank: bool):
        if section and lines:
            blocks.append(f"## {section}\n")
            blocks.extend(lines)
            if trailing_blank:
                blocks.append("")

    for node in lifelog.contents:
        if isinstance(node, Heading2):
            flush(trailing_blank=True)
            section = node.content
            lines = []
        elif isinstance(node, Blockquote):
            speaker = node.speaker_name or "Speaker"
            if node.start_time is not None:
                stamp = format_short_timestamp(localize(node.start_time, tz))
                line = f"- {speaker} ({stamp}): {node.content}"
            else:
                line = f"- {speaker}: {node.content}"
            if section:
                lines.append(line)
            else:
                blocks.append(line)
        elif isinstance(node, Heading1):
            # the title is emitted once above
            continue
        elif isinstance(node, TextNode):
            blocks.append(node.content)
        else:
            raise TypeError(f"Unhandled content node {node!r}")
    flush(trailing_blank=False)

    return "\n\n".join(blocks)

def format_lifelogs(lifelogs: List[Lifelog], tz: ZoneInfo) -> str:
    return "\n\n".join(format_lifelog(lg, tz) for lg in lifelogs)


# ── Chats ────────────────────────────────────────────────────────────────────
def format_role(role: str) -> str:
    return role[:1].upper() + role[1:]

def format_chat(chat: Chat, tz: ZoneInfo) -> str:
    out: List[str] = [
        f"# {chat.summary or 'Chat Conversation'}",
        f"**Chat ID:** {chat.id}",
        f"**Created:** {format_timestamp(localize(chat.created_at, tz))}",
    ]
    if chat.started_at is not None:
        out.append(f"**Started:** {format_timestamp(localize(chat.started_at, tz))}")
    out.append(f"**Visibility:** {chat.visibility}")
    out.append("")

    if chat.messages:
        out.append("## Conversation")
        out.append("")

    for msg in chat.messages:
        heading = format_role(msg.user.role)
        if msg.user.name:
            heading = f"{heading} {msg.user.name}"
        out.append(f"### {heading}")
        out.append(f"*{format_timestamp(localize(msg.created_at, tz))}*")
        out.append("")

        if msg.text:
            out.append(msg.text)
            out.append("")

        if msg.tool_calls:
            out.append("**Tool Calls:**")
            for call in msg.tool_calls:
                args = json.dumps(call.args, separators=(",", ":"), ensure_ascii=False)
                out.append(f"- {call.tool_name}: `{args}`")
            out.append("")

        if msg.tool_results:
            out.append("**Tool Results:**")
            for res in msg.tool_results:
                out.append(f"- {res.tool_name}: {'Error' if res.is_error else 'Success'}")
                for entry in res.entries_returned or []:
                    out.append(f"  - [[{entry.title}]] ({entry.id})")
            out.append("")

        out.append("---")
        out.append("")

    return "\n".join(out)
