# -*- coding: utf-8 -*-
"""
Typed views of the lifelog and chat payloads returned by the API.

Only the fields the renderers and the sync logic read are modelled; everything
else in the JSON is ignored. Parsing failures surface as ApiError with kind
INVALID_RESPONSE so callers treat them like any other malformed response.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .errors import ApiError, ErrorKind
from .utils import parse_instant


def _record(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ApiError(f"Invalid response format: {what} is not an object", ErrorKind.INVALID_RESPONSE)
    return data

def _records(data: Dict[str, Any], key: str, what: str) -> List[Dict[str, Any]]:
    items = data.get(key) or []
    if not isinstance(items, list):
        raise ApiError(f"Invalid response format: '{key}' on {what} is not a list", ErrorKind.INVALID_RESPONSE)
    return [_record(item, f"{what} {key} entry") for item in items]

def _require(data: Dict[str, Any], key: str, what: str) -> Any:
    value = data.get(key)
    if value is None:
        raise ApiError(f"Invalid response format: {what} is missing '{key}'", ErrorKind.INVALID_RESPONSE)
    return value

def _instant(value: Optional[str], what: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parse_instant(value)
    except (TypeError, ValueError):
        raise ApiError(f"Invalid response format: bad timestamp {value!r} on {what}", ErrorKind.INVALID_RESPONSE)


# ── Content nodes ────────────────────────────────────────────────────────────
@dataclass
class Heading1:
    content: str = ""

@dataclass
class Heading2:
    content: str = ""

@dataclass
class Blockquote:
    content: str = ""
    speaker_name: Optional[str] = None
    start_time: Optional[datetime] = None

@dataclass
class TextNode:
    """Any node type without special handling; rendered verbatim."""
    type: str
    content: str = ""

ContentNode = Union[Heading1, Heading2, Blockquote, TextNode]

def parse_node(data: Dict[str, Any]) -> ContentNode:
    data = _record(data, "content node")
    kind = data.get("type") or ""
    content = data.get("content") or ""
    if kind == "heading1":
        return Heading1(content)
    if kind == "heading2":
        return Heading2(content)
    if kind == "blockquote":
        return Blockquote(
            content=content,
            speaker_name=data.get("speakerName"),
            start_time=_instant(data.get("startTime"), "blockquote"),
        )
    return TextNode(kind, content)


# ── Lifelogs ─────────────────────────────────────────────────────────────────
@dataclass
class Lifelog:
    id: Optional[str] = None
    title: Optional[str] = None
    markdown: Optional[str] = None
    contents: List[ContentNode] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Lifelog:
        data = _record(data, "lifelog")
        return cls(
            id=data.get("id"),
            title=data.get("title"),
            markdown=data.get("markdown"),
            contents=[parse_node(n) for n in _records(data, "contents", "lifelog")],
            start_time=_instant(data.get("startTime"), "lifelog"),
            end_time=_instant(data.get("endTime"), "lifelog"),
        )


# ── Chats ────────────────────────────────────────────────────────────────────
@dataclass
class ToolCall:
    id: str
    tool_name: str
    args: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ToolCall:
        data = _record(data, "tool call")
        return cls(id=data.get("id") or "", tool_name=data.get("toolName") or "", args=data.get("args"))

@dataclass
class ReferencedEntry:
    title: str
    id: str

@dataclass
class ToolResult:
    tool_call_id: str
    tool_name: str
    is_error: bool = False
    result: Any = None
    entries_returned: Optional[List[ReferencedEntry]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ToolResult:
        data = _record(data, "tool result")
        entries = None if data.get("entriesReturned") is None else _records(data, "entriesReturned", "tool result")
        return cls(
            tool_call_id=data.get("toolCallId") or "",
            tool_name=data.get("toolName") or "",
            is_error=bool(data.get("isError")),
            result=data.get("result"),
            entries_returned=None if entries is None else [
                ReferencedEntry(title=e.get("title") or "", id=e.get("id") or "") for e in entries
            ],
        )

@dataclass
class ChatUser:
    role: str
    name: Optional[str] = None

@dataclass
class ChatMessage:
    id: str
    created_at: datetime
    user: ChatUser
    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ChatMessage:
        data = _record(data, "message")
        user = _record(data.get("user") or {}, "message user")
        return cls(
            id=_require(data, "id", "message"),
            created_at=_instant(_require(data, "createdAt", "message"), "message"),
            user=ChatUser(role=user.get("role") or "user", name=user.get("name")),
            text=data.get("text"),
            tool_calls=[ToolCall.from_dict(c) for c in _records(data, "toolCalls", "message")],
            tool_results=[ToolResult.from_dict(r) for r in _records(data, "toolResults", "message")],
        )

@dataclass
class Chat:
    id: str
    created_at: datetime
    started_at: Optional[datetime] = None
    summary: Optional[str] = None
    visibility: str = "private"
    messages: List[ChatMessage] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Chat:
        data = _record(data, "chat")
        return cls(
            id=str(_require(data, "id", "chat")),
            created_at=_instant(_require(data, "createdAt", "chat"), "chat"),
            started_at=_instant(data.get("startedAt"), "chat"),
            summary=data.get("summary"),
            visibility=data.get("visibility") or "private",
            messages=[ChatMessage.from_dict(m) for m in _records(data, "messages", "chat")],
        )
