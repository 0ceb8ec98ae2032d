# -*- coding: utf-8 -*-
"""
HTTP access to the Limitless API: authenticated requests with 429 backoff and
cursor pagination.

Every list endpoint answers with the same envelope::

    {"data": {"<resource>": [...]}, "meta": {"<resource>": {"nextCursor": "...", "count": N}}}

so a single paginator serves both lifelogs and chats.
"""

from __future__ import annotations
import json
import time as _time_module
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests

from .errors import ApiError, ErrorKind
from .utils import eprint, progress_print

# ── Constants ────────────────────────────────────────────────────────────────
API_BASE_URL     = "https://api.limitless.ai"
API_VERSION      = "v1"
REQUEST_TIMEOUT  = 300
PAGE_LIMIT       = 10      # server-side maximum for lifelogs
CHAT_PAGE_LIMIT  = 100
MAX_CHATS        = 200
MAX_RETRIES      = 5
BASE_RETRY_DELAY = 1.0     # seconds


def clamp_max_chats(n: int) -> int:
    return max(1, min(int(n), MAX_CHATS))

def retry_delay(retry_after: Optional[str], retries: int, now: Optional[datetime]=None) -> float:
    """Seconds to wait before retry number `retries` (0-indexed) after a 429.

    `Retry-After` may be a number of seconds or an HTTP-date. A date in the
    past means retry immediately. Without a usable header the delay doubles
    on every retry.
    """
    if retry_after:
        try:
            return float(max(0, int(retry_after.strip())))
        except ValueError:
            pass
        try:
            when = parsedate_to_datetime(retry_after)
        except (TypeError, ValueError):
            when = None
        if when is not None:
            if when.tzinfo is None:
                when = when.replace(tzinfo=timezone.utc)
            now = now or datetime.now(timezone.utc)
            return max(0.0, (when - now).total_seconds())
    return BASE_RETRY_DELAY * 2 ** retries

def _classify(resp: requests.Response) -> ApiError:
    status = resp.status_code
    if status == 401:
        return ApiError("Invalid API key or unauthorized access", ErrorKind.UNAUTHORIZED, status)
    if status == 404:
        return ApiError("Resource not found or access denied", ErrorKind.NOT_FOUND, status)
    if status == 429:
        return ApiError(f"Rate limit exceeded after {MAX_RETRIES} retries", ErrorKind.RATE_LIMITED, status)
    reason = f" {resp.reason}" if resp.reason else ""
    return ApiError(f"HTTP {status}{reason} for url: {resp.url}", ErrorKind.HTTP, status)

def _section(body: Dict[str,Any], key: str) -> Dict[str,Any]:
    value = body.get(key) or {}
    if not isinstance(value, dict):
        raise ApiError(f"Invalid response format: '{key}' is not an object", ErrorKind.INVALID_RESPONSE)
    return value


# ── HTTP & Pagination ────────────────────────────────────────────────────────
class ApiClient:
    def __init__(self, api_key: str="", verbose: bool=False, quiet: bool=False,
                 sleep: Optional[Callable[[float], None]]=None):
        self.key = api_key
        self.verbose = verbose
        self.quiet = quiet
        self.session = requests.Session()
        self._sleep = sleep or _time_module.sleep

    def _log(self, msg: str):
        eprint(f"[API] {msg}", self.verbose)

    def set_api_key(self, api_key: str):
        self.key = api_key

    def _send(self, method: str, endpoint: str, params: Optional[Dict[str,Any]]=None) -> requests.Response:
        url = f"{API_BASE_URL}/{API_VERSION}/{endpoint.lstrip('/')}"
        headers = {"X-API-Key": self.key, "Accept": "application/json"}
        retries = 0
        while True:
            self._log(f"{method} {url} params={params}")
            try:
                resp = self.session.request(method, url, headers=headers, params=params, timeout=REQUEST_TIMEOUT)
            except requests.RequestException as e:
                raise ApiError(f"Request to {url} failed: {e}", ErrorKind.NETWORK) from e

            if resp.status_code == 429 and retries < MAX_RETRIES:
                wait = retry_delay(resp.headers.get("Retry-After"), retries)
                progress_print(f"Rate limit exceeded. Retrying in {round(wait)} seconds...", self.quiet)
                self._sleep(wait)
                retries += 1
                continue

            if resp.status_code >= 400:
                err = _classify(resp)
                self._log(f"{method} {url} failed: {err} body={resp.text[:500]!r}")
                raise err
            return resp

    def request(self, endpoint: str, params: Optional[Dict[str,Any]]=None) -> Dict[str,Any]:
        resp = self._send("GET", endpoint, params)
        try:
            body = resp.json()
        except ValueError as e:
            raise ApiError("Invalid response format", ErrorKind.INVALID_RESPONSE, resp.status_code) from e
        if not isinstance(body, dict):
            raise ApiError("Invalid response format", ErrorKind.INVALID_RESPONSE, resp.status_code)
        return body

    def delete(self, endpoint: str) -> None:
        self._send("DELETE", endpoint)

    def paginated(self, endpoint: str, params: Dict[str,Any], resource: str,
                  max_results: Optional[int]=None) -> Iterator[Dict[str,Any]]:
        """Yield every item of `resource`, following `nextCursor` until it runs out.

        Pages are requested one at a time; the next request is only built once
        the previous page's cursor is known. Stops early once `max_results`
        items have been yielded.
        """
        params = dict(params)
        cursor = params.pop("cursor", None)
        fetched = 0
        while True:
            page_params = dict(params, cursor=cursor) if cursor else dict(params)
            data = self.request(endpoint, page_params)
            items = _section(data, "data").get(resource) or []
            meta = _section(data, "meta").get(resource) or {}
            if not isinstance(items, list) or not isinstance(meta, dict):
                raise ApiError(f"Invalid response format: malformed '{resource}' page", ErrorKind.INVALID_RESPONSE)
            cursor = meta.get("nextCursor")
            self._log(f"Fetched page: {len(items)} {resource}, total so far {fetched}")
            if not items:
                break
            for item in items:
                if max_results is not None and fetched >= max_results:
                    return
                yield item
                fetched += 1
            if not cursor or (max_results is not None and fetched >= max_results):
                break

    def get_lifelogs(self, day: date, tz_name: str) -> List[Dict[str,Any]]:
        """All lifelogs starting on `day` in `tz_name`, oldest first."""
        params = {
            "date": day.isoformat(),
            "timezone": tz_name,
            "includeMarkdown": "true",
            "includeHeadings": "true",
            "direction": "asc",
            "limit": PAGE_LIMIT,
        }
        return list(self.paginated("lifelogs", params, "lifelogs"))

    def iter_chats(self, max_chats: int, direction: str="desc", tz_name: Optional[str]=None,
                   is_scheduled: Optional[bool]=None, global_prompt_id: Optional[str]=None) -> Iterator[Dict[str,Any]]:
        cap = clamp_max_chats(max_chats)
        params: Dict[str,Any] = {"direction": direction, "limit": min(cap, CHAT_PAGE_LIMIT)}
        if tz_name:
            params["timezone"] = tz_name
        if is_scheduled is not None:
            params["isScheduled"] = json.dumps(is_scheduled)
        if global_prompt_id:
            params["globalPromptId"] = global_prompt_id
        return self.paginated("chats", params, "chats", max_results=cap)

    def get_chat(self, chat_id: str, tz_name: Optional[str]=None) -> Dict[str,Any]:
        params = {"timezone": tz_name} if tz_name else {}
        data = self.request(f"chats/{chat_id}", params).get("data")
        if not isinstance(data, dict):
            raise ApiError("Invalid response format", ErrorKind.INVALID_RESPONSE)
        return data.get("chat", data)

    def delete_chat(self, chat_id: str) -> None:
        self.delete(f"chats/{chat_id}")
