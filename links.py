"""Link records, the link index and per-code click logs on top of a KVStore.

Key layout:

    <code>          {"url": ..., "createdAt": ...}
    <code>:clicks   [ClickEvent, ...] oldest first, capped
    __index         [code, ...] newest first

Writes to different keys are independent. ``LinkStore.create`` writes the
record before the index, so an interrupted create leaves a reachable link
that the dashboard does not list. ``ClickLog.append`` is an unlocked
read-modify-write; overlapping appends for one code may drop one of them.
"""
import json
from typing import List, Optional
from pydantic import TypeAdapter
from config import CLICK_LOG_CAP, CODE_LENGTH
from kv import KVStore
from schemas import ClickEvent, LinkRecord, UrlData
from utils import generate_code, iso_z, utc_now, valid_code, valid_url

INDEX_KEY = "__index"
CLICKS_SUFFIX = ":clicks"
RESERVED_CODES = {"stats", "shorten", "dashboard", "api", "healthz", "favicon.ico"}
MAX_CODE_ATTEMPTS = 5

_click_list = TypeAdapter(List[ClickEvent])


class LinkError(Exception):
    pass

class ValidationError(LinkError):
    pass

class NotFoundError(LinkError):
    pass

class CodeGenerationError(LinkError):
    pass


def clicks_key(code: str) -> str:
    return code + CLICKS_SUFFIX


class LinkStore:
    def __init__(self, kv: KVStore, code_length: int = CODE_LENGTH):
        self.kv = kv
        self.code_length = code_length

    def create(self, url: Optional[str]) -> LinkRecord:
        url = (url or "").strip()
        if not url:
            raise ValidationError("URL is required")
        if not valid_url(url):
            raise ValidationError("Invalid URL")

        code = self._new_code()
        data = UrlData(url=url, createdAt=iso_z(utc_now()))
        self.kv.put(code, data.model_dump_json())
        self._prepend_index(code)
        return LinkRecord(code=code, **data.model_dump())

    def get(self, code: str) -> LinkRecord:
        # only generator-shaped codes; keeps __index and <code>:clicks out of reach
        usable = valid_code(code) and code not in RESERVED_CODES and code != INDEX_KEY
        raw = self.kv.get(code) if usable else None
        if raw is None:
            raise NotFoundError(f"no link for code {code!r}")
        return LinkRecord(code=code, **UrlData.model_validate_json(raw).model_dump())

    def list_index(self, limit: Optional[int] = None) -> List[str]:
        codes = self._read_index()
        return codes if limit is None else codes[:limit]

    def _new_code(self) -> str:
        # redraw on reserved words and codes already in use
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_code(self.code_length)
            if code not in RESERVED_CODES and self.kv.get(code) is None:
                return code
        raise CodeGenerationError("failed to generate a unique code")

    def _read_index(self) -> List[str]:
        raw = self.kv.get(INDEX_KEY)
        return json.loads(raw) if raw else []

    def _prepend_index(self, code: str) -> None:
        codes = [c for c in self._read_index() if c != code]
        self.kv.put(INDEX_KEY, json.dumps([code] + codes))


class ClickLog:
    def __init__(self, kv: KVStore, cap: int = CLICK_LOG_CAP):
        self.kv = kv
        self.cap = cap

    def append(self, code: str, event: ClickEvent) -> int:
        """Append ``event`` to the log of ``code``, evicting the oldest
        events while the log is at its cap. Returns the new length."""
        events = self.get_all(code)
        while len(events) >= self.cap:
            events.pop(0)
        events.append(event)
        self.kv.put(clicks_key(code), _click_list.dump_json(events).decode())
        return len(events)

    def get_all(self, code: str) -> List[ClickEvent]:
        raw = self.kv.get(clicks_key(code))
        return _click_list.validate_json(raw) if raw else []

    def count_for(self, code: str) -> int:
        return len(self.get_all(code))
