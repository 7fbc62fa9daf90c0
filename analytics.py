"""Read-only summaries over a click log snapshot."""
import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union
from config import RECENT_CLICKS
from schemas import ClickEvent, CountryStat
from utils import parse_iso, utc_now

UNKNOWN = "Unknown"
GLOBE = "\U0001F30D"
FLAG_OFFSET = 127397  # ord("A") + FLAG_OFFSET == REGIONAL INDICATOR SYMBOL LETTER A
TOP_COUNTRIES = 10


def by_country(events: Sequence[ClickEvent], top: int = TOP_COUNTRIES) -> List[CountryStat]:
    counts: Dict[str, int] = {}
    for e in events:
        country = e.country or UNKNOWN
        counts[country] = counts.get(country, 0) + 1
    total = len(events)
    stats = [
        CountryStat(country=c, count=n, percentage=(n / total * 100) if total else 0.0)
        for c, n in counts.items()
    ]
    # sorted() is stable: ties keep first-seen order
    return sorted(stats, key=lambda s: -s.count)[:top]


def recent(events: Sequence[ClickEvent], n: int = RECENT_CLICKS) -> List[ClickEvent]:
    return list(reversed(events[-n:])) if n > 0 else []


def relative_time(timestamp: Union[str, datetime], now: Optional[datetime] = None) -> str:
    if isinstance(timestamp, str):
        timestamp = parse_iso(timestamp)
    seconds = math.floor(((now or utc_now()) - timestamp).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def country_flag(country: Optional[str]) -> str:
    if not country or country == UNKNOWN:
        return GLOBE
    return "".join(chr(FLAG_OFFSET + ord(ch)) for ch in country.upper())


def format_date(timestamp: str) -> str:
    return parse_iso(timestamp).strftime("%b %d, %Y, %I:%M %p")


def truncate(text: Optional[str], n: int) -> str:
    if not text:
        return ""
    return text[:n] + "..." if len(text) > n else text


def location_label(event: ClickEvent) -> str:
    parts = [p for p in (event.city, event.region) if p]
    parts.append(event.country or UNKNOWN)
    return ", ".join(parts)
