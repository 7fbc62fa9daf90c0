import re, secrets
from datetime import datetime, timezone
from typing import Mapping, Optional
from urllib.parse import urlparse
from schemas import ClickEvent

# nanoid's URL-safe alphabet
ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-"

# edge proxy geolocation headers -> ClickEvent fields
GEO_HEADERS = {
    "country": "cf-ipcountry",
    "city": "cf-ipcity",
    "region": "cf-region",
    "timezone": "cf-timezone",
    "latitude": "cf-iplatitude",
    "longitude": "cf-iplongitude",
    "asOrganization": "x-as-organization",
}
UNKNOWN_COUNTRIES = {"XX", "T1"}
BLOCKED_SCHEMES = {"javascript", "data", "vbscript"}

def generate_code(n: int = 6) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(n))

_code_re = re.compile(r"^[A-Za-z0-9_-]{3,32}$")
def valid_code(s: str) -> bool:
    return bool(_code_re.match(s))

def valid_url(u: str) -> bool:
    try:
        p = urlparse(u)
        return bool(p.scheme) and p.scheme.lower() not in BLOCKED_SCHEMES and bool(p.netloc)
    except ValueError:
        return False

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def iso_z(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def parse_iso(s: str) -> datetime:
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = (headers.get(name) or "").strip()
    return value or None

def click_from_headers(headers: Mapping[str, str], now: Optional[datetime] = None) -> ClickEvent:
    fields = {field: _header(headers, name) for field, name in GEO_HEADERS.items()}
    if fields["country"]:
        fields["country"] = fields["country"].upper()
        if fields["country"] in UNKNOWN_COUNTRIES:
            fields["country"] = None
    ua = _header(headers, "user-agent")
    return ClickEvent(
        timestamp=iso_z(now or utc_now()),
        userAgent=ua[:500] if ua else None,
        referer=_header(headers, "referer") or _header(headers, "referrer"),
        **fields,
    )
