import os
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import List, Optional
from fastapi import FastAPI, BackgroundTasks, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException
import analytics
from config import DASHBOARD_LIMIT, DASHBOARD_WORKERS, RECENT_CLICKS
from db import engine
from kv import KVStore
from links import (
    ClickLog, CodeGenerationError, LinkStore, NotFoundError, RESERVED_CODES, ValidationError,
)
from schemas import ClickEvent, DashboardEntry, RecentClick, ShortenResp, StatsResp
from utils import click_from_headers
from middleware.custom_logger import StructuredAuditMiddleware, audit

app = FastAPI(title="Edge Shortener")
app.add_middleware(StructuredAuditMiddleware)

templates = Jinja2Templates(directory=os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates"))
templates.env.filters["flag"] = analytics.country_flag
templates.env.filters["ago"] = analytics.relative_time
templates.env.filters["datefmt"] = analytics.format_date
templates.env.filters["shorten"] = analytics.truncate

@lru_cache
def get_store() -> KVStore:
    return KVStore(engine)

def get_links(kv: KVStore = Depends(get_store)) -> LinkStore:
    return LinkStore(kv)

def get_clicks(kv: KVStore = Depends(get_store)) -> ClickLog:
    return ClickLog(kv)

def make_url(request: Request, path: str) -> str:
    base = str(request.base_url)
    if not base.endswith("/"):
        base += "/"
    return base + path

def record_click(clicks: ClickLog, code: str, event: ClickEvent) -> None:
    """Runs after the redirect response; failures never reach the visitor."""
    try:
        total = clicks.append(code, event)
    except Exception as e:
        audit.event("click_log_failed", shortcode=code, error=repr(e))
        return
    audit.event("click_logged", shortcode=code, total=total)

def build_stats(request: Request, code: str, links: LinkStore, clicks: ClickLog) -> StatsResp:
    link = links.get(code)
    events = clicks.get_all(code)
    recent = [
        RecentClick(**e.model_dump(), ago=analytics.relative_time(e.timestamp), location=analytics.location_label(e))
        for e in analytics.recent(events, RECENT_CLICKS)
    ]
    return StatsResp(
        code=code,
        shortUrl=make_url(request, code),
        statsUrl=make_url(request, f"stats/{code}"),
        originalUrl=link.url,
        createdAt=link.createdAt,
        totalClicks=len(events),
        countries=analytics.by_country(events),
        recentClicks=recent,
    )

def dashboard_entry(links: LinkStore, clicks: ClickLog, code: str) -> Optional[DashboardEntry]:
    try:
        link = links.get(code)
        return DashboardEntry(**link.model_dump(), clicks=clicks.count_for(code))
    except NotFoundError:
        audit.event("dashboard_entry_dropped", shortcode=code, reason="missing record")
    except Exception as e:
        audit.event("dashboard_entry_dropped", shortcode=code, reason=repr(e))
    return None

@app.get("/", response_class=HTMLResponse)
def home(request: Request):
    return templates.TemplateResponse(request, "home.html", {})

@app.get("/healthz")
def healthz():
    return {"status": "ok"}

@app.post("/shorten", response_model=ShortenResp)
def shorten(request: Request, url: str = Form(""), links: LinkStore = Depends(get_links)):
    link = links.create(url)
    audit.event("short_created", shortcode=link.code, long_url=link.url)
    return ShortenResp(
        code=link.code,
        shortUrl=make_url(request, link.code),
        statsUrl=make_url(request, f"stats/{link.code}"),
        originalUrl=link.url,
    )

@app.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, links: LinkStore = Depends(get_links), clicks: ClickLog = Depends(get_clicks)):
    codes = links.list_index(DASHBOARD_LIMIT)
    entries: List[DashboardEntry] = []
    if codes:
        with ThreadPoolExecutor(max_workers=min(DASHBOARD_WORKERS, len(codes))) as pool:
            # map() yields in submission order, so index order survives
            results = pool.map(lambda c: dashboard_entry(links, clicks, c), codes)
            entries = [e for e in results if e is not None]
    total_clicks = sum(e.clicks for e in entries)
    audit.event("dashboard_view", links=len(entries), totalClicks=total_clicks)
    return templates.TemplateResponse(
        request, "dashboard.html", {"entries": entries, "total_clicks": total_clicks}
    )

@app.get("/stats/{code}", response_class=HTMLResponse)
def stats_page(code: str, request: Request, links: LinkStore = Depends(get_links), clicks: ClickLog = Depends(get_clicks)):
    stats = build_stats(request, code, links, clicks)
    audit.event("stats_view", shortcode=code, totalClicks=stats.totalClicks)
    max_count = stats.countries[0].count if stats.countries else 1
    return templates.TemplateResponse(request, "stats.html", {"stats": stats, "max_count": max_count})

@app.get("/api/stats/{code}", response_model=StatsResp)
def stats_json(code: str, request: Request, links: LinkStore = Depends(get_links), clicks: ClickLog = Depends(get_clicks)):
    return build_stats(request, code, links, clicks)

@app.get("/{code}")
def redirect_code(
    code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    links: LinkStore = Depends(get_links),
    clicks: ClickLog = Depends(get_clicks),
):
    if code in RESERVED_CODES:
        raise NotFoundError(f"{code!r} is a reserved path")
    try:
        link = links.get(code)
    except NotFoundError:
        audit.event("redirect_miss", shortcode=code)
        raise
    event = click_from_headers(request.headers)
    background_tasks.add_task(record_click, clicks, code, event)
    audit.event("redirect_hit", shortcode=code, country=event.country, referer=event.referer)
    return RedirectResponse(url=link.url, status_code=302)

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": str(exc)})

@app.exception_handler(CodeGenerationError)
async def code_generation_handler(request: Request, exc: CodeGenerationError):
    audit.event("short_autogen_failed", error=str(exc))
    return JSONResponse(status_code=500, content={"error": str(exc)})

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
