"""
Web UI for Manga Tracker
Serves the library dashboard and the JSON API used by it.
"""

import logging
import threading
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from .auth import AuthManager
from .config import get_settings
from .constants import ENTRIES_PER_PAGE, HTTP_NOT_FOUND, HTTP_UNAUTHORIZED, EntryStatus
from .image_pipeline import ImageProcessor, apply_to_entry_fields
from .library import EntryPage, filter_entries, paginate, sort_for_status, status_counts
from .models import DashboardStats, EntryInput, EntryRead, ProcessImageResult
from .stats import StatsService
from .store import EntryNotFoundError, EntryStore
from .tags import merge_tags, parse_bulk_tags

logger = logging.getLogger(__name__)

app = FastAPI(title="Manga Tracker", version="0.1.0")

# Services are built from settings on first use
_services: dict = {}
_services_lock = threading.Lock()


def _service(name: str, factory):
    with _services_lock:
        if name not in _services:
            _services[name] = factory()
        return _services[name]


def get_store() -> EntryStore:
    return _service("store", lambda: EntryStore(get_settings().database_url))


def get_stats_service() -> StatsService:
    return _service("stats", lambda: StatsService.from_settings(get_settings()))


def get_image_processor() -> ImageProcessor:
    return _service("images", lambda: ImageProcessor.from_settings(get_settings()))


def get_auth() -> AuthManager:
    return _service("auth", lambda: AuthManager.from_settings(get_settings()))


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


def require_auth(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthManager = Depends(get_auth),
) -> str:
    if not auth.is_authenticated(token):
        raise HTTPException(status_code=HTTP_UNAUTHORIZED, detail="Login required")
    return token


class LoginRequest(BaseModel):
    """Login request model"""
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str


class SessionStatus(BaseModel):
    authenticated: bool


class EntryListResponse(EntryPage):
    """Entry page plus per-status counts for the tabs"""
    counts: dict[str, int]


class IncrementResponse(BaseModel):
    entry: EntryRead
    completed: bool


class ImageProcessRequest(BaseModel):
    """Image processing request; entry_id attaches the result to an entry"""
    image_url: str
    title: str
    entry_id: Optional[str] = None


class TagParseRequest(BaseModel):
    text: str
    existing: list[str] = []


class TagParseResponse(BaseModel):
    tags: list[str]


@app.exception_handler(EntryNotFoundError)
async def entry_not_found(request: Request, exc: EntryNotFoundError):
    return JSONResponse(status_code=HTTP_NOT_FOUND, content={"detail": f"Entry not found: {exc}"})


@app.get("/", response_class=HTMLResponse)
async def dashboard():
    """Main dashboard page"""
    html_content = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Manga Tracker</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
            background: #030712; color: #f9fafb; padding: 24px;
        }
        header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 24px; }
        h1 { color: #60a5fa; font-size: 24px; }
        .stats { display: flex; justify-content: center; gap: 48px; padding: 24px 0; border-bottom: 1px solid #1f2937; }
        .stat { text-align: center; }
        .stat .value { font-size: 24px; font-weight: bold; color: #60a5fa; }
        .stat .label { font-size: 13px; color: #9ca3af; }
        .warning { color: #fbbf24; text-align: center; font-size: 13px; min-height: 20px; margin: 8px 0; }
        .toolbar { display: flex; gap: 8px; margin: 16px 0; flex-wrap: wrap; }
        .toolbar button, .toolbar input { background: #1f2937; color: #f9fafb; border: 1px solid #374151; border-radius: 6px; padding: 6px 12px; }
        .toolbar button.active { background: #2563eb; }
        .grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(160px, 1fr)); gap: 16px; }
        .card { background: #111827; border-radius: 8px; overflow: hidden; }
        .card img { width: 100%; aspect-ratio: 2 / 3; object-fit: cover; background: #1f2937; }
        .card .body { padding: 8px; font-size: 13px; }
        .card .title { font-weight: 600; margin-bottom: 4px; }
        .card .meta { color: #9ca3af; }
        .pager { display: flex; justify-content: center; gap: 8px; margin-top: 16px; }
    </style>
</head>
<body>
    <header>
        <h1>Manga Tracker</h1>
        <a id="anilist-link" href="#" style="color:#9ca3af;display:none">AniList profile</a>
    </header>
    <div class="stats">
        <div class="stat"><div class="value" id="total">-</div><div class="label">Total Manga</div></div>
        <div class="stat"><div class="value" id="chapters">-</div><div class="label">Chapters Read</div></div>
        <div class="stat"><div class="value" id="mean">-</div><div class="label">Mean Score</div></div>
    </div>
    <div class="warning" id="warning"></div>
    <div class="toolbar" id="tabs"></div>
    <div class="toolbar"><input id="search" placeholder="Search entries..." oninput="loadEntries(1)"></div>
    <div class="grid" id="entries"></div>
    <div class="pager" id="pager"></div>

    <script>
        let activeStatus = 'Reading';

        async function loadStats() {
            const data = await (await fetch('/api/stats')).json();
            document.getElementById('total').textContent = data.total;
            document.getElementById('chapters').textContent = data.chapters_read;
            document.getElementById('mean').textContent = data.mean_score.toFixed(1);
            document.getElementById('warning').textContent = data.warning || '';
            if (data.site_url) {
                const link = document.getElementById('anilist-link');
                link.href = data.site_url;
                link.style.display = 'inline';
            }
        }

        async function loadEntries(page) {
            const params = new URLSearchParams({status: activeStatus, page: page});
            const search = document.getElementById('search').value;
            if (search) params.set('search', search);
            const data = await (await fetch('/api/entries?' + params)).json();

            const tabs = document.getElementById('tabs');
            tabs.innerHTML = '';
            for (const [status, count] of Object.entries(data.counts)) {
                const btn = document.createElement('button');
                btn.textContent = `${status} (${count})`;
                if (status === activeStatus) btn.className = 'active';
                btn.onclick = () => { activeStatus = status; loadEntries(1); };
                tabs.appendChild(btn);
            }

            const grid = document.getElementById('entries');
            grid.innerHTML = '';
            for (const e of data.entries) {
                const card = document.createElement('div');
                card.className = 'card';
                const img = document.createElement('img');
                img.src = e.compressed_image_url || e.cover_url || '';
                const body = document.createElement('div');
                body.className = 'body';
                const title = document.createElement('div');
                title.className = 'title';
                title.textContent = e.title;
                const meta = document.createElement('div');
                meta.className = 'meta';
                const chapters = e.total_chapters ? `${e.chapters_read}/${e.total_chapters}` : `${e.chapters_read}`;
                meta.textContent = `${e.author || ''} · Ch. ${chapters}` + (e.rating ? ` · ${e.rating}/10` : '');
                body.append(title, meta);
                card.append(img, body);
                grid.appendChild(card);
            }

            const pager = document.getElementById('pager');
            pager.innerHTML = '';
            if (data.total_pages > 1) {
                for (let p = 1; p <= data.total_pages; p++) {
                    const btn = document.createElement('button');
                    btn.textContent = p;
                    btn.disabled = p === data.page;
                    btn.onclick = () => loadEntries(p);
                    pager.appendChild(btn);
                }
            }
        }

        window.addEventListener('DOMContentLoaded', () => {
            loadStats();
            loadEntries(1);
            setInterval(loadStats, 60 * 60 * 1000); // Re-check hourly
        });
    </script>
</body>
</html>
    """
    return HTMLResponse(content=html_content)


@app.post("/api/login")
def login(data: LoginRequest, auth: AuthManager = Depends(get_auth)) -> LoginResponse:
    """Exchange editor credentials for a session token"""
    token = auth.login(data.username, data.password)
    if not token:
        raise HTTPException(status_code=HTTP_UNAUTHORIZED, detail="Invalid credentials")
    return LoginResponse(token=token)


@app.post("/api/logout")
def logout(token: str = Depends(require_auth), auth: AuthManager = Depends(get_auth)):
    auth.logout(token)
    return {"message": "Logged out"}


@app.get("/api/session")
def session_status(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthManager = Depends(get_auth),
) -> SessionStatus:
    return SessionStatus(authenticated=auth.is_authenticated(token))


@app.get("/api/entries")
def list_entries(
    search: Optional[str] = None,
    status: Optional[EntryStatus] = None,
    page: int = 1,
    per_page: int = ENTRIES_PER_PAGE,
    store: EntryStore = Depends(get_store),
) -> EntryListResponse:
    """Filtered, sorted and paginated entries"""
    if per_page < 1:
        raise HTTPException(status_code=422, detail="per_page must be positive")
    entries = store.list_entries()
    matched = filter_entries(entries, search=search, status=status)
    result = paginate(sort_for_status(matched, status), page=page, per_page=per_page)
    return EntryListResponse(**dict(result), counts=status_counts(filter_entries(entries, search=search)))


@app.get("/api/entries/{entry_id}")
def get_entry(entry_id: str, store: EntryStore = Depends(get_store)) -> EntryRead:
    return EntryRead.from_entry(store.get_entry(entry_id))


@app.post("/api/entries", status_code=201)
def create_entry(
    payload: EntryInput,
    _: str = Depends(require_auth),
    store: EntryStore = Depends(get_store),
) -> EntryRead:
    return EntryRead.from_entry(store.create_entry(payload))


@app.put("/api/entries/{entry_id}")
def update_entry(
    entry_id: str,
    payload: EntryInput,
    _: str = Depends(require_auth),
    store: EntryStore = Depends(get_store),
) -> EntryRead:
    return EntryRead.from_entry(store.update_entry(entry_id, payload))


@app.delete("/api/entries/{entry_id}")
def delete_entry(
    entry_id: str,
    _: str = Depends(require_auth),
    store: EntryStore = Depends(get_store),
):
    store.delete_entry(entry_id)
    return {"message": "Entry deleted"}


@app.post("/api/entries/{entry_id}/increment")
def increment_chapter(
    entry_id: str,
    _: str = Depends(require_auth),
    store: EntryStore = Depends(get_store),
) -> IncrementResponse:
    """Read one more chapter"""
    entry, completed = store.increment_chapter(entry_id)
    return IncrementResponse(entry=EntryRead.from_entry(entry), completed=completed)


@app.get("/api/stats")
def get_stats(
    store: EntryStore = Depends(get_store),
    stats: StatsService = Depends(get_stats_service),
) -> DashboardStats:
    """Headline numbers blended from AniList and local entries"""
    return stats.dashboard(store.list_entries())


@app.post("/api/stats/refresh")
def refresh_stats(
    store: EntryStore = Depends(get_store),
    stats: StatsService = Depends(get_stats_service),
) -> DashboardStats:
    """Bypass the cache and fetch AniList stats now"""
    return stats.dashboard(store.list_entries(), force=True)


@app.post("/api/images/process")
def process_image(
    data: ImageProcessRequest,
    _: str = Depends(require_auth),
    processor: ImageProcessor = Depends(get_image_processor),
    store: EntryStore = Depends(get_store),
) -> ProcessImageResult:
    """Re-host a cover image, optionally attaching it to an entry"""
    cover_url = None
    if data.entry_id:
        # Fail before any upload if the entry does not exist
        cover_url = store.get_entry(data.entry_id).cover_url
    result = processor.process_image(data.image_url, data.title)
    if result is None:
        raise HTTPException(status_code=502, detail="Image processing failed")
    if data.entry_id:
        store.update_fields(data.entry_id, apply_to_entry_fields({"cover_url": cover_url}, result))
    return result


@app.post("/api/tags/parse")
def parse_tags(data: TagParseRequest) -> TagParseResponse:
    """Turn pasted tag listings into a clean tag set"""
    return TagParseResponse(tags=merge_tags(data.existing, parse_bulk_tags(data.text)))
