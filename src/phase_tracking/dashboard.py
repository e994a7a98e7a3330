"""Read-only HTTP dashboard over a :class:`PhaseTracker`."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .tracker import PhaseTracker

logger = logging.getLogger(__name__)

REFRESH_SECONDS = 30

DASHBOARD_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Phase Tracking Dashboard</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           margin: 0; background: #f4f5f9; color: #333; }
    header { background: #4c51bf; color: #fff; padding: 16px 24px; }
    main { max-width: 1100px; margin: 0 auto; padding: 24px; }
    .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 16px; }
    .card { background: #fff; border-radius: 8px; padding: 16px; box-shadow: 0 1px 3px rgba(0,0,0,.1); }
    .value { font-size: 2em; font-weight: 600; }
    table { width: 100%; border-collapse: collapse; }
    td, th { text-align: left; padding: 6px 8px; border-bottom: 1px solid #eee; }
    .muted { color: #888; font-size: .85em; }
  </style>
</head>
<body>
  <header><h1>Phase Tracking Dashboard</h1><span class="muted" id="updated"></span></header>
  <main>
    <section class="grid">
      <div class="card"><div>Total sessions</div><div class="value" id="total">-</div></div>
      <div class="card"><div>Active sessions</div><div class="value" id="active">-</div></div>
      <div class="card"><div>PB&amp;J pass rate</div><div class="value" id="pbj">-</div></div>
      <div class="card"><div>Avg duration (min)</div><div class="value" id="duration">-</div></div>
    </section>
    <h2>Phase distribution</h2>
    <div class="card"><table id="phases"></table></div>
    <h2>Active sessions</h2>
    <div class="card"><table id="sessions"></table></div>
    <h2>Recent decisions</h2>
    <div class="card"><table id="decisions"></table></div>
    <h2>Recent transitions</h2>
    <div class="card"><table id="transitions"></table></div>
  </main>
  <script>
    function esc(value) {
      const div = document.createElement('div');
      div.textContent = value == null ? '' : String(value);
      return div.innerHTML;
    }
    function rows(id, items, render) {
      document.getElementById(id).innerHTML = items.length
        ? items.map(render).join('')
        : '<tr><td class="muted">Nothing to show</td></tr>';
    }
    async function refresh() {
      const [stats, sessions] = await Promise.all([
        fetch('/api/stats').then(r => r.json()),
        fetch('/api/sessions').then(r => r.json()),
      ]);
      document.getElementById('total').textContent = stats.totalSessions;
      document.getElementById('active').textContent = stats.activeSessions;
      document.getElementById('pbj').textContent = stats.pbjSuccessRate + '%';
      document.getElementById('duration').textContent = stats.avgSessionDuration;
      rows('phases', Object.entries(stats.phaseDistribution),
        ([phase, count]) => `<tr><td>${esc(phase)}</td><td>${count}</td></tr>`);
      rows('sessions', sessions,
        s => `<tr><td>${esc(s.sessionId)}</td><td>${esc(s.currentPhase)}</td><td>${esc(s.startTime)}</td></tr>`);
      rows('decisions', stats.recentDecisions.slice(0, 10),
        d => `<tr><td>${esc(d.timestamp)}</td><td>${esc(d.agentId)}</td><td>${esc(d.phase)}</td><td>${esc(d.decision)}</td></tr>`);
      rows('transitions', stats.recentTransitions.slice(0, 10),
        t => `<tr><td>${esc(t.timestamp)}</td><td>${esc(t.agentId)}</td><td>${esc(t.fromPhase)} &rarr; ${esc(t.toPhase)}</td><td>${esc(t.approvedBy)}</td></tr>`);
      document.getElementById('updated').textContent = 'Updated ' + new Date().toLocaleTimeString();
    }
    refresh();
    setInterval(refresh, __REFRESH_MS__);
  </script>
</body>
</html>
"""


def create_app(tracker: PhaseTracker) -> FastAPI:
    """Build the dashboard application around an existing tracker."""

    app = FastAPI(
        title="Phase Tracking Dashboard",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        detail = exc.detail if isinstance(exc.detail, str) else "Error"
        return PlainTextResponse(detail, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
        logger.error(
            "Dashboard request failed",
            exc_info=exc,
            extra={"path": request.url.path, "method": request.method},
        )
        return PlainTextResponse("Internal Server Error", status_code=500)

    html = DASHBOARD_HTML.replace("__REFRESH_MS__", str(REFRESH_SECONDS * 1000))

    @app.get("/", response_class=HTMLResponse)
    @app.get("/dashboard", response_class=HTMLResponse)
    async def dashboard_page() -> HTMLResponse:
        return HTMLResponse(html)

    @app.get("/api/stats")
    async def stats() -> JSONResponse:
        payload = tracker.get_dashboard_stats().model_dump(mode="json", by_alias=True)
        return JSONResponse(payload)

    @app.get("/api/sessions")
    async def sessions(include_all: bool = Query(False, alias="all")) -> JSONResponse:
        selected = tracker.get_all_sessions() if include_all else tracker.get_active_sessions()
        return JSONResponse([session.model_dump(mode="json", by_alias=True) for session in selected])

    @app.get("/api/sessions/{session_id}")
    async def session_detail(session_id: str) -> JSONResponse:
        session = tracker.get_session(session_id)
        if session is None:
            return JSONResponse({"error": f"Session {session_id} not found"}, status_code=404)
        return JSONResponse(session.model_dump(mode="json", by_alias=True))

    @app.get("/api/phases")
    async def phases() -> JSONResponse:
        return JSONResponse(
            [phase.model_dump(mode="json", by_alias=True) for phase in tracker.get_phases()]
        )

    return app


def run_dashboard(tracker: PhaseTracker, *, host: str = "127.0.0.1", port: int = 3000, log_level: str = "info") -> None:
    """Serve the dashboard with uvicorn until interrupted."""

    import uvicorn

    logger.info("Launching dashboard", extra={"host": host, "port": port, "graph": tracker.phase_graph.name})
    uvicorn.run(create_app(tracker), host=host, port=port, log_level=log_level.lower())


__all__ = ["create_app", "run_dashboard", "DASHBOARD_HTML"]
