from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from ports_core.modules.actions import kill_and_refresh
from ports_core.monitor import PortMonitor
from ports_core.search import filter_ports, group_by_process
from ports_core.settings import load_settings

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent
TEMPLATES_DIR = BASE_DIR / "templates"

VERSION = "0.1.0"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


class KillRequest(BaseModel):
    pids: list[Union[int, str]]


def _default_monitor() -> PortMonitor:
    settings = load_settings()
    return PortMonitor(
        refresh_interval=float(settings["refresh_interval"]),
        lsof_path=settings["lsof_path"],
    )


def create_app(monitor: Optional[PortMonitor] = None, kill_path: Optional[str] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        mon = monitor or _default_monitor()
        app.state.monitor = mon
        app.state.kill_path = kill_path or load_settings()["kill_path"]
        mon.start_monitoring()
        logger.info("Port monitor started")
        try:
            yield
        finally:
            mon.stop()
            logger.info("Port monitor stopped")

    app = FastAPI(title="Ports", version=VERSION, lifespan=lifespan)

    @app.get("/api/health")
    def api_health():
        return JSONResponse({"ok": True, "name": "ports", "version": VERSION})

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request):
        mon: PortMonitor = request.app.state.monitor
        return templates.TemplateResponse(
            request,
            "index.html",
            {"ports": mon.ports, "loading": mon.is_loading},
        )

    @app.get("/api/ports")
    def api_ports(request: Request, q: str = "", grouped: bool = False):
        mon: PortMonitor = request.app.state.monitor
        records = filter_ports(mon.ports, q)
        body = {
            "version": mon.version,
            "loading": mon.is_loading,
            "count": len(records),
        }
        # a search always returns the flat list
        if grouped and not q:
            body["groups"] = [
                {"process": name, "items": [r.to_dict() for r in items]}
                for name, items in group_by_process(records)
            ]
        else:
            body["items"] = [r.to_dict() for r in records]
        return JSONResponse(body)

    @app.post("/api/refresh")
    def api_refresh(request: Request, payload: Optional[dict] = None):
        show_loading = bool((payload or {}).get("show_loading", True))
        request.app.state.monitor.refresh_ports(show_loading=show_loading)
        return JSONResponse({"ok": True, "loading": request.app.state.monitor.is_loading})

    @app.post("/api/kill")
    def api_kill(request: Request, payload: KillRequest):
        """
        Accepts: {"pids": ["123", 456]}
        Every PID is attempted; one failure does not stop the rest.
        """
        pids = [str(p).strip() for p in payload.pids if str(p).strip()]
        if not pids:
            return JSONResponse({"ok": False, "message": "No PIDs given.", "results": []}, status_code=400)

        results = kill_and_refresh(request.app.state.monitor, pids, kill_path=request.app.state.kill_path)
        return JSONResponse({
            "ok": all(r.ok for r in results),
            "results": [r.to_dict() for r in results],
        })

    return app


app = create_app()
