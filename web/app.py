"""FastAPI web server – report intake, subscriptions, moderation, live alerts.

Run:
    python main.py --serve            # or
    uvicorn web.app:app --reload
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from notify.dispatch import Dispatcher
from process.cycle import load_feed_config, make_cycle
from process.scheduler import FeedScheduler
from storage import db
from storage.db import ReportStateError, StoreError
from web.events import EventHub

log = logging.getLogger(__name__)

# ── Paths ────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")


# ── Request bodies ───────────────────────────────────────────────────
# Fields are optional so that missing values produce the API's own 400s.


class ReportIn(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    location: Optional[str] = None
    category: Union[list[str], str, None] = None
    image: Optional[str] = None


class SubscriptionIn(BaseModel):
    phone: Union[str, int, None] = None
    email: Optional[str] = None
    location: Optional[str] = None
    method: Optional[str] = None


def _categories(raw: Union[list[str], str, None]) -> list[str]:
    if isinstance(raw, list):
        return [c for c in raw if c]
    return [raw] if raw else []


# ── App factory ──────────────────────────────────────────────────────


def create_app(
    *,
    dispatcher: Dispatcher | None = None,
    scheduler: FeedScheduler | None = None,
    hub: EventHub | None = None,
    init_database: bool = True,
) -> FastAPI:
    """Build the app.  Anything not injected is created from the environment at startup."""
    hub = hub or EventHub()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_database:
            db.init_db()
        if app.state.scheduler is None:
            config = load_feed_config()
            app.state.scheduler = FeedScheduler(
                make_cycle(config, publish=hub.publish),
                interval=config["interval_seconds"],
            )
        yield
        app.state.scheduler.shutdown()

    app = FastAPI(title="Incident Alerts", version="1.0.0", lifespan=lifespan)
    app.state.hub = hub
    app.state.dispatcher = dispatcher or Dispatcher()
    app.state.scheduler = scheduler

    def _scheduler(request: Request) -> FeedScheduler:
        sched = request.app.state.scheduler
        if sched is None:
            raise HTTPException(status_code=503, detail="Scheduler not initialised")
        return sched

    # ── Health ───────────────────────────────────────────────────────

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # ── Report intake ────────────────────────────────────────────────

    @app.post("/api/submit-report")
    def submit_report(body: ReportIn, background_tasks: BackgroundTasks):
        """Store a community report, then notify matching subscribers after responding."""
        if not body.title or not body.content or not body.location:
            raise HTTPException(status_code=400, detail="Missing fields")
        try:
            report = db.create_report(
                title=body.title,
                content=body.content,
                location=body.location,
                categories=_categories(body.category),
                image=body.image or "",
            )
        except StoreError:
            log.exception("Failed to store report %r", body.title[:80])
            raise HTTPException(status_code=500, detail="Failed to submit report")

        hub.publish("news:created", report.to_dict())
        background_tasks.add_task(app.state.dispatcher.notify, report)
        return {"success": True, "news": report.to_dict()}

    # ── Subscriptions ────────────────────────────────────────────────

    @app.post("/subscribe-alert")
    def subscribe_alert(body: SubscriptionIn):
        phone = str(body.phone).strip() if body.phone is not None else ""
        location = (body.location or "").strip()
        if not phone or not location:
            raise HTTPException(status_code=400, detail="phone and location required")
        try:
            sub = db.create_subscription(phone, location, email=body.email, method=body.method)
        except StoreError:
            log.exception("Subscription failed")
            raise HTTPException(status_code=500, detail="Subscription failed")
        return {"success": True, "subscriptionId": sub.id}

    # ── Reports: listing & moderation ────────────────────────────────

    @app.get("/api/news/categories")
    def news_categories():
        return db.report_categories()

    @app.get("/api/news")
    def list_news(page: int = 1, limit: int = 20, search: str = "", location: str = ""):
        return db.search_reports(page=page, limit=limit, search=search, location=location)

    @app.get("/get-news")
    def latest_news():
        return db.latest_reports(limit=200)

    @app.put("/api/news/verify/{ident}")
    def verify_news(ident: str):
        if db.verify_report(ident) is None:
            raise HTTPException(status_code=404, detail="News not found")
        return {"success": True}

    @app.put("/api/news/approve/{ident}")
    def approve_news(ident: str):
        try:
            report = db.approve_report(ident)
        except ReportStateError as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        if report is None:
            raise HTTPException(status_code=404, detail="News not found")
        return {"success": True}

    @app.delete("/api/news/delete/{ident}")
    def delete_news(ident: str):
        if not db.delete_report(ident):
            raise HTTPException(status_code=404, detail="News not found")
        return {"success": True}

    @app.get("/api/news/{ident}")
    def get_news(ident: str):
        report = db.get_report(ident)
        if report is None:
            raise HTTPException(status_code=404, detail="News not found")
        return report.to_dict()

    # ── Alerts ───────────────────────────────────────────────────────

    @app.get("/hatealert-history")
    def alert_history():
        return db.list_alerts()

    @app.delete("/hatealert/{alert_id}")
    def delete_alert(alert_id: int):
        if not db.delete_alert(alert_id):
            raise HTTPException(status_code=404, detail="Alert not found")
        return {"success": True}

    # ── Scraper control ──────────────────────────────────────────────

    @app.post("/api/scraper/start")
    def start_scraper(request: Request):
        sched = _scheduler(request)
        started = sched.start()
        return {"running": sched.is_running(), "started": started}

    @app.post("/api/scraper/stop")
    def stop_scraper(request: Request):
        sched = _scheduler(request)
        stopped = sched.stop()
        return {"running": sched.is_running(), "stopped": stopped}

    @app.get("/api/scraper/status")
    def scraper_status(request: Request):
        return {"running": _scheduler(request).is_running()}

    # ── Live events ──────────────────────────────────────────────────

    @app.websocket("/ws")
    async def live_events(websocket: WebSocket):
        """Push events to the client; accepts 'start-scraper' / 'stop-scraper' commands."""
        await websocket.accept()
        queue = hub.subscribe()

        async def pump() -> None:
            while True:
                message = await queue.get()
                await websocket.send_json(message)

        sender = asyncio.create_task(pump())
        try:
            while True:
                command = (await websocket.receive_text()).strip()
                sched = websocket.app.state.scheduler
                if sched is None:
                    continue
                if command == "start-scraper":
                    sched.start()
                elif command == "stop-scraper":
                    sched.stop()
                else:
                    log.debug("Ignoring unknown command %r", command)
                    continue
                try:
                    queue.put_nowait({"event": "scraper:status", "data": {"running": sched.is_running()}})
                except asyncio.QueueFull:
                    log.warning("Observer queue full – dropping scraper:status reply")
        except WebSocketDisconnect:
            log.debug("Observer disconnected")
        finally:
            hub.unsubscribe(queue)
            sender.cancel()
            for outcome in await asyncio.gather(sender, return_exceptions=True):
                if isinstance(outcome, Exception):
                    log.warning("Event push to observer failed: %s", outcome)

    return app


app = create_app()


# ── Run directly ─────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web.app:app", host="0.0.0.0", port=8000, reload=True)
