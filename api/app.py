"""HTTP surface for the merged inbox feed."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response

from services.account_registry import AccountRegistry
from services.auth_service import AuthService
from services.feed_service import FeedService
from services.statistics_service import StatisticsService

LOGGER = logging.getLogger(__name__)


def create_app(
    registry: AccountRegistry,
    feed: FeedService,
    stats: StatisticsService,
    auth: Optional[AuthService] = None,
    frontend_url: str = "/",
) -> FastAPI:
    """Create the FastAPI app serving the feed, health and OAuth routes."""

    app = FastAPI(title="unified-inbox", docs_url=None, redoc_url=None)

    @app.get("/emails")
    async def emails(refresh: bool = Query(False)) -> JSONResponse:
        snapshot = await feed.get_emails(force=refresh)
        return JSONResponse(
            [email.to_dict() for email in snapshot.emails],
            headers={
                "X-Feed-Fetched-At": snapshot.fetched_at.isoformat(),
                "X-Feed-Cache": "hit" if snapshot.from_cache else "miss",
                "X-Feed-Age": f"{snapshot.age_seconds:.1f}",
            },
        )

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({
            "status": "ok",
            "accounts": len(registry),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.get("/status")
    async def status() -> JSONResponse:
        return JSONResponse(stats.snapshot())

    @app.get("/auth")
    async def auth_redirect() -> Response:
        if auth is None:
            return PlainTextResponse("OAuth is not configured", status_code=503)
        return RedirectResponse(auth.authorization_url())

    @app.get("/auth/callback")
    async def auth_callback(code: Optional[str] = None) -> Response:
        if auth is None:
            return PlainTextResponse("OAuth is not configured", status_code=503)
        if not code:
            return PlainTextResponse("Missing code in query", status_code=400)
        try:
            address, credential = await run_in_threadpool(auth.exchange, code)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Auth callback error: %s", exc)
            return PlainTextResponse("Authentication failed", status_code=500)
        if registry.register(address, credential):
            feed.invalidate()
        return RedirectResponse(frontend_url)

    return app
