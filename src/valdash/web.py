"""HTTP surface for the dashboard.

Endpoints:
- GET /health
- GET /api/matches: one page of normalized match history (load-more proxy)
- GET /api/match/{match_id}: one match with round detail and scoreboard
- GET /api/player/{name}/{tag}: profile, stats and reconciled history
- GET /api/player/{name}/{tag}/more: next page merged into cached history

Upstream logical errors come back as HTTP 200 with an ``error`` field and an
empty payload. HTTP 500 is reserved for a missing API credential and for
unexpected exceptions.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from . import __version__
from .api_client import ProviderClient
from .cache import MatchCache
from .config import Config
from .normalize import normalize_matches
from .reconcile import PAGE_SIZE
from .service import DashboardService, build_engine, build_provider, match_summary, session_match_cards
from .utils import safe_int

MISSING_KEY_MESSAGE = "API key not configured"


def create_app(
    config: Config,
    provider: Optional[ProviderClient] = None,
    cache: Optional[MatchCache] = None,
    logger: Optional[logging.Logger] = None,
) -> FastAPI:
    logger = logger or logging.getLogger("valdash.web")
    engine = build_engine(config, cache, logger)
    state: Dict[str, Any] = {"provider": provider}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if state["provider"] is not None:
            await state["provider"].close()

    app = FastAPI(title="valdash", version=__version__, lifespan=lifespan)

    def _service() -> DashboardService:
        if state["provider"] is None:
            state["provider"] = build_provider(config, logger)
        return DashboardService(config, state["provider"], engine, logger)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "version": __version__, "season": config.season_name}

    @app.get("/api/matches")
    async def matches(
        name: Optional[str] = None,
        tag: Optional[str] = None,
        region: Optional[str] = None,
        start: Optional[str] = None,
        size: Optional[str] = None,
    ):
        if not name or not tag:
            return JSONResponse({"error": "Missing name or tag"}, status_code=400)
        try:
            service = _service()
        except RuntimeError:
            return JSONResponse({"error": MISSING_KEY_MESSAGE}, status_code=500)
        try:
            result = await service.provider.get_matches(
                region or config.region,
                name,
                tag,
                start=max(safe_int(start), 0),
                size=safe_int(size, PAGE_SIZE) or PAGE_SIZE,
            )
            if not result.ok:
                return {"error": result.error, "matches": []}
            records = normalize_matches(result.data, agent_icon_template=engine.agent_icon_template)
            return {"matches": [rec.to_dict() for rec in records], "count": len(records)}
        except Exception:
            logger.exception("matches_proxy_failed")
            return JSONResponse({"error": "Failed to fetch matches", "matches": []}, status_code=500)

    @app.get("/api/match/{match_id}")
    async def match(
        match_id: str,
        region: Optional[str] = None,
        name: Optional[str] = None,
        tag: Optional[str] = None,
    ):
        try:
            service = _service()
        except RuntimeError:
            return JSONResponse({"error": MISSING_KEY_MESSAGE}, status_code=500)
        try:
            record, error = await service.match_detail(region or config.region, match_id)
            if record is None:
                return {"error": error, "match": None}
            return match_summary(record, name, tag)
        except Exception:
            logger.exception("match_proxy_failed")
            return JSONResponse({"error": "Failed to fetch match", "match": None}, status_code=500)

    @app.get("/api/player/{name}/{tag}")
    async def player(name: str, tag: str):
        try:
            service = _service()
        except RuntimeError:
            return JSONResponse({"error": MISSING_KEY_MESSAGE}, status_code=500)
        try:
            page = await service.load_player(name, tag)
        except Exception:
            logger.exception("player_page_failed")
            return JSONResponse({"error": "Failed to load player"}, status_code=500)
        if not page.found:
            return JSONResponse({"error": page.error}, status_code=404)
        return page.to_dict()

    @app.get("/api/player/{name}/{tag}/more")
    async def player_more(name: str, tag: str, start: Optional[str] = None):
        try:
            service = _service()
        except RuntimeError:
            return JSONResponse({"error": MISSING_KEY_MESSAGE}, status_code=500)
        try:
            session, error = await service.resume(name, tag, safe_int(start, PAGE_SIZE) or PAGE_SIZE)
        except Exception:
            logger.exception("load_more_failed")
            return JSONResponse({"error": "Failed to load more matches", "matches": []}, status_code=500)
        if session is None:
            return JSONResponse({"error": error}, status_code=404)
        return {
            "matches": session_match_cards(session),
            "stats": service.stats(session).to_dict(),
            "next_offset": session.offset,
            "error": session.last_error,
        }

    return app
