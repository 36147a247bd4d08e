import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from embedsniff.core.config import Settings
from embedsniff.providers.base import ContentRequest
from embedsniff.providers.cache import ResultCache
from embedsniff.providers.errors import OrchestratorError, ValidationError
from embedsniff.providers.fetcher import Fetcher
from embedsniff.providers.limiter import ConcurrencyLimiter
from embedsniff.providers.registry import list_providers
from embedsniff.providers.runner import DiscoveryEngine
from embedsniff.providers.scraper import ProviderScraper, ScrapeTimings
from embedsniff.providers.session import BrowserManager

log = logging.getLogger("embedsniff.api")


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "error": message, "results": {}})


def _as_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValidationError("season and episode must be positive integers") from None


def create_app(settings: Optional[Settings] = None, sessions=None, fetcher: Optional[Fetcher] = None) -> FastAPI:
    """Build the app. Tests pass fake `sessions` (anything with startup/session/shutdown)."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        manager = sessions if sessions is not None else BrowserManager(settings)
        probe = fetcher
        if probe is None and settings.preflight:
            probe = Fetcher(timeout=settings.preflight_timeout, user_agent=settings.user_agent)
        if settings.screenshot_dir:
            os.makedirs(settings.screenshot_dir, exist_ok=True)

        # Fatal: if the browser can't start, the app doesn't serve
        await manager.startup()

        scraper = ProviderScraper(
            manager,
            ScrapeTimings.from_settings(settings),
            fetcher=probe,
            screenshot_dir=settings.screenshot_dir,
        )
        app.state.sessions = manager
        app.state.limiter = ConcurrencyLimiter(settings.max_concurrent_scrapes)
        app.state.cache = ResultCache(ttl=settings.cache_ttl, max_entries=settings.cache_max_entries)
        app.state.engine = DiscoveryEngine(
            scraper, app.state.limiter, app.state.cache, deadline=settings.scrape_deadline)
        log.info("Ready: %d concurrent scrapes, cache ttl %ss",
                 settings.max_concurrent_scrapes, settings.cache_ttl)
        try:
            yield
        finally:
            await manager.shutdown()
            if probe is not None:
                await probe.close()

    app = FastAPI(title="embedsniff | HLS & subtitle extractor", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(OrchestratorError)
    async def orchestrator_error(request: Request, exc: OrchestratorError):
        log.error("Extraction failed on %s: %s", request.url.path, exc)
        return _error(500, "unexpected server error")

    # Catch-all; Starlette still re-raises after responding so the server logs it
    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        log.exception("Unhandled error on %s", request.url.path)
        return _error(500, "unexpected server error")

    @app.get("/extract")
    async def extract(
        request: Request,
        kind: str = Query("movie", alias="type"),
        external_id: Optional[str] = None,
        tmdb_id: Optional[str] = None,
        season: Optional[str] = None,
        episode: Optional[str] = None,
    ):
        external_id = external_id or tmdb_id
        if not external_id:
            raise ValidationError("external_id required")
        # Movies ignore season/episode; TV parses them only once both are present
        if kind in ("tv", "show") and season and episode:
            season, episode = _as_int(season), _as_int(episode)
        else:
            season = episode = None
        content = ContentRequest(kind=kind, external_id=external_id, season=season, episode=episode)
        response = await request.app.state.engine.discover(content)
        return response.to_dict()

    @app.get("/providers")
    def providers():
        return list_providers()

    @app.get("/health")
    def health(request: Request):
        state = request.app.state
        return {
            "status": "ok",
            "browser": bool(getattr(state.sessions, "running", False)),
            "limiter": state.limiter.stats(),
            "cache": {"entries": len(state.cache)},
        }

    return app


app = create_app()
