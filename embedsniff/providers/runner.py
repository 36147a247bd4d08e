"""
Discovery engine: fans a content request out to every registered provider,
gated by the process-wide limiter, and aggregates the per-provider results.

Usage:
    engine = DiscoveryEngine(scraper, limiter, cache, deadline=60)
    response = await engine.discover(ContentRequest("movie", "603"))
    print(response.to_dict())
"""
from __future__ import annotations
import asyncio
import logging
from typing import Optional, Sequence

from .base import AggregateResponse, ContentRequest, Provider, ProviderResult
from .cache import ResultCache
from .errors import OrchestratorError, ValidationError
from .limiter import ConcurrencyLimiter
from .registry import get_providers
from .scraper import ProviderScraper

log = logging.getLogger("embedsniff.providers")


class DiscoveryEngine:
    def __init__(self, scraper: ProviderScraper, limiter: ConcurrencyLimiter, cache: ResultCache,
                 *, deadline: float = 60.0, providers: Optional[Sequence[Provider]] = None):
        self.scraper = scraper
        self.limiter = limiter
        self.cache = cache
        self.deadline = deadline
        self._providers = tuple(providers) if providers is not None else None
        self._inflight: dict[str, asyncio.Task] = {}

    @property
    def providers(self) -> tuple[Provider, ...]:
        return self._providers if self._providers is not None else get_providers()

    async def discover(self, request: ContentRequest) -> AggregateResponse:
        try:
            return await self._discover(request)
        except (ValidationError, OrchestratorError):
            raise
        except Exception as e:
            log.exception("Discovery failed outside provider handling")
            raise OrchestratorError(f"discovery failed: {e}") from e

    async def _discover(self, request: ContentRequest) -> AggregateResponse:
        request.validate()
        targets = [(p, p.target_url(request)) for p in self.providers]

        key = request.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            log.info("Cache hit for %s", key)
            return cached

        # Identical requests already in flight share one fan-out
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fan_out(key, targets))
            self._inflight[key] = task
        else:
            log.info("Joining in-flight discovery for %s", key)
        # Cancelling one caller leaves the shared run going for the rest
        return await asyncio.shield(task)

    async def _fan_out(self, key: str, targets) -> AggregateResponse:
        async def _try_provider(provider: Provider, url: str) -> ProviderResult:
            try:
                return await self.limiter.run(self.scraper.scrape, provider, url, self.deadline)
            except Exception as e:
                # The scraper converts its own failures; this catches anything it missed
                log.warning(f"[{provider.name}] Provider failed: {e}")
                return ProviderResult.failed(str(e) or type(e).__name__)

        try:
            # Fire all providers concurrently; the limiter decides how many actually run
            results = await asyncio.gather(*(_try_provider(p, url) for p, url in targets))

            response = AggregateResponse(results={p.name: r for (p, _), r in zip(targets, results)})
            if not response.success:
                log.warning("All providers exhausted, no manifest found for %s", key)
            self.cache.put(key, response)
            return response
        finally:
            self._inflight.pop(key, None)
