"""
Core types for the embedsniff provider system.

A content request fans out to every registered provider; each provider run
yields a ProviderResult, and the per-request aggregate is what the API returns
(and what the cache stores).
"""
from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .errors import ValidationError

if TYPE_CHECKING:
    from .triggers import TriggerStrategy

MEDIA_KINDS = ("movie", "tv")


# ──────────────────────────────
#  Content request (what the client asked for)
# ──────────────────────────────
@dataclass
class ContentRequest:
    kind: str                         # "movie" | "tv"
    external_id: str                  # TMDB id
    season: Optional[int] = None
    episode: Optional[int] = None

    def __post_init__(self):
        # Normalize: accept both "show" and "tv" → always "tv"
        if self.kind == "show":
            self.kind = "tv"
        self.validate()
        if self.kind == "movie":
            self.season = None
            self.episode = None

    def validate(self):
        if not self.external_id or not str(self.external_id).strip():
            raise ValidationError("external_id required")
        self.external_id = str(self.external_id).strip()
        if self.kind not in MEDIA_KINDS:
            raise ValidationError("type must be movie or tv")
        if self.kind != "tv":
            return
        if self.season is None or self.episode is None:
            raise ValidationError("season and episode required for TV")
        for value in (self.season, self.episode):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationError("season and episode must be positive integers")

    def cache_key(self) -> str:
        return json.dumps(
            {
                "episode": self.episode,
                "external_id": self.external_id,
                "kind": self.kind,
                "season": self.season,
            },
            sort_keys=True,
            separators=(",", ":"),
        )


# ──────────────────────────────
#  Provider registry entry
# ──────────────────────────────
@dataclass(frozen=True)
class Provider:
    name: str
    movie_template: str               # e.g. "https://vidsrc.xyz/embed/movie/{id}"
    tv_template: str                  # e.g. ".../embed/tv?tmdb={id}&season={season}&episode={episode}"
    trigger: "TriggerStrategy" = field(compare=False, repr=False)

    def target_url(self, request: ContentRequest) -> str:
        if request.kind == "tv":
            return self.tv_template.format(
                id=request.external_id, season=request.season, episode=request.episode)
        return self.movie_template.format(id=request.external_id)

    def to_dict(self):
        return {
            "name": self.name,
            "movie_template": self.movie_template,
            "tv_template": self.tv_template,
        }


# ──────────────────────────────
#  Per-provider output
# ──────────────────────────────
@dataclass
class ProviderResult:
    manifest_url: Optional[str] = None
    subtitle_urls: set[str] = field(default_factory=set)
    error: Optional[str] = None
    screenshot: Optional[str] = None

    @classmethod
    def found(cls, manifest_url: str, subtitle_urls=(), screenshot: Optional[str] = None):
        return cls(manifest_url=manifest_url, subtitle_urls=set(subtitle_urls),
                   screenshot=screenshot)

    @classmethod
    def failed(cls, reason: str, screenshot: Optional[str] = None):
        # A failed run never carries partial captures
        return cls(error=reason or "unknown error", screenshot=screenshot)

    @property
    def ok(self) -> bool:
        return self.manifest_url is not None

    def to_dict(self):
        d = {
            "manifest_url": self.manifest_url,
            "subtitle_urls": sorted(self.subtitle_urls),
            "error": self.error,
        }
        if self.screenshot:
            d["screenshot"] = self.screenshot
        return d


# ──────────────────────────────
#  Final aggregate output
# ──────────────────────────────
@dataclass
class AggregateResponse:
    results: dict[str, ProviderResult] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return any(r.manifest_url for r in self.results.values())

    def to_dict(self):
        return {
            "success": self.success,
            "results": {name: r.to_dict() for name, r in self.results.items()},
        }
