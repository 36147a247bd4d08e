"""
Traffic classification: decides whether an observed URL is an HLS manifest,
a subtitle file, or noise. Shared by request interception and response
observation so both channels dedupe the same way.
"""
from __future__ import annotations
import asyncio
import logging
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

log = logging.getLogger("embedsniff.providers.classifier")

MANIFEST_MARKER = ".m3u8"
SUBTITLE_EXTENSIONS = (".vtt", ".srt")


class TrafficKind(Enum):
    MANIFEST = "manifest"
    SUBTITLE = "subtitle"
    IGNORED = "ignored"


def classify(url: str) -> TrafficKind:
    if not url:
        return TrafficKind.IGNORED
    lowered = url.lower()
    if MANIFEST_MARKER in lowered:
        return TrafficKind.MANIFEST
    if urlsplit(lowered).path.endswith(SUBTITLE_EXTENSIONS):
        return TrafficKind.SUBTITLE
    return TrafficKind.IGNORED


class TrafficCapture:
    """Accumulates classified traffic for one provider run.

    The first manifest observed wins; later manifest URLs (alternate
    qualities, re-issued playlists) are discarded. Subtitles collect in a set.
    """

    def __init__(self, label: str = ""):
        self.label = label
        self.manifest_url: Optional[str] = None
        self.subtitle_urls: set[str] = set()
        self._manifest_seen = asyncio.Event()

    def observe(self, url: str) -> TrafficKind:
        kind = classify(url)
        if kind is TrafficKind.MANIFEST and self.manifest_url is None:
            self.manifest_url = url
            self._manifest_seen.set()
            log.info(f"[{self.label}] Found HLS URL: {url}")
        elif kind is TrafficKind.SUBTITLE and url not in self.subtitle_urls:
            self.subtitle_urls.add(url)
            log.info(f"[{self.label}] Found subtitle URL: {url}")
        return kind

    async def wait_for_manifest(self, timeout: float) -> bool:
        """Race the first manifest event against a timer. True if one arrived."""
        if self._manifest_seen.is_set():
            return True
        try:
            await asyncio.wait_for(self._manifest_seen.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
