"""
Error taxonomy for the extraction pipeline.

Everything deriving from ScraperError is caught at the scraper boundary and
turned into a ProviderResult.error string. Only OrchestratorError is allowed
to reach the HTTP layer as a 500.
"""
from __future__ import annotations


class ExtractionError(Exception):
    """Base class for every error raised by embedsniff."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class ValidationError(ExtractionError):
    """Malformed content request (user-correctable, HTTP 400)."""


class ScraperError(ExtractionError):
    """A single provider run failed."""


class NavigationError(ScraperError):
    pass


class TriggerNotFoundError(ScraperError):
    def __init__(self, message: str = "trigger not found"):
        super().__init__(message)


class ManifestNotFoundError(ScraperError):
    def __init__(self, message: str = "manifest not found"):
        super().__init__(message)


class UnexpectedScraperError(ScraperError):
    def __init__(self, detail: str):
        super().__init__(f"unexpected error: {detail}")


class BrowserUnavailableError(ExtractionError):
    """The shared browser is not running (not started yet, or shut down)."""

    def __init__(self, message: str = "browser not available"):
        super().__init__(message)


class OrchestratorError(ExtractionError):
    """Fault outside per-provider handling (cache, limiter, registry)."""
