import asyncio

import aiohttp
import pytest
from playwright.async_api import Error as PlaywrightError

from embedsniff.providers.base import Provider
from embedsniff.providers.scraper import ProviderScraper, ScrapeTimings, screenshot_name
from embedsniff.providers.triggers import ClickTrigger

from fakes import MANIFEST, SUBTITLE_EN, SUBTITLE_ES, FakeSessions, PageScript, no_trigger_page

FAST = ScrapeTimings(navigation_timeout=1, trigger_timeout=1, settle_delay=0,
                     manifest_timeout=0.2, subtitle_grace=0)

PROVIDER = Provider(
    name="https://vidsrc.test",
    movie_template="https://vidsrc.test/embed/movie/{id}",
    tv_template="https://vidsrc.test/embed/tv?tmdb={id}&season={season}&episode={episode}",
    trigger=ClickTrigger("#the_frame"),
)
URL = "https://vidsrc.test/embed/movie/603"


async def _scrape(script, timings=FAST, deadline=5, **kwargs):
    sessions = FakeSessions(lambda url: script)
    await sessions.startup()
    scraper = ProviderScraper(sessions, timings, **kwargs)
    result = await scraper.scrape(PROVIDER, URL, deadline)
    return result, sessions


@pytest.mark.asyncio
async def test_captures_manifest_and_subtitles_after_click():
    result, sessions = await _scrape(PageScript(on_click=[MANIFEST, SUBTITLE_EN, SUBTITLE_ES]))
    assert result.error is None
    assert result.manifest_url == MANIFEST
    assert result.subtitle_urls == {SUBTITLE_EN, SUBTITLE_ES}
    page = sessions.pages[0]
    assert page.visited == [URL]
    assert page.mouse.clicks == [(60.0, 45.0)]
    assert page.mouse.moves == [(60.0, 45.0)]
    assert all(route.continued for route in page.routes)
    assert sessions.closed == 1


@pytest.mark.asyncio
async def test_manifest_during_initial_load_is_captured():
    result, _ = await _scrape(PageScript(on_load=[MANIFEST]))
    assert result.manifest_url == MANIFEST


@pytest.mark.asyncio
async def test_first_manifest_wins():
    second = "https://cdn.example/hls/720p/index.m3u8"
    result, _ = await _scrape(PageScript(on_load=[MANIFEST], on_click=[second]))
    assert result.manifest_url == MANIFEST


@pytest.mark.asyncio
async def test_first_manifest_wins_when_both_arrive_late():
    later = "https://cdn.example/hls/alt.m3u8"
    result, _ = await _scrape(PageScript(delayed=[(0.01, MANIFEST), (0.02, later)]))
    assert result.manifest_url == MANIFEST


@pytest.mark.asyncio
async def test_waits_for_late_manifest():
    result, sessions = await _scrape(PageScript(delayed=[(0.05, MANIFEST)]))
    assert result.manifest_url == MANIFEST
    assert result.error is None


@pytest.mark.asyncio
async def test_repeated_subtitles_are_deduplicated():
    script = PageScript(on_load=[SUBTITLE_EN, SUBTITLE_EN], on_click=[MANIFEST, SUBTITLE_EN])
    result, sessions = await _scrape(script)
    # request + response channels both saw each URL
    assert len(sessions.pages[0].routes) == 4
    assert result.subtitle_urls == {SUBTITLE_EN}


@pytest.mark.asyncio
async def test_no_manifest_is_an_error_without_partial_subtitles():
    result, sessions = await _scrape(PageScript(on_click=[SUBTITLE_EN]))
    assert result.manifest_url is None
    assert result.subtitle_urls == set()
    assert result.error == "manifest not found"
    assert sessions.closed == 1


@pytest.mark.asyncio
async def test_missing_trigger():
    result, sessions = await _scrape(no_trigger_page())
    assert result.error == "trigger not found"
    assert result.manifest_url is None
    assert sessions.closed == 1


@pytest.mark.asyncio
async def test_navigation_failure():
    err = PlaywrightError("net::ERR_NAME_NOT_RESOLVED at https://vidsrc.test/\nCall log: ...")
    result, sessions = await _scrape(PageScript(goto_error=err))
    assert result.error == "navigation failed: net::ERR_NAME_NOT_RESOLVED at https://vidsrc.test/"
    assert sessions.closed == 1


@pytest.mark.asyncio
async def test_zero_size_trigger_falls_back_to_js_click():
    script = PageScript(box={"x": 0, "y": 0, "width": 0, "height": 0}, on_click=[MANIFEST])
    result, sessions = await _scrape(script)
    page = sessions.pages[0]
    assert page.mouse.clicks == []
    assert page.js_clicks == ["#the_frame"]
    assert result.manifest_url == MANIFEST


@pytest.mark.asyncio
async def test_missing_box_falls_back_to_js_click():
    result, sessions = await _scrape(PageScript(box=None, on_click=[MANIFEST]))
    assert sessions.pages[0].js_clicks == ["#the_frame"]
    assert result.manifest_url == MANIFEST


@pytest.mark.asyncio
async def test_subtitle_grace_wait_only_without_subtitles():
    timings = ScrapeTimings(navigation_timeout=1, trigger_timeout=1, settle_delay=0,
                            manifest_timeout=0.1, subtitle_grace=2)
    _, sessions = await _scrape(PageScript(on_click=[MANIFEST]), timings=timings)
    assert sessions.pages[0].waits == [0, 2000]

    _, sessions = await _scrape(PageScript(on_click=[MANIFEST, SUBTITLE_EN]), timings=timings)
    assert sessions.pages[0].waits == [0]


@pytest.mark.asyncio
async def test_deadline_closes_session():
    result, sessions = await _scrape(PageScript(goto_hang=True), deadline=0.05)
    assert result.error == "deadline exceeded"
    assert sessions.closed == 1
    assert sessions.active == 0


@pytest.mark.asyncio
async def test_browser_gone_fails_cleanly():
    sessions = FakeSessions()
    scraper = ProviderScraper(sessions, FAST)
    result = await scraper.scrape(PROVIDER, URL, 5)
    assert result.error == "browser not available"


@pytest.mark.asyncio
async def test_unexpected_exception_is_converted():
    class Exploding(ClickTrigger):
        async def activate(self, page, timeout, label=""):
            raise KeyError("boom")

    provider = Provider(PROVIDER.name, PROVIDER.movie_template, PROVIDER.tv_template, Exploding("#x"))
    sessions = FakeSessions()
    await sessions.startup()
    result = await ProviderScraper(sessions, FAST).scrape(provider, URL, 5)
    assert result.error == "unexpected error: 'boom'"
    assert sessions.closed == 1


class FakeFetcher:
    def __init__(self, status=200, error=None):
        self.status = status
        self.error = error
        self.calls = []

    async def head(self, url):
        self.calls.append(url)
        if self.error:
            raise self.error
        return self.status


@pytest.mark.asyncio
async def test_preflight_skips_dead_mirror():
    fetcher = FakeFetcher(status=404)
    result, sessions = await _scrape(PageScript(on_click=[MANIFEST]), fetcher=fetcher)
    assert result.error == "provider unreachable: HTTP 404"
    assert fetcher.calls == [URL]
    assert sessions.opened == 0


@pytest.mark.asyncio
async def test_preflight_connection_error():
    fetcher = FakeFetcher(error=aiohttp.ClientConnectionError("connection refused"))
    result, sessions = await _scrape(PageScript(on_click=[MANIFEST]), fetcher=fetcher)
    assert result.error == "provider unreachable: connection refused"
    assert sessions.opened == 0


@pytest.mark.asyncio
async def test_preflight_ok_continues():
    result, sessions = await _scrape(PageScript(on_click=[MANIFEST]), fetcher=FakeFetcher(200))
    assert result.manifest_url == MANIFEST
    assert sessions.opened == 1


@pytest.mark.asyncio
async def test_screenshot_recorded(tmp_path):
    result, sessions = await _scrape(PageScript(on_click=[MANIFEST]), screenshot_dir=str(tmp_path))
    assert result.screenshot.startswith("vidsrc_test_")
    assert result.screenshot.endswith(".png")
    assert sessions.pages[0].screenshots == [str(tmp_path / result.screenshot)]


def test_screenshot_name():
    assert screenshot_name("https://vidsrc.xyz", 1700000000000) == "vidsrc_xyz_1700000000000.png"


@pytest.mark.asyncio
async def test_cancellation_propagates_and_closes_session():
    sessions = FakeSessions(lambda url: PageScript(goto_hang=True))
    await sessions.startup()
    task = asyncio.ensure_future(ProviderScraper(sessions, FAST).scrape(PROVIDER, URL, 10))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert sessions.closed == 1
