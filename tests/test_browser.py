import asyncio

from psd_worker.utils import browser as browser_module
from psd_worker.utils.browser import BrowserManager
from psd_worker.utils.playwright_config import STEALTH_INIT_SCRIPT


class FakeBrowserContext:
    def __init__(self, options):
        self.options = options
        self.init_scripts = []
        self.closed = False

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def close(self):
        self.closed = True


class FakeBrowser:
    version = "140.0"

    def __init__(self):
        self.connected = True
        self.contexts = []

    def is_connected(self):
        return self.connected

    async def new_context(self, **options):
        context = FakeBrowserContext(options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.connected = False


class FakeChromium:
    def __init__(self):
        self.launches = []
        self.cdp_endpoints = []

    async def launch(self, **config):
        self.launches.append(config)
        return FakeBrowser()

    async def connect_over_cdp(self, endpoint):
        self.cdp_endpoints.append(endpoint)
        return FakeBrowser()


class FakePlaywright:
    def __init__(self):
        self.chromium = FakeChromium()
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakePlaywrightStarter:
    def __init__(self, playwright):
        self.playwright = playwright

    async def start(self):
        return self.playwright


def install_fake_playwright(monkeypatch):
    playwright = FakePlaywright()
    monkeypatch.setattr(
        browser_module, "async_playwright", lambda: FakePlaywrightStarter(playwright)
    )
    return playwright


def test_browser_is_launched_once_and_reused(monkeypatch):
    monkeypatch.delenv("PLAYWRIGHT_WS_ENDPOINT", raising=False)
    playwright = install_fake_playwright(monkeypatch)
    manager = BrowserManager(headless=True)

    async def scenario():
        first = await manager.get_browser()
        second = await manager.get_browser()
        return first, second

    first, second = asyncio.run(scenario())

    assert first is second
    assert len(playwright.chromium.launches) == 1
    assert playwright.chromium.launches[0]["headless"] is True
    assert "--no-sandbox" in playwright.chromium.launches[0]["args"]
    assert manager.is_connected() is True


def test_disconnected_browser_is_relaunched(monkeypatch):
    monkeypatch.delenv("PLAYWRIGHT_WS_ENDPOINT", raising=False)
    playwright = install_fake_playwright(monkeypatch)
    manager = BrowserManager(headless=True)

    async def scenario():
        first = await manager.get_browser()
        first.connected = False
        assert manager.is_connected() is False
        return first, await manager.get_browser()

    first, second = asyncio.run(scenario())

    assert first is not second
    assert len(playwright.chromium.launches) == 2


def test_remote_browser_endpoint_is_used(monkeypatch):
    monkeypatch.setenv("PLAYWRIGHT_WS_ENDPOINT", "ws://browserless:3000")
    playwright = install_fake_playwright(monkeypatch)
    manager = BrowserManager()

    asyncio.run(manager.get_browser())

    assert playwright.chromium.cdp_endpoints == ["ws://browserless:3000"]
    assert playwright.chromium.launches == []


def test_new_context_is_configured_and_closed(monkeypatch):
    monkeypatch.delenv("PLAYWRIGHT_WS_ENDPOINT", raising=False)
    install_fake_playwright(monkeypatch)
    manager = BrowserManager(headless=True)

    async def scenario():
        async with manager.new_context() as context:
            assert context.closed is False
        return context

    context = asyncio.run(scenario())

    assert context.closed is True
    assert context.init_scripts == [STEALTH_INIT_SCRIPT]
    assert context.options["viewport"] == {"width": 1920, "height": 1080}


def test_close_stops_playwright(monkeypatch):
    monkeypatch.delenv("PLAYWRIGHT_WS_ENDPOINT", raising=False)
    playwright = install_fake_playwright(monkeypatch)
    manager = BrowserManager(headless=True)

    async def scenario():
        await manager.get_browser()
        await manager.close()

    asyncio.run(scenario())

    assert playwright.stopped is True
    assert manager.browser is None
    assert manager.is_connected() is False
