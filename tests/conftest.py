# tests/conftest.py
"""
Shared fixtures and pytest hooks.

Unit and integration tests drive the session manager against in-memory
stand-ins for the Playwright engine, browser, context and page. The e2e
scenarios use the real engine through the ``page`` fixture, which mirrors
the scenario lifecycle: create session → steps → screenshot on failure →
close session; the suite teardown releases every pooled browser.
"""

import threading
import time
from typing import Any, Dict, List, Optional

import pytest

from storefront_e2e.config.settings import Settings, get_settings
from storefront_e2e.core.logger import setup_logging_from_settings
from storefront_e2e.core.session_manager import (
    ParallelSessionManager,
    get_session_manager,
    reset_session_manager
)
from storefront_e2e.core.session_registry import SessionRegistry
from storefront_e2e.hooks.scenario_hooks import scenario_session
from storefront_e2e.hooks.suite_hooks import suite_setup, suite_teardown


class FakePage:
    def __init__(self, context: "FakeContext"):
        self.context = context
        self.closed = False
        self.default_timeout: Optional[int] = None
        self.url = "about:blank"
        self.fail_close = False
        self.fail_screenshot = False
        self.fail_goto = False

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    def goto(self, url: str) -> None:
        if self.fail_goto:
            raise TimeoutError(f"Timeout 30000ms exceeded navigating to {url}")
        self.url = url

    def is_closed(self) -> bool:
        return self.closed

    def close(self) -> None:
        if self.fail_close:
            raise RuntimeError("Target page has been closed")
        self.closed = True

    def screenshot(self) -> bytes:
        if self.fail_screenshot:
            raise RuntimeError("Screenshot capture failed")
        return b"\x89PNG fake screenshot"


class FakeTracing:
    def __init__(self):
        self.start_options: Optional[Dict[str, Any]] = None
        self.stop_path: Optional[str] = None
        self.fail_start = False
        self.fail_stop = False

    def start(self, **options) -> None:
        if self.fail_start:
            raise RuntimeError("Tracing is not supported")
        self.start_options = options

    def stop(self, path: Optional[str] = None) -> None:
        if self.fail_stop:
            raise RuntimeError("Disk full")
        self.stop_path = path


class FakeContext:
    def __init__(self, browser: "FakeBrowser", options: Dict[str, Any]):
        self.browser = browser
        self.options = options
        self.tracing = FakeTracing()
        self.pages: List[FakePage] = []
        self.cookies: List[Dict[str, Any]] = []
        self.closed = False
        self.fail_new_page = False
        self.fail_close = False
        self.fail_goto = False

    def new_page(self) -> FakePage:
        if self.fail_new_page:
            raise RuntimeError("Target closed")
        page = FakePage(self)
        page.fail_goto = self.fail_goto
        self.pages.append(page)
        return page

    def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        self.cookies.extend(cookies)

    def close(self) -> None:
        if self.fail_close:
            raise RuntimeError("Context already closed")
        self.closed = True


class FakeBrowser:
    def __init__(self, kind: str, options: Dict[str, Any]):
        self.kind = kind
        self.options = options
        self.contexts: List[FakeContext] = []
        self.connected = True
        self.close_calls = 0
        self.fail_new_context = False
        self.fail_close = False
        self.on_new_context = None

    def new_context(self, **options) -> FakeContext:
        if self.fail_new_context:
            raise RuntimeError("Browser has been disconnected")
        context = FakeContext(self, options)
        if self.on_new_context is not None:
            self.on_new_context(context)
        self.contexts.append(context)
        return context

    def is_connected(self) -> bool:
        return self.connected

    def close(self) -> None:
        self.close_calls += 1
        if self.fail_close:
            raise RuntimeError("Browser close failed")
        self.connected = False


class FakeBrowserType:
    def __init__(self, engine: "FakeEngine", kind: str):
        self.engine = engine
        self.kind = kind

    def launch(self, **options) -> FakeBrowser:
        self.engine.launches.append((self.kind, options))
        if self.engine.fail_launch:
            raise RuntimeError("Executable doesn't exist")
        browser = FakeBrowser(self.kind, options)
        self.engine.browsers.append(browser)
        return browser


class FakeEngine:
    def __init__(self):
        self.chromium = FakeBrowserType(self, "chromium")
        self.firefox = FakeBrowserType(self, "firefox")
        self.webkit = FakeBrowserType(self, "webkit")
        self.launches: List[Any] = []
        self.browsers: List[FakeBrowser] = []
        self.stopped = False
        self.fail_launch = False
        self.fail_stop = False

    def stop(self) -> None:
        if self.fail_stop:
            raise RuntimeError("Engine stop failed")
        self.stopped = True


class FakeEngineLauncher:
    """Counts launches; optional delay widens race windows."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls = 0
        self.engines: List[FakeEngine] = []
        self.fail = False
        self._lock = threading.Lock()

    def __call__(self) -> FakeEngine:
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise RuntimeError("Driver process failed to start")
        engine = FakeEngine()
        with self._lock:
            self.engines.append(engine)
        return engine


@pytest.fixture
def engine_launcher() -> FakeEngineLauncher:
    return FakeEngineLauncher()


@pytest.fixture
def registry(engine_launcher) -> SessionRegistry:
    return SessionRegistry(engine_launcher=engine_launcher)


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    for name in ("BROWSER", "HEADLESS", "VIEWPORT_WIDTH", "VIEWPORT_HEIGHT"):
        monkeypatch.delenv(name, raising=False)
    return Settings(
        session={
            "trace_dir": tmp_path / "traces",
            "screenshot_dir": tmp_path / "screenshots",
        }
    )


@pytest.fixture
def manager(settings, registry) -> ParallelSessionManager:
    return ParallelSessionManager(settings=settings, registry=registry)


# Real-browser scenario lifecycle

def pytest_configure(config):
    setup_logging_from_settings(get_settings())


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


def pytest_sessionfinish(session, exitstatus):
    manager = reset_session_manager()
    if manager is not None:
        suite_teardown(manager)


@pytest.fixture(scope="session")
def session_manager() -> ParallelSessionManager:
    settings = get_settings()
    suite_setup(settings)
    return get_session_manager(settings)


@pytest.fixture
def page(request, session_manager):
    """The calling worker's isolated page, opened on the storefront."""
    url = session_manager.settings.application_url
    with scenario_session(session_manager, request.node.name, url) as run:
        yield run.page
        report = getattr(request.node, "rep_call", None)
        run.failed = report is None or report.failed

    if run.screenshot is not None:
        request.node.user_properties.append(("screenshot", str(run.screenshot)))
