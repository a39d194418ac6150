# storefront_e2e/core/session_registry.py
"""
Session Registry: per-unit engine and browser pools

Starting Playwright and launching a browser are the expensive parts of a
session, so each execution unit gets exactly one engine handle and one
browser handle, created lazily on first use and reused by every later
scenario of that unit.

Concurrency model:
- The pool dictionaries are the only state shared between units.
- A map-level lock guards lookups, inserts and the per-key lock table; it is
  never held while launching.
- The launch itself runs under the unit's own lock, so a racing second call
  for the same unit waits and then receives the first call's handle, while
  other units launch in parallel.
- A failed launch caches nothing; the next call launches again.

Playwright's sync API is bound to the thread that started it, which is why
handles are never shared across units.
"""

import threading
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

from playwright.sync_api import Browser, Playwright, sync_playwright

from storefront_e2e.config.settings import Settings, get_settings
from storefront_e2e.core.browser_constants import BrowserKind, default_args
from storefront_e2e.core.exceptions.session import CleanupError
from storefront_e2e.core.execution_unit import ExecutionUnit
from storefront_e2e.core.logger import get_logger, get_performance_timer

T = TypeVar("T")


def start_playwright() -> Playwright:
    """Default engine launcher."""
    return sync_playwright().start()


class KeyedPool(Generic[T]):
    """
    Dictionary with an atomic get-or-create per key.

    ``get_or_create`` runs the factory at most once per key for as long as
    the key stays in the pool.
    """

    def __init__(self):
        self._items: Dict[Hashable, T] = {}
        self._key_locks: Dict[Hashable, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[T]:
        with self._lock:
            return self._items.get(key)

    def get_or_create(self, key: Hashable, factory: Callable[[], T]) -> T:
        with self._lock:
            if key in self._items:
                return self._items[key]
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            # Another caller may have finished the launch while we waited
            with self._lock:
                if key in self._items:
                    return self._items[key]

            item = factory()

            with self._lock:
                self._items[key] = item
            return item

    def snapshot(self) -> List[Tuple[Hashable, T]]:
        with self._lock:
            return list(self._items.items())

    def drain(self) -> List[Tuple[Hashable, T]]:
        """Remove and return every entry."""
        with self._lock:
            items = list(self._items.items())
            self._items.clear()
            self._key_locks.clear()
            return items

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SessionRegistry:
    """
    Process-wide engine and browser pools keyed by execution unit.

    Args:
        engine_launcher: Callable returning a started engine handle
            (defaults to ``sync_playwright().start()``)
    """

    def __init__(self, engine_launcher: Optional[Callable[[], Any]] = None):
        self._engine_launcher = engine_launcher or start_playwright
        self._engines: KeyedPool[Playwright] = KeyedPool()
        self._browsers: KeyedPool[Browser] = KeyedPool()
        self.logger = get_logger("session_registry")

    def get_engine(self, unit: ExecutionUnit) -> Playwright:
        """Return the unit's engine handle, starting it on first use."""

        def launch() -> Playwright:
            with get_performance_timer("launch_engine") as timer:
                timer.add_metric("execution_unit", unit.name)
                engine = self._engine_launcher()
            self.logger.info("Automation engine started", execution_unit=unit.name)
            return engine

        return self._engines.get_or_create(unit, launch)

    def get_browser(
            self,
            unit: ExecutionUnit,
            engine: Playwright,
            settings: Optional[Settings] = None
    ) -> Browser:
        """
        Return the unit's browser handle, launching it on first use.

        The engine kind comes from ``settings.browser.name``; an unknown kind
        launches chromium and logs a warning.
        """
        settings = settings if settings is not None else get_settings()

        def launch() -> Browser:
            kind, recognized = BrowserKind.resolve(settings.browser.name)
            if not recognized:
                self.logger.warning(
                    f"Unknown browser: {settings.browser.name}. Defaulting to chromium.",
                    execution_unit=unit.name,
                    requested=settings.browser.name
                )

            options = settings.launch_options()
            options["args"] = default_args(kind) + options.get("args", [])

            with get_performance_timer(f"launch_{kind.value}") as timer:
                timer.add_metric("execution_unit", unit.name)
                browser = getattr(engine, kind.value).launch(**options)

            self.logger.info(
                f"Browser {kind.value} launched",
                execution_unit=unit.name,
                browser_kind=kind.value,
                headless=options.get("headless", True)
            )
            return browser

        return self._browsers.get_or_create(unit, launch)

    def browsers(self) -> Dict[ExecutionUnit, Browser]:
        return dict(self._browsers.snapshot())

    def unit_names(self) -> List[str]:
        return sorted(unit.name for unit, _ in self._engines.snapshot())

    def close_all(self) -> List[CleanupError]:
        """
        Close every pooled browser, then every engine.

        Disconnected browsers are skipped. Each closure is attempted on its
        own; failures are logged and returned, never raised. The registry is
        empty and usable afterwards.
        """
        errors: List[CleanupError] = []

        for unit, browser in self._browsers.drain():
            try:
                if browser.is_connected():
                    browser.close()
                else:
                    self.logger.debug("Browser already disconnected", execution_unit=unit.name)
            except Exception as e:
                errors.append(self._cleanup_failed("close_browser", unit, e))

        for unit, engine in self._engines.drain():
            try:
                engine.stop()
            except Exception as e:
                errors.append(self._cleanup_failed("stop_engine", unit, e))

        self.logger.info("Closed all browser resources", failures=len(errors))
        return errors

    def _cleanup_failed(self, step: str, unit: ExecutionUnit, error: Exception) -> CleanupError:
        cleanup_error = CleanupError(step, execution_unit=unit, original_exception=error)
        log = getattr(self.logger, cleanup_error.severity.log_method_name())
        log(cleanup_error.message, **cleanup_error.to_dict())
        return cleanup_error

    def __len__(self) -> int:
        return len(self._engines)
