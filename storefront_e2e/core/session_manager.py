# storefront_e2e/core/session_manager.py
"""
Parallel Session Manager

Grants every execution unit its own isolated Playwright session (engine,
browser, context, page) while reusing the expensive engine and browser
across the scenarios a unit runs.

Lifecycle per unit:
    create_session  → engine/browser from the SessionRegistry, fresh context
                      with tracing, fresh page, bound as the unit's current pair
    current_page    → the bound page (NoActiveSessionError when unbound)
    close_session   → page closed, trace persisted, context closed, unbound
Suite end:
    close_all       → every leftover binding, browser and engine released

Isolation:
- Contexts and pages only ever live in the unit-keyed binding map; the
  registry pools hold engines and browsers, never contexts.
- Every public operation takes the unit explicitly (or resolves the caller's
  own unit), so no call can reach another unit's binding.

Cleanup is continue-on-error: each release step runs on its own, failures
become CleanupError objects that are logged and returned, never raised.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

from playwright.sync_api import BrowserContext, Page

from storefront_e2e.config.settings import ExistingSessionPolicy, Settings, get_settings
from storefront_e2e.core.diagnostics import trace_path
from storefront_e2e.core.exceptions.enums import ErrorCategory
from storefront_e2e.core.exceptions.session import (
    CleanupError,
    NoActiveSessionError,
    SessionCreationError
)
from storefront_e2e.core.execution_unit import ExecutionUnit, current_execution_unit
from storefront_e2e.core.logger import LoggingContext, get_logger, get_performance_timer
from storefront_e2e.core.session_registry import SessionRegistry

T = TypeVar("T")


@dataclass
class SessionBinding:
    """The current context/page pair of one execution unit."""

    unit: ExecutionUnit
    context: BrowserContext
    page: Page
    session_number: int
    tracing: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def age_seconds(self) -> float:
        return (datetime.now() - self.created_at).total_seconds()


class ParallelSessionManager:
    """
    Per-unit browser session lifecycle on top of the SessionRegistry.

    Args:
        settings: Suite settings (loads from environment if None)
        registry: Engine/browser pools (a fresh registry if None)

    Example:
        >>> manager = ParallelSessionManager()
        >>> page = manager.create_session()
        >>> page.goto(manager.settings.application_url)
        >>> manager.close_session()
        >>> manager.close_all()  # once, at suite end
    """

    def __init__(self, settings: Optional[Settings] = None, registry: Optional[SessionRegistry] = None):
        self.settings = settings if settings is not None else get_settings()
        self.registry = registry if registry is not None else SessionRegistry()
        self.logger = get_logger("session_manager")

        self._bindings: Dict[ExecutionUnit, SessionBinding] = {}
        self._bindings_lock = threading.Lock()
        self._session_counter = 0

    @staticmethod
    def resolve_unit(unit: Optional[ExecutionUnit] = None) -> ExecutionUnit:
        """The given unit, or the calling worker's own unit."""
        return unit if unit is not None else current_execution_unit()

    # Creation

    def create_session(self, unit: Optional[ExecutionUnit] = None) -> Page:
        """
        Build a fresh isolated context and page for the unit and bind them.

        Returns:
            Page: the new current page of the unit

        Raises:
            SessionCreationError: engine, browser, context or page creation
                failed (the previous binding, if any, is left untouched), or
                the ``reject`` policy refused a still-bound session
        """
        unit = self.resolve_unit(unit)

        with LoggingContext(execution_unit=unit.name):
            self._apply_existing_session_policy(unit)

            with get_performance_timer("create_session") as timer:
                engine = self._build(unit, "engine", lambda: self.registry.get_engine(unit))
                browser = self._build(
                    unit, "browser", lambda: self.registry.get_browser(unit, engine, self.settings)
                )
                context = self._build(
                    unit, "context", lambda: browser.new_context(**self.settings.context_options())
                )

                tracing = self._start_tracing(unit, context)

                try:
                    page = context.new_page()
                    page.set_default_timeout(self.settings.browser.timeout)
                except Exception as e:
                    self._discard_context(unit, context)
                    raise SessionCreationError(
                        f"page creation failed: {e}",
                        execution_unit=unit,
                        stage="page",
                        original_exception=e
                    ) from e

                binding = SessionBinding(
                    unit=unit,
                    context=context,
                    page=page,
                    session_number=self._next_session_number(),
                    tracing=tracing
                )
                with self._bindings_lock:
                    self._bindings[unit] = binding

                timer.add_metric("session_number", binding.session_number)

            self.logger.info(
                "Created new browser context",
                execution_unit=unit.name,
                session_number=binding.session_number,
                tracing=tracing
            )
            return page

    def _apply_existing_session_policy(self, unit: ExecutionUnit) -> None:
        existing = self._get_binding(unit)
        if existing is None:
            return

        policy = self.settings.session.on_existing_session
        if policy == ExistingSessionPolicy.REJECT:
            raise SessionCreationError(
                f"execution unit {unit.name} still has session #{existing.session_number} bound",
                execution_unit=unit,
                stage="policy"
            )
        if policy == ExistingSessionPolicy.CLOSE:
            self.logger.info(
                "Closing still-bound session before creating a new one",
                execution_unit=unit.name,
                session_number=existing.session_number
            )
            self.close_session(unit)
        else:
            # The superseded pair stays open until its owner closes it
            self.logger.warning(
                "Superseding still-bound session; previous context is left open",
                execution_unit=unit.name,
                session_number=existing.session_number
            )

    def _build(self, unit: ExecutionUnit, stage: str, step: Callable[[], T]) -> T:
        try:
            return step()
        except Exception as e:
            self.logger.error(
                f"Failed to create browser {stage} for execution unit {unit.name}",
                execution_unit=unit.name,
                stage=stage,
                error=str(e)
            )
            raise SessionCreationError(
                f"{stage} creation failed: {e}",
                execution_unit=unit,
                stage=stage,
                original_exception=e
            ) from e

    def _start_tracing(self, unit: ExecutionUnit, context: BrowserContext) -> bool:
        """Start trace capture; a failure only costs the trace."""
        if not self.settings.session.trace_enabled:
            return False
        try:
            context.tracing.start(**self.settings.tracing_options())
            return True
        except Exception as e:
            self.logger.warning(
                "Tracing could not be started",
                execution_unit=unit.name,
                error=str(e),
                category=ErrorCategory.DIAGNOSTICS.value
            )
            return False

    def _discard_context(self, unit: ExecutionUnit, context: BrowserContext) -> None:
        try:
            context.close()
        except Exception as e:
            self.logger.warning(
                "Failed to close context of an unfinished session",
                execution_unit=unit.name,
                error=str(e)
            )

    def _next_session_number(self) -> int:
        with self._bindings_lock:
            self._session_counter += 1
            return self._session_counter

    # Lookup

    def _get_binding(self, unit: ExecutionUnit) -> Optional[SessionBinding]:
        with self._bindings_lock:
            return self._bindings.get(unit)

    def _require_binding(self, unit: Optional[ExecutionUnit]) -> SessionBinding:
        unit = self.resolve_unit(unit)
        binding = self._get_binding(unit)
        if binding is None:
            raise NoActiveSessionError(unit)
        return binding

    def current_page(self, unit: Optional[ExecutionUnit] = None) -> Page:
        """
        The unit's bound page.

        Raises:
            NoActiveSessionError: create_session was not called for the unit
        """
        return self._require_binding(unit).page

    def current_context(self, unit: Optional[ExecutionUnit] = None) -> BrowserContext:
        """
        The unit's bound browser context.

        Raises:
            NoActiveSessionError: create_session was not called for the unit
        """
        return self._require_binding(unit).context

    def has_session(self, unit: Optional[ExecutionUnit] = None) -> bool:
        return self._get_binding(self.resolve_unit(unit)) is not None

    def active_units(self) -> List[ExecutionUnit]:
        with self._bindings_lock:
            return list(self._bindings)

    # Teardown

    def close_session(self, unit: Optional[ExecutionUnit] = None) -> List[CleanupError]:
        """
        Release the unit's page and context and clear its binding.

        Idempotent: a unit without a binding is a no-op. Returns the cleanup
        failures, which have already been logged.
        """
        unit = self.resolve_unit(unit)
        with self._bindings_lock:
            binding = self._bindings.pop(unit, None)

        if binding is None:
            self.logger.debug("No session bound; nothing to close", execution_unit=unit.name)
            return []

        with LoggingContext(execution_unit=unit.name):
            errors = self._release(binding)
            self.logger.info(
                "Closed browser context",
                execution_unit=unit.name,
                session_number=binding.session_number,
                session_age=round(binding.age_seconds, 3),
                failures=len(errors)
            )
        return errors

    def _release(self, binding: SessionBinding) -> List[CleanupError]:
        errors: List[CleanupError] = []
        unit = binding.unit

        with self._cleanup_step("close_page", unit, errors):
            if not binding.page.is_closed():
                binding.page.close()

        if binding.tracing:
            with self._cleanup_step("save_trace", unit, errors, ErrorCategory.DIAGNOSTICS):
                path = trace_path(self.settings.session.trace_dir, unit, binding.created_at)
                path.parent.mkdir(parents=True, exist_ok=True)
                binding.context.tracing.stop(path=str(path))
                self.logger.debug("Trace saved", execution_unit=unit.name, path=str(path))

        with self._cleanup_step("close_context", unit, errors):
            binding.context.close()

        return errors

    @contextmanager
    def _cleanup_step(
            self,
            step: str,
            unit: ExecutionUnit,
            errors: List[CleanupError],
            category: ErrorCategory = ErrorCategory.CLEANUP
    ) -> Iterator[None]:
        try:
            yield
        except Exception as e:
            cleanup_error = CleanupError(step, execution_unit=unit, original_exception=e, category=category)
            log = getattr(self.logger, cleanup_error.severity.log_method_name())
            log(cleanup_error.message, **cleanup_error.to_dict())
            errors.append(cleanup_error)

    def close_all(self) -> List[CleanupError]:
        """
        Release everything at suite end.

        Bindings that were never closed are released first, then the
        registry closes every browser and engine. Must only run once no unit
        is creating sessions any more; this is not enforced here.
        """
        with self._bindings_lock:
            leftovers = list(self._bindings.values())
            self._bindings.clear()

        errors: List[CleanupError] = []
        with get_performance_timer("close_all") as timer:
            for binding in leftovers:
                self.logger.warning(
                    "Releasing session that was never closed",
                    execution_unit=binding.unit.name,
                    session_number=binding.session_number
                )
                errors.extend(self._release(binding))

            errors.extend(self.registry.close_all())
            timer.add_metric("leftover_sessions", len(leftovers))
            timer.add_metric("failures", len(errors))

        return errors

    # Diagnostics

    def capture_screenshot(self, unit: Optional[ExecutionUnit] = None) -> Optional[bytes]:
        """
        Screenshot of the unit's current page, or None.

        None covers every reason evidence is unavailable: no session, a
        closed page, or a failing capture. Never raises.
        """
        unit = self.resolve_unit(unit)
        binding = self._get_binding(unit)
        if binding is None:
            return None

        try:
            if binding.page.is_closed():
                return None
            return binding.page.screenshot()
        except Exception as e:
            self.logger.warning("Failed to take screenshot", execution_unit=unit.name, error=str(e))
            return None

    @contextmanager
    def session(self, unit: Optional[ExecutionUnit] = None) -> Iterator[Page]:
        """
        Create a session, yield its page, always close it.

        Example:
            >>> with manager.session() as page:
            ...     page.goto("https://www.saucedemo.com/")
        """
        unit = self.resolve_unit(unit)
        page = self.create_session(unit)
        try:
            yield page
        finally:
            self.close_session(unit)

    def get_stats(self) -> Dict[str, Any]:
        with self._bindings_lock:
            bound = len(self._bindings)
            created = self._session_counter
        return {
            "bound_sessions": bound,
            "sessions_created": created,
            "pooled_units": len(self.registry),
        }


_session_manager: Optional[ParallelSessionManager] = None
_session_manager_lock = threading.Lock()


def get_session_manager(settings: Optional[Settings] = None) -> ParallelSessionManager:
    """
    Get the process-wide session manager.

    Args:
        settings: Used only when the manager is first created
    """
    global _session_manager

    with _session_manager_lock:
        if _session_manager is None:
            _session_manager = ParallelSessionManager(settings)
        return _session_manager


def reset_session_manager() -> Optional[ParallelSessionManager]:
    """Forget the process-wide manager and return it (resources are not released)."""
    global _session_manager

    with _session_manager_lock:
        previous, _session_manager = _session_manager, None
        return previous


def create_session(unit: Optional[ExecutionUnit] = None) -> Page:
    return get_session_manager().create_session(unit)


def current_page(unit: Optional[ExecutionUnit] = None) -> Page:
    return get_session_manager().current_page(unit)


def current_context(unit: Optional[ExecutionUnit] = None) -> BrowserContext:
    return get_session_manager().current_context(unit)


def close_session(unit: Optional[ExecutionUnit] = None) -> List[CleanupError]:
    return get_session_manager().close_session(unit)


def close_all() -> List[CleanupError]:
    return get_session_manager().close_all()


def capture_screenshot(unit: Optional[ExecutionUnit] = None) -> Optional[bytes]:
    return get_session_manager().capture_screenshot(unit)
