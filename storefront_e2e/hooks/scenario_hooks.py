# storefront_e2e/hooks/scenario_hooks.py
"""
Per-scenario lifecycle: isolated session at start, evidence on failure and
release of the session at the end.

The scenario's outcome is decided before teardown runs, so nothing in the
teardown may raise: a failed screenshot or close must not turn into a
second failure.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from playwright.sync_api import Page

from storefront_e2e.core.diagnostics import save_failure_screenshot
from storefront_e2e.core.execution_unit import ExecutionUnit
from storefront_e2e.core.logger import LoggingContext, get_logger
from storefront_e2e.core.session_manager import ParallelSessionManager


@dataclass
class ScenarioRun:
    """One scenario's page and outcome; ``failed`` stays True until the runner says otherwise."""

    name: str
    unit: ExecutionUnit
    page: Page
    failed: bool = True
    screenshot: Optional[Path] = None


def scenario_teardown(
        manager: ParallelSessionManager,
        scenario_name: str,
        failed: bool,
        unit: Optional[ExecutionUnit] = None
) -> Optional[Path]:
    """
    Screenshot a failed scenario, then close the unit's session.

    Returns:
        Path of the saved screenshot, or None
    """
    unit = manager.resolve_unit(unit)
    logger = get_logger("scenario_hooks")
    screenshot = None

    with LoggingContext(execution_unit=unit.name, scenario=scenario_name):
        try:
            if failed:
                screenshot = save_failure_screenshot(manager, scenario_name, unit)
        finally:
            errors = manager.close_session(unit)
            logger.info("Browser context closed", cleanup_failures=len(errors))

    return screenshot


@contextmanager
def scenario_session(
        manager: ParallelSessionManager,
        scenario_name: str,
        start_url: Optional[str] = None,
        unit: Optional[ExecutionUnit] = None
) -> Iterator[ScenarioRun]:
    """
    Run one scenario on a fresh session of the unit.

    Creates the session and opens ``start_url``. The caller sets
    ``run.failed`` from the scenario's outcome; any exception raised inside
    the block, navigation included, leaves it failed. The teardown always
    runs and stores the screenshot path on the run.

    Example:
        >>> with scenario_session(manager, "checkout", settings.application_url) as run:
        ...     LoginPage(run.page).login("standard_user", "secret_sauce")
        ...     run.failed = False
    """
    unit = manager.resolve_unit(unit)
    run = ScenarioRun(name=scenario_name, unit=unit, page=manager.create_session(unit))
    try:
        if start_url is not None:
            run.page.goto(start_url)
        yield run
    finally:
        run.screenshot = scenario_teardown(manager, scenario_name, run.failed, unit)
