# storefront_e2e/hooks/suite_hooks.py
"""
Suite-level setup and teardown for parallel execution.

Called once per worker process: the banner at start, the global release of
every pooled browser and engine at the end.
"""

from typing import List

from storefront_e2e.config.settings import Settings
from storefront_e2e.core.exceptions.session import CleanupError
from storefront_e2e.core.logger import get_logger
from storefront_e2e.core.session_manager import ParallelSessionManager


def suite_setup(settings: Settings) -> None:
    """Log the configuration the run uses."""
    logger = get_logger("suite_hooks")
    summary = settings.summary()
    logger.info("Storefront E2E parallel execution started", **summary)
    logger.info(f"Configured parallel thread count: {settings.parallel_thread_count}")


def suite_teardown(manager: ParallelSessionManager) -> List[CleanupError]:
    """Close all browser resources. Failures are logged, never raised."""
    logger = get_logger("suite_hooks")
    logger.info("Cleaning up all browser resources")
    errors = manager.close_all()
    logger.info("Storefront E2E parallel execution completed", cleanup_failures=len(errors))
    return errors
