# storefront_e2e/core/exceptions/session.py
"""
Session Lifecycle Exceptions

- SessionCreationError: the engine, browser, context or page could not be
  built for an execution unit. Fails the requesting scenario only.
- NoActiveSessionError: a locator was called before the unit created a
  session. A contract violation in the suite code, never retried.
- CleanupError: one release step failed. Built and logged by the manager,
  collected and returned, never raised out of teardown.
"""

from typing import Any, Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorSeverity


class SessionException(AutomationException):
    """Base class for errors tied to one execution unit."""

    def __init__(self, message: str, execution_unit: Optional[Any] = None, **kwargs):
        kwargs.setdefault('category', ErrorCategory.SESSION)
        super().__init__(message=message, **kwargs)

        self.execution_unit = execution_unit
        if execution_unit is not None:
            self.add_context("execution_unit", str(execution_unit))


class SessionCreationError(SessionException):
    """
    Building the session chain failed.

    ``stage`` names the step that failed: engine, browser, context or page
    (or ``policy`` when a still-bound session was rejected).
    """

    def __init__(
            self,
            message: str,
            execution_unit: Optional[Any] = None,
            stage: Optional[str] = None,
            **kwargs
    ):
        kwargs.setdefault('severity', ErrorSeverity.HIGH)
        if stage in ("engine", "browser"):
            kwargs.setdefault('category', ErrorCategory.BROWSER)

        super().__init__(
            message=f"Session creation failed: {message}",
            execution_unit=execution_unit,
            **kwargs
        )

        self.stage = stage
        if stage:
            self.add_context("stage", stage)

        if stage in ("engine", "browser"):
            self.add_recovery_suggestion("Run 'playwright install' for the configured browser")
            self.add_recovery_suggestion("Check system resources available to parallel workers")
        elif stage == "policy":
            self.add_recovery_suggestion("Close the current session before creating another one")


class NoActiveSessionError(SessionException):
    """The calling execution unit has no bound session."""

    def __init__(self, execution_unit: Optional[Any] = None, **kwargs):
        kwargs.setdefault('severity', ErrorSeverity.CRITICAL)
        super().__init__(
            message=f"No browser session found for execution unit: {execution_unit}. "
                    f"Call create_session() first.",
            execution_unit=execution_unit,
            **kwargs
        )


class CleanupError(SessionException):
    """A single failed release step; non-fatal."""

    def __init__(
            self,
            step: str,
            execution_unit: Optional[Any] = None,
            original_exception: Optional[BaseException] = None,
            **kwargs
    ):
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        kwargs.setdefault('category', ErrorCategory.CLEANUP)
        super().__init__(
            message=f"Cleanup step '{step}' failed: {original_exception}",
            execution_unit=execution_unit,
            original_exception=original_exception,
            **kwargs
        )
        self.step = step
        self.add_context("step", step)
