# storefront_e2e/core/exceptions/enums.py
"""
Exception Classification Enums

Consistent classification for session errors so that logs from parallel
workers can be filtered and aggregated by category and severity.
"""

from enum import Enum
from typing import Dict


class ErrorSeverity(str, Enum):
    """
    Error severity levels.

    Usage:
        >>> log = getattr(logger, error.severity.log_method_name())
        >>> log(error.message, **error.to_dict())
    """

    LOW = "low"
    """Cleanup and diagnostics problems: logged, execution continues."""

    MEDIUM = "medium"
    """Problems that may affect reliability of later scenarios."""

    HIGH = "high"
    """Failures that fail the current scenario."""

    CRITICAL = "critical"
    """Programming-contract violations that must be fixed in the suite itself."""

    def log_method_name(self) -> str:
        """structlog method used when an exception of this severity is logged."""
        mapping: Dict[ErrorSeverity, str] = {
            ErrorSeverity.LOW: "warning",
            ErrorSeverity.MEDIUM: "warning",
            ErrorSeverity.HIGH: "error",
            ErrorSeverity.CRITICAL: "critical",
        }
        return mapping[self]


class ErrorCategory(str, Enum):
    """Functional area an error belongs to."""

    BROWSER = "browser"
    """Engine and browser process launch or crash."""

    SESSION = "session"
    """Context/page binding lifecycle."""

    CLEANUP = "cleanup"
    """Page, context, browser or engine release."""

    DIAGNOSTICS = "diagnostics"
    """Tracing and screenshot capture."""

    CONFIGURATION = "configuration"
    """Invalid or missing settings."""
