# storefront_e2e/core/exceptions/base.py
"""
Base Exception Class for the Storefront E2E Suite

All suite exceptions inherit from AutomationException, which carries
structured context for logging plus recovery suggestions for the person
reading a failed run.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .enums import ErrorCategory, ErrorSeverity


class AutomationException(Exception):
    """
    Base exception class for all suite exceptions.

    Attributes:
        message: Human-readable error description
        error_code: Identifier derived from the class name and time
        category: Error category for classification
        severity: Error severity level
        context: Additional debugging context
        recovery_suggestions: Suggested actions for whoever reads the report
        original_exception: Underlying engine error, if any
        timestamp: When the error occurred

    Example:
        >>> raise AutomationException(
        ...     "Context creation failed",
        ...     category=ErrorCategory.SESSION,
        ...     original_exception=e
        ... ).add_context("viewport", "800x600")
    """

    def __init__(
            self,
            message: str,
            error_code: Optional[str] = None,
            category: ErrorCategory = ErrorCategory.SESSION,
            severity: ErrorSeverity = ErrorSeverity.HIGH,
            context: Optional[Dict[str, Any]] = None,
            recovery_suggestions: Optional[List[str]] = None,
            original_exception: Optional[BaseException] = None
    ):
        super().__init__(message)

        self.message = message
        self.category = category
        self.severity = severity
        self.context: Dict[str, Any] = dict(context or {})
        self.recovery_suggestions: List[str] = list(recovery_suggestions or [])
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)
        self.error_code = error_code or self._generate_error_code()

        if original_exception is not None:
            self.context.setdefault("original_type", type(original_exception).__name__)
            self.context.setdefault("original_message", str(original_exception))

    def _generate_error_code(self) -> str:
        """Error code based on exception type and timestamp."""
        class_name = self.__class__.__name__.replace("Error", "").replace("Exception", "").upper()
        return f"{class_name}_{self.timestamp.strftime('%Y%m%d_%H%M%S_%f')}"

    def add_context(self, key: str, value: Any) -> 'AutomationException':
        """Add contextual information; returns self for chaining."""
        self.context[key] = value
        return self

    def add_recovery_suggestion(self, suggestion: str) -> 'AutomationException':
        """Add a recovery suggestion; duplicates are ignored."""
        if suggestion and suggestion not in self.recovery_suggestions:
            self.recovery_suggestions.append(suggestion)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary suitable for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "context": dict(self.context),
            "recovery_suggestions": list(self.recovery_suggestions),
            "timestamp": self.timestamp.isoformat(),
            "original_exception": {
                "type": type(self.original_exception).__name__,
                "message": str(self.original_exception)
            } if self.original_exception else None,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        lines = [f"{self.__class__.__name__}: {self.message}"]

        if self.context:
            context_str = ', '.join(f"{k}={v}" for k, v in self.context.items())
            lines.append(f"Context: {context_str}")

        if self.recovery_suggestions:
            lines.append("Recovery suggestions:")
            for i, suggestion in enumerate(self.recovery_suggestions, 1):
                lines.append(f"  {i}. {suggestion}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"category={self.category.value}, "
            f"severity={self.severity.value})"
        )
