# storefront_e2e/core/logger.py
"""
Structured Logging for the Storefront E2E Suite

This module provides structlog-based logging with:
- Structured JSON (or console) rendering
- Execution-unit and scenario context carried through context variables
- Performance timing for slow engine operations
- Console and rotating-file destinations

Parallel workers interleave their output, so every entry emitted inside a
LoggingContext is tagged with the execution unit that produced it.
"""

import logging
import logging.handlers
import sys
import threading
import time
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

execution_unit_var: ContextVar[str] = ContextVar('execution_unit', default='')
scenario_var: ContextVar[str] = ContextVar('scenario', default='')


class PerformanceTimer:
    """
    Context manager for measuring operation performance.

    Example:
        >>> with PerformanceTimer("launch_browser") as timer:
        ...     launch()
        ...     timer.add_metric("browser_kind", "firefox")
    """

    def __init__(self, operation_name: str, logger: Optional[structlog.BoundLogger] = None):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.metrics: Dict[str, Any] = {}

    def __enter__(self) -> "PerformanceTimer":
        """Start timing the operation."""
        self.start_time = time.perf_counter()
        self.logger.debug(
            "Operation started",
            operation=self.operation_name,
            event_type="performance_start"
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """End timing and log performance metrics."""
        self.end_time = time.perf_counter()
        duration = self.end_time - self.start_time if self.start_time else 0

        log_data = {
            "operation": self.operation_name,
            "duration_seconds": round(duration, 3),
            "event_type": "performance_end",
            **self.metrics
        }

        if exc_type is None:
            self.logger.debug("Operation completed", **log_data)
        else:
            log_data["exception_type"] = exc_type.__name__
            log_data["exception_message"] = str(exc_val) if exc_val else None
            self.logger.warning("Operation failed", **log_data)

    def add_metric(self, key: str, value: Any) -> None:
        """Add a custom metric to be logged with performance data."""
        self.metrics[key] = value

    @property
    def duration(self) -> Optional[float]:
        """Get the current or final duration of the operation."""
        if self.start_time is None:
            return None
        end_time = self.end_time or time.perf_counter()
        return end_time - self.start_time


class LoggingManager:
    """
    Central logging configuration.

    Configuration happens once per process; pytest-xdist workers each
    configure their own copy.
    """

    def __init__(self):
        self._configured = False
        self._lock = threading.Lock()
        self._log_file_handlers: List[logging.Handler] = []

    def configure_logging(
            self,
            log_level: str = "INFO",
            enable_console: bool = True,
            enable_file: bool = False,
            log_file_path: Optional[Path] = None,
            enable_json_format: bool = True,
            max_file_size_mb: int = 100,
            backup_count: int = 5
    ) -> None:
        """
        Configure structlog and the stdlib root logger.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            enable_console: Enable console output
            enable_file: Enable rotating file output
            log_file_path: Path to log file
            enable_json_format: Render JSON instead of the dev console format
            max_file_size_mb: Maximum log file size in MB
            backup_count: Number of backup log files to keep
        """
        with self._lock:
            if self._configured:
                return

            level = getattr(logging, log_level.upper())

            processors = [
                self._add_execution_context,
                self._add_timestamp,
                self._add_framework_context,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
            ]

            if enable_json_format:
                processors.append(structlog.processors.JSONRenderer())
            else:
                processors.append(structlog.dev.ConsoleRenderer())

            structlog.configure(
                processors=processors,
                wrapper_class=structlog.stdlib.BoundLogger,
                logger_factory=structlog.stdlib.LoggerFactory(),
                cache_logger_on_first_use=True,
            )

            root_logger = logging.getLogger()
            root_logger.setLevel(level)
            root_logger.handlers.clear()

            if enable_console:
                console_handler = logging.StreamHandler(sys.stdout)
                console_handler.setFormatter(logging.Formatter("%(message)s"))
                root_logger.addHandler(console_handler)

            if enable_file:
                log_path = log_file_path or Path("target/logs/storefront-e2e.log")
                self._setup_file_handler(root_logger, log_path, max_file_size_mb, backup_count)

            self._configured = True

        structlog.get_logger("logging_manager").debug(
            "Logging system configured",
            log_level=log_level,
            console_enabled=enable_console,
            file_enabled=enable_file,
            json_format=enable_json_format
        )

    def _setup_file_handler(
            self,
            root_logger: logging.Logger,
            log_path: Path,
            max_size_mb: int,
            backup_count: int
    ) -> None:
        """Set up rotating file logging handler."""
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(file_handler)
        self._log_file_handlers.append(file_handler)

    @staticmethod
    def _add_execution_context(logger, method_name, event_dict):
        """Tag entries with the execution unit and scenario, when set."""
        execution_unit = execution_unit_var.get()
        if execution_unit:
            event_dict.setdefault('execution_unit', execution_unit)

        scenario = scenario_var.get()
        if scenario:
            event_dict.setdefault('scenario', scenario)

        return event_dict

    @staticmethod
    def _add_timestamp(logger, method_name, event_dict):
        event_dict['timestamp'] = datetime.now().isoformat()
        return event_dict

    @staticmethod
    def _add_framework_context(logger, method_name, event_dict):
        event_dict['framework'] = 'storefront-e2e'
        return event_dict

    def get_logger(self, name: str = "storefront_e2e") -> structlog.BoundLogger:
        """
        Get a logger, configuring defaults on first use.

        Args:
            name: Logger name for identification
        """
        if not self._configured:
            self.configure_logging()
        return structlog.get_logger(name)

    def reset(self) -> None:
        """Forget the current configuration so the next call reconfigures."""
        with self._lock:
            for handler in self._log_file_handlers:
                handler.close()
            self._log_file_handlers.clear()
            structlog.reset_defaults()
            self._configured = False


_logging_manager = LoggingManager()


def setup_logging(
        log_level: str = "INFO",
        enable_console: bool = True,
        enable_file: bool = False,
        log_file_path: Optional[Path] = None,
        enable_json_format: bool = True,
        max_file_size_mb: int = 100,
        backup_count: int = 5
) -> None:
    """
    Set up logging for the suite. Should be called once at startup.

    Example:
        >>> setup_logging(log_level="DEBUG", enable_json_format=False)
    """
    _logging_manager.configure_logging(
        log_level=log_level,
        enable_console=enable_console,
        enable_file=enable_file,
        log_file_path=log_file_path,
        enable_json_format=enable_json_format,
        max_file_size_mb=max_file_size_mb,
        backup_count=backup_count
    )


def setup_logging_from_settings(settings) -> None:
    """Configure logging from a ``Settings.logging`` section."""
    section = settings.logging
    setup_logging(
        log_level=section.level,
        enable_console=section.console_enabled,
        enable_file=section.file_enabled,
        log_file_path=section.file_path,
        enable_json_format=section.format_type == "structured",
        max_file_size_mb=section.max_file_size_mb,
        backup_count=section.backup_count
    )


def reset_logging() -> None:
    """Drop the current logging configuration."""
    _logging_manager.reset()


def get_logger(name: str = "storefront_e2e") -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> logger = get_logger("session_manager")
        >>> logger.info("Session created", execution_unit="gw0-MainThread")
    """
    return _logging_manager.get_logger(name)


def get_performance_timer(operation_name: str) -> PerformanceTimer:
    """
    Create a performance timer for measuring operation duration.

    Example:
        >>> with get_performance_timer("create_session") as timer:
        ...     manager.create_session()
    """
    return PerformanceTimer(operation_name)


class LoggingContext:
    """
    Context manager that tags log entries with execution unit and scenario.

    Example:
        >>> with LoggingContext(execution_unit="gw1-MainThread", scenario="checkout"):
        ...     get_logger().info("Step executed")
    """

    def __init__(self, execution_unit: Optional[str] = None, scenario: Optional[str] = None):
        self.execution_unit = execution_unit
        self.scenario = scenario
        self._tokens = []

    def __enter__(self) -> "LoggingContext":
        if self.execution_unit is not None:
            self._tokens.append((execution_unit_var, execution_unit_var.set(self.execution_unit)))
        if self.scenario is not None:
            self._tokens.append((scenario_var, scenario_var.set(self.scenario)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


def log_test_step(step_name: str, **kwargs) -> None:
    """
    Log a scenario step with standardized format.

    Example:
        >>> log_test_step("User logged in the app", username="standard_user")
    """
    get_logger("test_steps").info(
        f"Test step: {step_name}",
        step_name=step_name,
        event_type="test_step",
        **kwargs
    )
