# storefront_e2e/core/diagnostics.py
"""
Diagnostics artifacts: trace archives and failure screenshots.

Everything here is best-effort. A failing scenario must always reach the
report, so nothing in this module raises.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from storefront_e2e.core.execution_unit import ExecutionUnit
from storefront_e2e.core.logger import get_logger

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def sanitize_name(text: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return _UNSAFE_CHARS.sub("_", text)


def trace_path(directory: Path, unit: ExecutionUnit, created_at: datetime) -> Path:
    """Trace archive for a session: ``trace_<unit>_<epoch-ms>.zip``."""
    millis = int(created_at.timestamp() * 1000)
    return Path(directory) / f"trace_{sanitize_name(unit.name)}_{millis}.zip"


def screenshot_path(
        directory: Path,
        scenario_name: str,
        unit: ExecutionUnit,
        taken_at: Optional[datetime] = None
) -> Path:
    """Failure screenshot: ``failed_<scenario>_<unit>_<YYYYmmdd_HHMMSS>.png``."""
    stamp = (taken_at or datetime.now()).strftime("%Y%m%d_%H%M%S")
    name = f"failed_{sanitize_name(scenario_name)}_{sanitize_name(unit.name)}_{stamp}.png"
    return Path(directory) / name


def save_failure_screenshot(manager, scenario_name: str, unit: Optional[ExecutionUnit] = None) -> Optional[Path]:
    """
    Capture the unit's current page and write it next to the other failures.

    Returns the written path, or None when there is nothing to capture or
    the file cannot be written.
    """
    logger = get_logger("diagnostics")
    unit = manager.resolve_unit(unit)
    image = manager.capture_screenshot(unit)
    if image is None:
        logger.info("No screenshot available for failed scenario", execution_unit=unit.name,
                    scenario=scenario_name)
        return None

    path = screenshot_path(manager.settings.session.screenshot_dir, scenario_name, unit)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(image)
    except OSError as e:
        logger.warning("Failed to save screenshot", execution_unit=unit.name, path=str(path), error=str(e))
        return None

    logger.info("Screenshot saved", execution_unit=unit.name, path=str(path))
    return path
