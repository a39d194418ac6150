# tests/unit/test_diagnostics.py
"""
Unit tests for trace and screenshot artifacts.
"""

from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from storefront_e2e.core.diagnostics import (
    sanitize_name,
    save_failure_screenshot,
    screenshot_path,
    trace_path
)
from storefront_e2e.core.execution_unit import ExecutionUnit

UNIT = ExecutionUnit("gw0-MainThread")


class TestArtifactNames:

    def test_sanitize_replaces_every_non_alphanumeric(self):
        assert sanitize_name("User checks out: 2 items!") == "User_checks_out__2_items_"
        assert sanitize_name("gw0-ThreadPoolExecutor-0_1") == "gw0_ThreadPoolExecutor_0_1"

    def test_trace_path_uses_epoch_millis(self):
        created_at = datetime.fromtimestamp(1700000000.5)

        path = trace_path(Path("target/traces"), UNIT, created_at)

        assert path == Path("target/traces/trace_gw0_MainThread_1700000000500.zip")

    def test_screenshot_path_format(self):
        taken_at = datetime(2024, 3, 9, 14, 5, 7)

        path = screenshot_path(Path("target/screenshots"), "Checkout [standard_user]", UNIT, taken_at)

        assert path.name == "failed_Checkout__standard_user__gw0_MainThread_20240309_140507.png"
        assert path.parent == Path("target/screenshots")


class TestSaveFailureScreenshot:

    def test_writes_image_to_screenshot_dir(self, manager, settings):
        manager.create_session(UNIT)

        path = save_failure_screenshot(manager, "login fails", UNIT)

        assert path.parent == settings.session.screenshot_dir
        assert path.name.startswith("failed_login_fails_gw0_MainThread_")
        assert path.read_bytes() == b"\x89PNG fake screenshot"

    def test_without_session_returns_none(self, manager, settings):
        assert save_failure_screenshot(manager, "login fails", UNIT) is None
        assert not settings.session.screenshot_dir.exists()

    def test_failed_capture_returns_none(self, manager):
        page = manager.create_session(UNIT)
        page.fail_screenshot = True

        assert save_failure_screenshot(manager, "login fails", UNIT) is None

    def test_unwritable_directory_returns_none(self, manager):
        manager.create_session(UNIT)

        with patch.object(Path, "write_bytes", side_effect=PermissionError("read-only")):
            assert save_failure_screenshot(manager, "login fails", UNIT) is None

    def test_does_not_close_the_session(self, manager):
        page = manager.create_session(UNIT)

        save_failure_screenshot(manager, "login fails", UNIT)

        assert manager.current_page(UNIT) is page
        assert not page.closed
