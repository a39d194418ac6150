# storefront_e2e/pages/base_page.py
"""
Base Page Object

Page objects receive the Playwright page bound to the calling execution unit
and translate user actions into engine calls. Timeouts come from the page's
own default timeout, set when the session was created.
"""

from typing import Optional

from playwright.sync_api import Page

from storefront_e2e.core.execution_unit import ExecutionUnit
from storefront_e2e.core.logger import get_logger
from storefront_e2e.core.session_manager import ParallelSessionManager, get_session_manager


class BasePage:
    """Common navigation and interaction helpers."""

    def __init__(self, page: Page):
        self.page = page
        self.logger = get_logger(self.__class__.__name__)

    @classmethod
    def for_unit(
            cls,
            manager: Optional[ParallelSessionManager] = None,
            unit: Optional[ExecutionUnit] = None
    ) -> "BasePage":
        """Build the page object on the unit's currently bound page."""
        manager = manager if manager is not None else get_session_manager()
        return cls(manager.current_page(unit))

    def fill(self, selector: str, value: str) -> None:
        self.page.fill(selector, value)

    def click(self, selector: str) -> None:
        self.page.click(selector)

    def is_visible(self, selector: str) -> bool:
        return self.page.is_visible(selector)

    @staticmethod
    def data_test(name: str) -> str:
        """Selector for the storefront's ``data-test`` attributes."""
        return f'[data-test="{name}"]'
