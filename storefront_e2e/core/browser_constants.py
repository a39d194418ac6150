# storefront_e2e/core/browser_constants.py
"""
Browser Constants

The closed set of engine kinds the session registry can launch, their
configuration aliases, and per-kind default command line arguments.
"""

from enum import Enum
from typing import Dict, List, Tuple


class BrowserKind(str, Enum):
    """Supported engine kinds, named after the Playwright launchers."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"

    @classmethod
    def resolve(cls, name: str) -> Tuple["BrowserKind", bool]:
        """
        Map a configured browser name to an engine kind.

        Returns the kind and whether the name was recognized. Unrecognized
        names resolve to CHROMIUM; the caller decides how loudly to say so.

        Example:
            >>> BrowserKind.resolve("Safari")
            (<BrowserKind.WEBKIT: 'webkit'>, True)
            >>> BrowserKind.resolve("netscape")
            (<BrowserKind.CHROMIUM: 'chromium'>, False)
        """
        key = (name or "").strip().lower()
        kind = BROWSER_ALIASES.get(key)
        if kind is None:
            return cls.CHROMIUM, False
        return kind, True


BROWSER_ALIASES: Dict[str, BrowserKind] = {
    "chromium": BrowserKind.CHROMIUM,
    "chrome": BrowserKind.CHROMIUM,
    "firefox": BrowserKind.FIREFOX,
    "webkit": BrowserKind.WEBKIT,
    "safari": BrowserKind.WEBKIT,
}


class ChromiumArgs:
    """Chromium arguments that keep background workers from being throttled."""

    DEFAULT = [
        "--disable-background-timer-throttling",
        "--disable-backgrounding-occluded-windows",
        "--disable-renderer-backgrounding",
        "--disable-dev-shm-usage",
    ]


def default_args(kind: BrowserKind) -> List[str]:
    """Default command line arguments for an engine kind."""
    if kind == BrowserKind.CHROMIUM:
        return list(ChromiumArgs.DEFAULT)
    # Firefox and WebKit run fine with Playwright's own defaults
    return []
