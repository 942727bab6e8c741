"""
Run context: attach to the user's running Chrome and own its page for the
duration of one run.

Start Chrome with remote debugging first, e.g.:
    google-chrome --remote-debugging-port=21222

then log in to the portal in the first tab and open a second tab.  The
first tab is never touched so the session survives; the run works in the
second one, which also leaves room for an inspector there.
"""

import logging
from playwright.sync_api import sync_playwright, Error as PlaywrightError

from intern_scraper.errors import ConfigurationError

logger = logging.getLogger("intern_scraper")


class RunContext:
    """
    Owns the Playwright driver, the CDP-attached browser and the working
    page.

    Use as a context manager; teardown disconnects on every
    exit path but leaves the user's browser running.
    """

    def __init__(self, config: dict):
        self.config = config
        self.browser = None
        self.page = None
        self._playwright = None

    def __enter__(self) -> "RunContext":
        try:
            self.open()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        cdp_url = self.config["cdp_url"]
        tab_index = self.config["tab_index"]

        self._playwright = sync_playwright().start()
        logger.info(f"Connecting to browser at {cdp_url}...")
        try:
            self.browser = self._playwright.chromium.connect_over_cdp(
                cdp_url, timeout=self.config["navigation_timeout_ms"]
            )
        except PlaywrightError as e:
            raise ConfigurationError(
                f"Could not connect to Chrome at {cdp_url}. "
                f"Start it with --remote-debugging-port first. ({e})"
            ) from e

        pages = [p for ctx in self.browser.contexts for p in ctx.pages]
        if len(pages) <= tab_index:
            raise ConfigurationError(
                f"Need at least {tab_index + 1} open tab(s), found {len(pages)}. "
                f"Open another tab so the first one keeps your session."
            )

        self.page = pages[tab_index]
        self.page.set_viewport_size(self.config["viewport"])
        self.page.set_default_timeout(self.config["default_timeout_ms"])
        logger.info(f"Attached to tab {tab_index} ({self.page.url})")

    def close(self) -> None:
        """Disconnect from the browser without closing it."""
        if self.browser is not None:
            try:
                self.browser.close()
            except PlaywrightError as e:
                logger.debug(f"Browser disconnect failed: {e}")
            self.browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
        logger.debug("Run context closed")
