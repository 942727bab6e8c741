"""
Authentication check.

Logging in is left to the user in their own browser (so password managers
work and nothing is typed into a terminal).  The run only verifies that the
session is live and stops early when it is not.
"""

import logging
from playwright.sync_api import Page, TimeoutError as PlaywrightTimeout

from intern_scraper.errors import AuthenticationError, SettleTimeoutError

logger = logging.getLogger("intern_scraper")

LOGIN_FORM = "#ww_x_username"

NOT_LOGGED_IN_MESSAGE = "FAILED: You're not logged in. Log in first, in the same browser!"
_NOTICE_HTML = (
    f"{NOT_LOGGED_IN_MESSAGE}<br/>"
    "We will take you to the log in page in a few seconds...<br/>"
    "After you log in, run the script again."
)


def ensure_logged_in(page: Page, portal_url: str, *, check_timeout_ms: int,
                     navigation_timeout_ms: int, notice_ms: int = 10_000) -> None:
    """
    Load the portal and fail fast if it shows the login form.

    On failure the message is shown inside the tab for *notice_ms*, then the
    tab is sent back to the portal so the user can log in there.

    Raises:
        AuthenticationError — the login form is present.
    """
    logger.info(f"Loading portal: {portal_url}")
    try:
        page.goto(portal_url, wait_until="load", timeout=navigation_timeout_ms)
    except PlaywrightTimeout as e:
        raise SettleTimeoutError(f"Portal did not load within {navigation_timeout_ms}ms") from e

    try:
        page.wait_for_selector(LOGIN_FORM, state="attached", timeout=check_timeout_ms)
    except PlaywrightTimeout:
        logger.info("It seems you're logged in! 👍")
        return

    logger.error(NOT_LOGGED_IN_MESSAGE)
    page.set_content(_NOTICE_HTML)
    if notice_ms:
        page.wait_for_timeout(notice_ms)
    try:
        page.goto(portal_url, wait_until="load", timeout=navigation_timeout_ms)
    except PlaywrightTimeout:
        logger.warning("Could not reload the portal after the login notice")
    raise AuthenticationError(NOT_LOGGED_IN_MESSAGE)
