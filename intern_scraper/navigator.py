"""
Navigator module: visibility resolution, settle waits, and the route from
the portal home page to the internship list.

The portal keeps stale, hidden copies of structurally identical fragments
(tables for previously viewed lists) mounted in the DOM.  Generated ids are
not stable, so visibility is the only discriminator we rely on.
"""

import logging
from playwright.sync_api import Page, TimeoutError as PlaywrightTimeout

from intern_scraper.errors import NotFoundError, SettleTimeoutError

logger = logging.getLogger("intern_scraper")

# Frame holding the portal menu on the home page.
MENU_FRAME_NAME = "principal"
# "Gestion des stages (portail entreprise)" entry inside the menu frame.
MENU_ENTRY = "td > a"


def _is_rendered(element) -> bool:
    """True when the element has a non-empty layout box."""
    box = element.bounding_box()
    return bool(box) and box["width"] > 0 and box["height"] > 0


def visible_all(scope, selector: str) -> list:
    """Return every match of *selector* in *scope* that is currently rendered."""
    return [el for el in scope.query_selector_all(selector) if _is_rendered(el)]


def first_visible(scope, selector: str):
    """
    Return the first rendered match of *selector* within *scope*.

    *scope* is anything with query_selector_all(): a Page, a Frame or an
    ElementHandle.  Candidates are tested in document order.

    Raises:
        NotFoundError — nothing matches, or nothing matching is visible.
    """
    candidates = scope.query_selector_all(selector)
    for element in candidates:
        if _is_rendered(element):
            return element
    raise NotFoundError(
        f"No visible element for '{selector}' ({len(candidates)} candidate(s), all hidden)"
    )


def settled(page: Page, trigger, timeout_ms: int, grace_ms: int = 0):
    """
    Run *trigger* and wait until the page has settled.

    Settled means the navigation started by the trigger has completed AND the
    network has gone idle.  Some content is still fetched by out-of-band XHR
    after that point, so an optional *grace_ms* wait follows; this is a
    best-effort heuristic, callers must still re-query defensively.

    Returns whatever *trigger* returned.

    Raises:
        SettleTimeoutError — navigation or network idle never resolved.
    """
    try:
        with page.expect_navigation(wait_until="load", timeout=timeout_ms):
            result = trigger()
        page.wait_for_load_state("networkidle", timeout=timeout_ms)
    except PlaywrightTimeout as e:
        raise SettleTimeoutError(f"Page did not settle within {timeout_ms}ms: {e}") from e

    if grace_ms:
        logger.debug(f"  Waiting {grace_ms}ms for XHR...")
        page.wait_for_timeout(grace_ms)
    return result


def open_collection_list(page: Page, portal_url: str, timeout_ms: int, grace_ms: int = 0) -> None:
    """
    Load the portal home page and enter the internship management section.

    Used at the start of a run and again after every collection, because the
    way back from a student list is a fresh load rather than a history step.
    """
    logger.info("Opening internship list...")
    try:
        page.goto(portal_url, wait_until="load", timeout=timeout_ms)
    except PlaywrightTimeout as e:
        raise SettleTimeoutError(f"Portal did not load within {timeout_ms}ms: {e}") from e

    frame = page.frame(name=MENU_FRAME_NAME)
    if frame is None:
        raise NotFoundError(f"Menu frame '{MENU_FRAME_NAME}' not found on {page.url}")

    settled(page, lambda: frame.click(MENU_ENTRY), timeout_ms, grace_ms)
    logger.info("Internship list loaded.")
