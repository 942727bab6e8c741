"""
Download orchestration for the files attached to a student detail page.

Each file link is clicked inside page.expect_download(); Playwright hands
back the finished download, which is saved under its displayed name.
"""

import os
import logging
from playwright.sync_api import Page, TimeoutError as PlaywrightTimeout

from intern_scraper.errors import DownloadTimeoutError

logger = logging.getLogger("intern_scraper")

FILE_LINKS = "table.prtl-se-affichage a"

# Drop target=_blank so the click downloads in place instead of opening a tab.
_JS_PREPARE_ANCHOR = """
(a, fileName) => {
    a.removeAttribute('target');
    a.setAttribute('download', fileName);
}
"""


def download_all(page: Page, detail_scope, dest_dir: str, timeout_ms: int) -> int:
    """
    Download every file linked from *detail_scope* into *dest_dir*.

    Files whose name already exists in *dest_dir* are skipped, so an
    interrupted run resumes where it stopped.  Each download is awaited
    until Playwright reports it finished and it is saved.

    Args:
        page: Page owning the detail frame (download events fire on it).
        detail_scope: Frame (or element) holding the file table.
        dest_dir: Target directory, created if absent.
        timeout_ms: Max wait for each download to start.

    Returns:
        Number of files downloaded.

    Raises:
        DownloadTimeoutError — a click never produced a download.
    """
    os.makedirs(dest_dir, exist_ok=True)
    links = detail_scope.query_selector_all(FILE_LINKS)
    logger.info(f"  Found {len(links)} file(s)")

    downloaded = 0
    for link in links:
        file_name = link.inner_text().strip()
        if not file_name:
            logger.warning("  File link without a name — skipped")
            continue
        target = os.path.join(dest_dir, file_name)
        if os.path.exists(target):
            logger.debug(f"  Already downloaded: {file_name}")
            continue

        link.evaluate(_JS_PREPARE_ANCHOR, file_name)
        try:
            with page.expect_download(timeout=timeout_ms) as download_info:
                link.click()
            download = download_info.value
        except PlaywrightTimeout as e:
            raise DownloadTimeoutError(
                f"No download for '{file_name}' within {timeout_ms}ms"
            ) from e

        download.save_as(target)
        logger.info(f"  ⬇ {file_name}")
        downloaded += 1

    return downloaded
