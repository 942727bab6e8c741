"""
ISA internship portal scraper — Entry Point

Saves every student registered to your internships into
<dest>/interns.xlsx (one sheet per internship) and their attached files
into <dest>/<student name>/.  Re-running only fetches students that are
not in the workbook yet.

Usage:
    python main.py /path/to/destination/folder
    python main.py /path/to/destination/folder --config path/to/config.yaml

Before running:
    1. Start Chrome with --remote-debugging-port=21222
    2. Log in to the portal in the first tab
    3. Open a second tab (the scraper works there)
"""

import argparse
import logging
import os
import sys

from intern_scraper.auth import ensure_logged_in
from intern_scraper.errors import ConfigurationError, ScraperError
from intern_scraper.scraper import InternScraper
from intern_scraper.session import RunContext
from intern_scraper.store import WorkbookStore
from intern_scraper.utils import setup_logging, load_config, capture_diagnostics, scaled_timeout


def _check_destination(dest_dir: str) -> str:
    if not os.path.isdir(dest_dir):
        raise ConfigurationError(f'Path "{dest_dir}" does not exist or is not a directory')
    return os.path.abspath(dest_dir)


def run(dest_dir: str, config: dict, logger: logging.Logger) -> int:
    """Attach, verify the session, traverse.  Returns the process exit code."""
    store = WorkbookStore(os.path.join(dest_dir, config["workbook_name"]))

    with RunContext(config) as ctx:
        try:
            ensure_logged_in(
                ctx.page,
                config["portal_url"],
                check_timeout_ms=scaled_timeout(config["login_check_timeout_ms"], config),
                navigation_timeout_ms=scaled_timeout(config["navigation_timeout_ms"], config),
                notice_ms=config["login_notice_ms"],
            )
            summary = InternScraper(ctx.page, store, config, dest_dir).run()
        except ScraperError as e:
            logger.error(f"{e.__class__.__name__}: {e}")
            capture_diagnostics(ctx.page, e.__class__.__name__)
            return 1

    if summary.missing_details:
        logger.warning(
            f"Skipped {len(summary.missing_details)} student(s) without a detail frame: "
            f"{', '.join(summary.missing_details)}"
        )
    logger.info("\n✅ All internships processed!")
    return 0


def main() -> int:
    # ── Parse arguments ──────────────────────────────────────────────
    parser = argparse.ArgumentParser(
        description="Export students registered to your internships from the ISA portal"
    )
    parser.add_argument("dest", help="Destination folder (must exist)")
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to config.yaml (default: ./config.yaml, optional)"
    )
    args = parser.parse_args()

    # ── Setup ────────────────────────────────────────────────────────
    logger = setup_logging()
    try:
        config = load_config(args.config)
        dest_dir = _check_destination(args.dest)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    logger.info("Configuration loaded:")
    logger.info(f"  Destination:      {dest_dir}")
    logger.info(f"  Browser:          {config['cdp_url']} (tab {config['tab_index']})")
    logger.info(f"  Portal:           {config['portal_url']}")
    logger.info(f"  Workbook:         {config['workbook_name']}")

    try:
        return run(dest_dir, config, logger)
    except ScraperError as e:
        # Raised while attaching, before a page exists
        logger.error(f"{e.__class__.__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("\nCtrl+C detected. Browser left open, exiting.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
