"""
Utility functions: config loading, logging setup, and helpers.

  - setup_logging()       : console (INFO) + per-run log file (DEBUG)
  - load_config()         : config.yaml with safe defaults for every key
  - scaled_timeout()      : applies timeout_multiplier to a base wait
  - capture_diagnostics() : screenshot, falling back to an HTML dump
"""

import os
import re
import logging
import yaml
from datetime import datetime

from intern_scraper.errors import ConfigurationError


ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_DIR = os.path.join(ROOT_DIR, "logs")
SCREENSHOT_DIR = os.path.join(LOG_DIR, "screenshots")
HTMLDUMP_DIR   = os.path.join(LOG_DIR, "htmldumps")
DEFAULT_CONFIG_PATH = os.path.join(ROOT_DIR, "config.yaml")

LOGGER_NAME = "intern_scraper"


def setup_logging() -> logging.Logger:
    """Configure and return the project logger."""
    os.makedirs(LOG_DIR, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(LOG_DIR, f"run_{timestamp}.log")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Prevent duplicate handlers on repeated calls
    if logger.handlers:
        return logger

    # Console handler
    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO)
    ch_fmt = logging.Formatter("[%(asctime)s] %(levelname)-8s %(message)s", datefmt="%H:%M:%S")
    ch.setFormatter(ch_fmt)

    # File handler
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh_fmt = logging.Formatter("[%(asctime)s] %(levelname)-8s %(name)s — %(message)s")
    fh.setFormatter(fh_fmt)

    logger.addHandler(ch)
    logger.addHandler(fh)

    logger.info(f"Log file: {log_file}")
    return logger


def _require_int(config: dict, key: str, minimum: int) -> None:
    value = config[key]
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        raise ConfigurationError(f"{key} must be int >= {minimum}, got: {value!r}")


def load_config(config_path: str = None) -> dict:
    """
    Load and validate config.yaml, applying safe defaults for all keys.

    An explicitly given path must exist.  When no path is given and the
    default ./config.yaml is absent, the defaults alone are used.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
        explicit = False
    else:
        explicit = True

    config = {}
    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file must hold a mapping: {config_path}")
    elif explicit:
        raise ConfigurationError(f"Config file not found: {config_path}")

    # Browser attachment
    config.setdefault("cdp_url", "http://127.0.0.1:21222")
    config.setdefault("portal_url", "https://isa.epfl.ch/imoniteur_ISAP/isacademia.htm")
    config.setdefault("tab_index", 1)
    viewport = config.setdefault("viewport", {"width": 1365, "height": 1330})
    if not isinstance(viewport, dict) or not {"width", "height"} <= set(viewport):
        raise ConfigurationError(f"viewport must have width and height, got: {viewport!r}")

    # Waits (milliseconds)
    config.setdefault("default_timeout_ms", 5_000)
    config.setdefault("navigation_timeout_ms", 30_000)
    config.setdefault("login_check_timeout_ms", 1_000)
    config.setdefault("login_notice_ms", 10_000)
    config.setdefault("xhr_grace_ms", 2_000)
    config.setdefault("download_timeout_ms", 30_000)  # per file, until the download starts

    _require_int(config, "tab_index", 0)
    for key in ("default_timeout_ms", "navigation_timeout_ms", "login_check_timeout_ms",
                "download_timeout_ms"):
        _require_int(config, key, 1)
    for key in ("login_notice_ms", "xhr_grace_ms"):
        _require_int(config, key, 0)

    multiplier = config.setdefault("timeout_multiplier", 1.0)
    if not isinstance(multiplier, (int, float)) or multiplier < 0.1:
        raise ConfigurationError(
            f"timeout_multiplier must be a number >= 0.1, got: {multiplier!r}"
        )

    # Output
    config.setdefault("workbook_name", "interns.xlsx")
    config.setdefault("skip_missing_detail", False)

    # Column positions (0-based cell order, header text is not stable)
    collection_columns = config.setdefault("collection_columns", {})
    collection_columns.setdefault("title", 0)
    collection_columns.setdefault("count", 4)
    item_columns = config.setdefault("item_columns", {})
    item_columns.setdefault("name", 0)
    item_columns.setdefault("department", 1)
    item_columns.setdefault("date", 2)
    for group in (collection_columns, item_columns):
        for key, value in group.items():
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"Column index for '{key}' must be int >= 0, got: {value!r}")

    return config


def scaled_timeout(base_ms: int, config: dict) -> int:
    """
    Scale a wait by the configured timeout_multiplier.

    Rounded up to the nearest 100ms for cleaner log messages.
    """
    multiplier = config.get("timeout_multiplier", 1.0)
    scaled = int(base_ms * multiplier)
    return ((scaled + 99) // 100) * 100


def safe_dirname(name: str) -> str:
    """Turn a display name into a single path component."""
    cleaned = re.sub(r'[\\/\x00]', "_", name).strip()
    if cleaned in ("", ".", ".."):
        cleaned = cleaned.replace(".", "_") or "_"
    return cleaned


def capture_diagnostics(page, label: str = "error") -> str | None:
    """
    Capture maximum diagnostic data even when the page is broken.

    Chain:
      1. Always log page.url and page.title()
      2. page.screenshot() with a hard 5s timeout
      3. On failure → page.content() → save as .html dump

    Returns the file path of the saved screenshot or HTML dump, or None.
    """
    logger = logging.getLogger(LOGGER_NAME)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_label = re.sub(r"[^\w\-]", "_", label)[:80]

    try:
        current_url = page.url
    except Exception:
        current_url = "<unavailable>"
    try:
        current_title = page.title()
    except Exception:
        current_title = "<unavailable>"
    logger.debug(f"[diag] url={current_url}  title={current_title}")

    try:
        os.makedirs(SCREENSHOT_DIR, exist_ok=True)
        filepath = os.path.join(SCREENSHOT_DIR, f"{timestamp}_{safe_label}.png")
        page.screenshot(path=filepath, full_page=False, timeout=5_000)
        logger.info(f"📸 Screenshot saved: {filepath}")
        return filepath
    except Exception as ss_err:
        logger.debug(f"Screenshot failed ({ss_err}) — falling back to HTML dump")

    try:
        os.makedirs(HTMLDUMP_DIR, exist_ok=True)
        html_filepath = os.path.join(HTMLDUMP_DIR, f"{timestamp}_{safe_label}.html")
        html_content = page.content()
        with open(html_filepath, "w", encoding="utf-8") as f:
            f.write(html_content)
        logger.info(f"📄 HTML dump saved: {html_filepath}")
        return html_filepath
    except Exception as html_err:
        logger.warning(f"HTML dump also failed: {html_err}")
        return None
