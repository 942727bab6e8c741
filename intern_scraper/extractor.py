"""
Record extraction from list rows and student detail pages.

List-view fields (name, department, date) only exist while the student list
is shown, so they are read from the row before navigating into it.  Email and
phone only exist on the detail page, inside a nested frame.
"""

import re
import logging
from dataclasses import dataclass, fields
from typing import Optional

from playwright.sync_api import Page, TimeoutError as PlaywrightTimeout

from intern_scraper.errors import (
    DetailFrameNotFoundError,
    NotFoundError,
    PartialExtractionError,
    SettleTimeoutError,
)
from intern_scraper.navigator import first_visible

logger = logging.getLogger("intern_scraper")

# Many frames are mounted; the shown one sits in a div whose id ends in _900.
DETAIL_FRAME = "[id$=_900] > iframe"
EMAIL_CELL = "td.inscrstage-entr-infos-email"
PHONE_CELL = "td.inscrstage-entr-infos-tel"

# Direct children only, nested tables must not shift column positions.
CELL = ":scope > td"


@dataclass(frozen=True)
class Collection:
    """One internship posting as listed in the internship table."""

    title: str
    registered: int


@dataclass(frozen=True)
class ItemRow:
    """Student fields that are only available in the list view."""

    name: str
    department: str
    date: str


@dataclass(frozen=True)
class DetailPatch:
    email: str
    phone: str


@dataclass
class DetailRecord:
    """A complete student record, ready for persistence."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    internship: Optional[str] = None
    department: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def header(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def combine(cls, row: ItemRow, patch: DetailPatch, internship: str) -> "DetailRecord":
        return cls(
            name=row.name,
            email=patch.email,
            phone=patch.phone,
            internship=internship,
            department=row.department,
            date=row.date,
        )

    def validate(self) -> "DetailRecord":
        missing = [name for name in self.header() if getattr(self, name) is None]
        if missing:
            raise PartialExtractionError(
                f"Record for {self.name!r} is missing: {', '.join(missing)}"
            )
        return self

    def as_row(self) -> list[str]:
        return [getattr(self, name) for name in self.header()]


def _cell_texts(row) -> list[str]:
    return [cell.inner_text().strip() for cell in row.query_selector_all(CELL)]


def _cell(texts: list[str], index: int, label: str) -> str:
    if index >= len(texts):
        raise PartialExtractionError(
            f"Row has {len(texts)} cell(s), no column {index} for '{label}'"
        )
    return texts[index]


def parse_count(text: str) -> int:
    """
    Parse the number from cell text like '12 inscrits'.

    Raises:
        PartialExtractionError — the text holds no number.
    """
    match = re.search(r"(\d+)", text)
    if match is None:
        raise PartialExtractionError(f"No count in cell text {text!r}")
    return int(match.group(1))


def extract_collection(row, columns: dict) -> Collection:
    """Read the title and registered-student count of an internship row."""
    texts = _cell_texts(row)
    title = _cell(texts, columns["title"], "title")
    if not title:
        raise PartialExtractionError("Internship row has an empty title")
    count = parse_count(_cell(texts, columns["count"], "count"))
    return Collection(title=title, registered=count)


def collection_link(row, columns: dict):
    """The registered-count link of an internship row, or None."""
    cells = row.query_selector_all(CELL)
    index = columns["count"]
    if index >= len(cells):
        return None
    return cells[index].query_selector("a")


def extract_row(row, columns: dict) -> ItemRow:
    """Read name, department and date from a student row by column order."""
    texts = _cell_texts(row)
    name = _cell(texts, columns["name"], "name")
    if not name:
        raise PartialExtractionError("Student row has an empty name")
    return ItemRow(
        name=name,
        department=_cell(texts, columns["department"], "department"),
        date=_cell(texts, columns["date"], "date"),
    )


def _read_field(frame, selector: str, label: str) -> str:
    element = frame.query_selector(selector)
    if element is None:
        raise PartialExtractionError(f"Detail field '{label}' not found ({selector})")
    return element.inner_text().strip()


def extract_detail(page: Page, timeout_ms: int, grace_ms: int = 0):
    """
    Locate the visible student frame and read email and phone from it.

    Returns (frame, DetailPatch); the frame is handed on to the download and
    return-to-list steps.

    Raises:
        DetailFrameNotFoundError — no visible frame after settling.
        PartialExtractionError   — the frame lacks a required field.
    """
    try:
        frame_element = first_visible(page, DETAIL_FRAME)
    except NotFoundError as e:
        raise DetailFrameNotFoundError(f"Could not find student frame: {e}") from e

    frame = frame_element.content_frame()
    if frame is None:
        raise DetailFrameNotFoundError("Student frame element has no content frame")
    logger.debug("  Found student frame 🤞")

    try:
        frame.wait_for_load_state("load", timeout=timeout_ms)
    except PlaywrightTimeout as e:
        raise SettleTimeoutError(f"Student frame did not load within {timeout_ms}ms") from e
    if grace_ms:
        page.wait_for_timeout(grace_ms)

    patch = DetailPatch(
        email=_read_field(frame, EMAIL_CELL, "email"),
        phone=_read_field(frame, PHONE_CELL, "phone"),
    )
    return frame, patch
