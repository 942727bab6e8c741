"""
Traversal controller: internships → registered students → detail pages.

Flow per internship:
  1. Re-query the visible internship table, take the row at the cursor
  2. Read title + registered count, load already-recorded names once
  3. Click the registered count → student list (settled)
  4. For each student row not yet recorded:
       read list-only fields → open detail (settled) → read email/phone
       → download files → back to the list (settled)
  5. Append the new records to the internship's sheet
  6. Reload the internship list for the next cursor position

Every handle is fetched right before use; nothing survives a navigation.
"""

import os
import logging
from dataclasses import dataclass, field

from intern_scraper.downloads import download_all
from intern_scraper.errors import DetailFrameNotFoundError, NotFoundError
from intern_scraper.extractor import (
    Collection,
    DetailRecord,
    ItemRow,
    collection_link,
    extract_collection,
    extract_detail,
    extract_row,
)
from intern_scraper.navigator import first_visible, open_collection_list, settled, visible_all
from intern_scraper.store import WorkbookStore
from intern_scraper.traversal import SelectorListSource, iterate_indexed
from intern_scraper.utils import capture_diagnostics, safe_dirname, scaled_timeout

logger = logging.getLogger("intern_scraper")

INTERNSHIP_TABLE = "table[name*=listeStage]"
STUDENT_TABLE = "table.prtl-se-Table.prtl-se-affichageListPostulants"
DATA_ROW = "tr:has(td)"
STUDENT_LINK = "td:first-of-type"
RETURN_LINK = "div.inscrstage-entr-retour a"


@dataclass
class RunSummary:
    collections: int = 0
    appended: int = 0
    skipped: int = 0
    files: int = 0
    missing_details: list = field(default_factory=list)


class InternScraper:
    """Walks every internship and student once, on one page."""

    def __init__(self, page, store: WorkbookStore, config: dict, dest_dir: str):
        self.page = page
        self.store = store
        self.config = config
        self.dest_dir = dest_dir
        self.nav_timeout = scaled_timeout(config["navigation_timeout_ms"], config)
        self.grace = scaled_timeout(config["xhr_grace_ms"], config)
        self.download_timeout = scaled_timeout(config["download_timeout_ms"], config)
        self.summary = RunSummary()

    # ── Navigation helpers ───────────────────────────────────────────────

    def _settled(self, trigger):
        return settled(self.page, trigger, self.nav_timeout, self.grace)

    def _open_collection_list(self) -> None:
        open_collection_list(self.page, self.config["portal_url"], self.nav_timeout, self.grace)

    # ── Public API ───────────────────────────────────────────────────────

    def run(self) -> RunSummary:
        self._open_collection_list()
        internships = SelectorListSource(self.page, INTERNSHIP_TABLE, DATA_ROW)

        for index, row in iterate_indexed(internships, "internships"):
            collection = extract_collection(row, self.config["collection_columns"])
            self.summary.collections += 1
            logger.info(
                f"[{index + 1}] {collection.title} — {collection.registered} registered"
            )

            if collection.registered == 0:
                logger.info("  No registered students, skipping.")
                continue

            known = self.store.existing_names(collection.title)
            logger.info(f"  {len(known)} student(s) already recorded")

            link = collection_link(row, self.config["collection_columns"])
            if link is None:
                raise NotFoundError(f"No registered-students link for '{collection.title}'")
            logger.info("  Going to registered students...")
            self._settled(link.click)

            records = self._process_collection(collection, known)
            self.summary.appended += self.store.append_records(collection.title, records)

            self._open_collection_list()

        logger.info(
            f"Done: {self.summary.collections} internship(s), "
            f"{self.summary.appended} new record(s), {self.summary.skipped} skipped, "
            f"{self.summary.files} file(s)"
        )
        return self.summary

    # ── Per-internship ───────────────────────────────────────────────────

    def _process_collection(self, collection: Collection, known: set) -> list:
        tables = visible_all(self.page, STUDENT_TABLE)
        if len(tables) != 1:
            raise NotFoundError(
                f"Expected exactly one visible student table, found {len(tables)}"
            )

        students = SelectorListSource(self.page, STUDENT_TABLE, DATA_ROW)
        records = []
        taken = set()
        for index, row in iterate_indexed(students, "students"):
            item = extract_row(row, self.config["item_columns"])
            if item.name in known or item.name in taken:
                logger.debug(f"  Already recorded: {item.name}")
                self.summary.skipped += 1
                continue

            record = self._process_student(collection, item, row)
            if record is not None:
                records.append(record)
                taken.add(item.name)
        return records

    # ── Per-student ──────────────────────────────────────────────────────

    def _process_student(self, collection: Collection, item: ItemRow, row):
        cell = row.query_selector(STUDENT_LINK)
        if cell is None:
            raise NotFoundError(f"No clickable cell for student '{item.name}'")
        self._settled(cell.click)
        logger.info(f"  On page of student: {item.name}")

        try:
            frame, patch = extract_detail(self.page, self.nav_timeout, self.grace)
        except DetailFrameNotFoundError as e:
            if not self.config["skip_missing_detail"]:
                raise
            logger.error(f"  {e} — skipping {item.name}")
            capture_diagnostics(self.page, f"detail_frame_{item.name}")
            self.summary.missing_details.append(item.name)
            self._settled(lambda: self.page.go_back(wait_until="load", timeout=self.nav_timeout))
            return None

        record = DetailRecord.combine(item, patch, collection.title).validate()
        logger.debug(f"  {record.email} {record.phone}")

        student_dir = os.path.join(self.dest_dir, safe_dirname(item.name))
        self.summary.files += download_all(self.page, frame, student_dir, self.download_timeout)

        back = first_visible(frame, RETURN_LINK)
        self._settled(back.click)
        return record
