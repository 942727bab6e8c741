"""
Incremental persistence: one workbook per destination, one sheet per
internship.

Usage:
    store = WorkbookStore(os.path.join(dest_dir, "interns.xlsx"))
    known = store.existing_names("Internship X")
    ... extract only students not in known ...
    store.append_records("Internship X", records)

The store never deduplicates; callers filter with existing_names() first.
"""

import os
import re
import logging

from filelock import FileLock
from openpyxl import Workbook, load_workbook

from intern_scraper.extractor import DetailRecord

logger = logging.getLogger("intern_scraper")

# Excel rejects these in sheet titles and caps titles at 31 characters.
_FORBIDDEN_SHEET_CHARS = re.compile(r"[*?\\:/\[\]]")
MAX_SHEET_TITLE = 31

HEADER = DetailRecord.header()


def sanitize_partition_name(title: str) -> str:
    """
    Map an internship title to a valid, stable sheet title.

    Pure function of *title*: every forbidden character becomes '_', the
    result is stripped and truncated to 31 characters.
    """
    cleaned = _FORBIDDEN_SHEET_CHARS.sub("_", title).strip()
    cleaned = cleaned[:MAX_SHEET_TITLE].strip()
    return cleaned or "_"


class WorkbookStore:
    """Append-only access to per-internship sheets of one xlsx file."""

    def __init__(self, path: str, lock_timeout: int = 30):
        self.path = path
        self._lock = FileLock(path + ".lock", timeout=lock_timeout)

    def existing_names(self, collection_title: str) -> set:
        """
        Names already recorded for *collection_title*.

        Empty when the workbook or its sheet does not exist yet.
        """
        sheet_name = sanitize_partition_name(collection_title)
        if not os.path.exists(self.path):
            return set()

        wb = load_workbook(self.path, read_only=True)
        try:
            if sheet_name not in wb.sheetnames:
                return set()
            ws = wb[sheet_name]
            name_col = HEADER.index("name")
            names = set()
            for row in ws.iter_rows(min_row=2, values_only=True):
                if row and len(row) > name_col and row[name_col] is not None:
                    names.add(str(row[name_col]))
        finally:
            wb.close()

        logger.debug(f"  [store] {len(names)} name(s) already in '{sheet_name}'")
        return names

    def append_records(self, collection_title: str, records: list) -> int:
        """
        Append *records* to the sheet of *collection_title*.

        Creates the workbook and the sheet lazily; the header is written only
        when the sheet is new.  Existing rows are never touched.

        Returns the number of rows appended.
        """
        if not records:
            return 0
        for record in records:
            record.validate()

        sheet_name = sanitize_partition_name(collection_title)
        with self._lock:
            if os.path.exists(self.path):
                wb = load_workbook(self.path)
            else:
                wb = Workbook()
                wb.remove(wb.active)

            if sheet_name in wb.sheetnames:
                ws = wb[sheet_name]
            else:
                ws = wb.create_sheet(title=sheet_name)
                ws.append(HEADER)
                logger.info(f"  [store] Created sheet '{sheet_name}'")

            for record in records:
                ws.append(record.as_row())
            wb.save(self.path)

        logger.info(f"  [store] Appended {len(records)} row(s) to '{sheet_name}'")
        return len(records)
