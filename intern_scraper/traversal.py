"""
Index-based traversal over lists whose element handles go stale.

Following a row (clicking into it) navigates the page and detaches every
sibling handle, so a list is never cached across steps.  A ListSource
re-resolves the live list on each call; iterate_indexed() only keeps an
integer cursor.
"""

import logging
from typing import Iterator, Protocol, Tuple

from intern_scraper.navigator import first_visible

logger = logging.getLogger("intern_scraper")


class ListSource(Protocol):
    """A live list that is re-queried from the document on every call."""

    def current_length(self) -> int: ...

    def element_at(self, index: int): ...


class SelectorListSource:
    """
    Rows of the first visible container matching *container_selector*.

    Both operations resolve the container and its rows from scratch, so a
    handle is only ever used in the step that fetched it.
    """

    def __init__(self, scope, container_selector: str, row_selector: str):
        self._scope = scope
        self.container_selector = container_selector
        self.row_selector = row_selector

    def _rows(self) -> list:
        container = first_visible(self._scope, self.container_selector)
        return container.query_selector_all(self.row_selector)

    def current_length(self) -> int:
        return len(self._rows())

    def element_at(self, index: int):
        rows = self._rows()
        if index >= len(rows):
            return None
        return rows[index]


def iterate_indexed(source: ListSource, label: str = "list") -> Iterator[Tuple[int, object]]:
    """
    Yield (index, element) pairs in ascending index order.

    The first observed length bounds the loop.  The length is re-read on
    every step; if the list shrank below the cursor the sequence ends
    quietly.
    """
    total = source.current_length()
    logger.debug(f"  {label}: {total} element(s) at first read")

    index = 0
    while index < total:
        length = source.current_length()
        if index >= length:
            logger.info(
                f"  {label} shrank to {length} element(s) at index {index} — stopping"
            )
            return
        element = source.element_at(index)
        if element is None:
            logger.info(f"  {label}: element {index} vanished before use — stopping")
            return
        yield index, element
        index += 1
