"""
Exception taxonomy for the scraper.

Every failure that stops a run derives from ScraperError so main.py can
report it and exit non-zero without catching unrelated bugs.
"""


class ScraperError(Exception):
    """Base class for all fatal scraper failures."""


class ConfigurationError(ScraperError):
    """Bad CLI input, bad config file, or an unusable browser setup."""


class AuthenticationError(ScraperError):
    """The portal shows a login form instead of the expected content."""


class NotFoundError(ScraperError):
    """An expected structural fragment is absent or never becomes visible."""


class DetailFrameNotFoundError(NotFoundError):
    """The detail page's nested frame could not be located after settling."""


class SettleTimeoutError(ScraperError):
    """Navigation or network idle did not resolve within the timeout."""


class PartialExtractionError(ScraperError):
    """A required record field could not be read."""


class DownloadTimeoutError(ScraperError):
    """A triggered download never appeared in its destination directory."""


class StaleReferenceError(ScraperError):
    """An element handle was used after its DOM was replaced.

    Never raised on purpose: the traversal re-queries every element right
    before using it.
    """
