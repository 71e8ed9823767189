import logging
import re

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page

logger = logging.getLogger(__name__)


def clean_text(value: str | None) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def text_of(el: Tag | None) -> str:
    """textContent of an element, whitespace-collapsed. Empty for None."""
    if el is None:
        return ""
    return clean_text(el.get_text(" "))


class DocumentSnapshot:
    """Immutable parsed copy of the page DOM at one point in time.

    Probes and extractors only ever see a snapshot, so options that render
    after the snapshot was taken are simply not part of it.
    """

    def __init__(self, html: str, url: str = ""):
        self.url = url
        self._soup = BeautifulSoup(html or "", "html.parser")

    def select(self, selector: str, root: Tag | None = None) -> list[Tag]:
        return list((root or self._soup).select(selector))

    def select_one(self, selector: str, root: Tag | None = None) -> Tag | None:
        return (root or self._soup).select_one(selector)

    def exists(self, selector: str) -> bool:
        return self._soup.select_one(selector) is not None

    def count(self, selector: str) -> int:
        return len(self._soup.select(selector))


async def take_snapshot(page: Page) -> DocumentSnapshot:
    html = await page.content()
    logger.debug("Snapshot taken: %d chars from %s", len(html), page.url)
    return DocumentSnapshot(html, url=page.url)
