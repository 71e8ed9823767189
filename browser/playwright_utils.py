import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_chain, wait_fixed

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30_000


def _retry_policy():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_chain(wait_fixed(0.5), wait_fixed(1)),
        retry=retry_if_exception_type((PlaywrightTimeoutError, PlaywrightError)),
    )


def apply_default_timeouts(page: Page, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
    page.set_default_timeout(timeout_ms)
    page.set_default_navigation_timeout(timeout_ms)


@_retry_policy()
async def goto_with_retry(page: Page, url: str, timeout_ms: int = 60_000) -> None:
    await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)


@_retry_policy()
async def click_with_retry(locator: Locator, timeout_ms: int = 5_000) -> None:
    await locator.click(timeout=timeout_ms)


async def first_present(page: Page, selector: str) -> Locator | None:
    """First element matching ``selector`` in the live page, or None."""
    locator = page.locator(selector)
    if await locator.count() == 0:
        return None
    return locator.first
