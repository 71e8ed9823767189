import asyncio
import logging

from playwright.async_api import async_playwright, BrowserContext, Page

from browser.playwright_utils import apply_default_timeouts, goto_with_retry
from config.settings import settings

logger = logging.getLogger(__name__)

# Chromium leaves these behind when the profile was not shut down cleanly
_PROFILE_LOCKS = ("SingletonLock", "SingletonSocket", "SingletonCookie")

# Only rendered in the nav bar for signed-out visitors
SIGNED_OUT_MARKER = 'a[href*="/signin"], a[data-test-label="landing-small-cta"]'

_pw = None
_context: BrowserContext | None = None
_page: Page | None = None


def _clear_profile_locks() -> None:
    for name in _PROFILE_LOCKS:
        path = settings.browser_data_dir / name
        if path.exists() or path.is_symlink():
            path.unlink()
            logger.info("Removed stale %s from browser profile", name)


async def get_browser_context() -> BrowserContext:
    """Launch (once) the persistent Chromium profile that keeps the fCC login."""
    global _pw, _context

    if _context:
        return _context

    settings.browser_data_dir.mkdir(parents=True, exist_ok=True)
    _clear_profile_locks()

    _pw = await async_playwright().start()
    _context = await _pw.chromium.launch_persistent_context(
        user_data_dir=str(settings.browser_data_dir),
        headless=settings.headless,
        viewport={"width": 1366, "height": 900},
        locale="en-US",
    )
    logger.info("Chromium started with profile %s (headless=%s)", settings.browser_data_dir, settings.headless)
    return _context


async def get_page() -> Page:
    """The one tab every command works in."""
    global _page
    if _page and not _page.is_closed():
        return _page

    ctx = await get_browser_context()
    _page = ctx.pages[0] if ctx.pages else await ctx.new_page()
    apply_default_timeouts(_page)
    return _page


async def safe_goto(page: Page, url: str, wait_selector: str | None = None) -> None:
    """Open ``url``; a slow load or a missing selector is logged, not raised."""
    try:
        await goto_with_retry(page, url)
    except Exception as exc:
        logger.warning("Navigation to %s did not finish cleanly: %s", url, exc)

    # Curriculum pages render client-side after domcontentloaded
    await asyncio.sleep(2)

    if wait_selector:
        try:
            await page.wait_for_selector(wait_selector, timeout=15_000)
        except Exception:
            logger.debug("Selector %s never appeared on %s", wait_selector, url)


async def is_signed_in(page: Page) -> bool:
    return await page.locator(SIGNED_OUT_MARKER).count() == 0


async def wait_for_sign_in(page: Page) -> bool:
    await safe_goto(page, settings.start_url)

    if await is_signed_in(page):
        print("Already signed in to freeCodeCamp.")
        logger.info("Existing freeCodeCamp session found")
        return True

    print("\n" + "=" * 60)
    print("  SIGN IN TO FREECODECAMP")
    print("")
    print("  Use the browser window that just opened.")
    print("  1) Sign in with your freeCodeCamp account")
    print("  2) Wait for the Learn page to load")
    print("  3) Come back here and press Enter")
    print("=" * 60)

    await asyncio.get_running_loop().run_in_executor(
        None, lambda: input("\nPress Enter once you are signed in... ")
    )

    await safe_goto(page, settings.start_url)
    if await is_signed_in(page):
        logger.info("Sign-in complete, session stored in %s", settings.browser_data_dir)
        return True

    logger.warning("Still looks signed out at %s", page.url)
    print("The page still shows a sign-in link. Run 'python main.py login' again if needed.")
    return False


async def close_browser():
    global _pw, _context, _page
    _page = None
    if _context:
        await _context.close()
        _context = None
    if _pw:
        await _pw.stop()
        _pw = None
    logger.info("Browser closed")
