import logging

from playwright.async_api import Page

from services.notifications import NotificationSink

logger = logging.getLogger(__name__)

CLIPBOARD_PERMISSIONS = ["clipboard-read", "clipboard-write"]

_PROBE_JS = """
async () => {
    if (!navigator.clipboard) return false;
    await navigator.clipboard.writeText('');
    return true;
}
"""


async def _probe(page: Page) -> bool:
    try:
        return bool(await page.evaluate(_PROBE_JS))
    except Exception as exc:
        logger.debug("Clipboard probe failed: %s", exc)
        return False


async def negotiate_clipboard(page: Page, notifications: NotificationSink) -> bool:
    """Probe silently, else ask the user and grant the permission, else give up."""
    if await _probe(page):
        logger.info("Clipboard permission already granted")
        return True

    logger.info("Clipboard access denied, asking user for permission")
    consent = await notifications.confirm(
        "Clipboard Permission",
        "Allow FCC Helper to copy the solution to your clipboard?",
        "Allow",
    )
    if not consent:
        return False

    try:
        await page.context.grant_permissions(CLIPBOARD_PERMISSIONS)
    except Exception as exc:
        logger.warning("Could not grant clipboard permission: %s", exc)
        return False

    granted = await _probe(page)
    if granted:
        logger.info("Clipboard permission granted after user consent")
    return granted


async def write_clipboard(page: Page, text: str) -> bool:
    try:
        await page.evaluate("(text) => navigator.clipboard.writeText(text)", text)
        return True
    except Exception as exc:
        logger.warning("Could not copy to clipboard: %s", exc)
        return False
