"""In-page command surface: ``window.fccHelper.*`` and the Ctrl+P trigger."""
import asyncio
import logging

from playwright.async_api import Page

from services.credentials import CredentialProvider
from workflow.detector import ModeDetector

logger = logging.getLogger(__name__)

BRIDGE_SCRIPT = """
(() => {
    if (window.fccHelper) return;
    window.fccHelper = {
        detectMode: () => window.__fccHelperDetectMode(),
        listModes: () => window.__fccHelperListModes(),
        executeMode: () => window.__fccHelperExecuteMode(),
        clearCredential: () => window.__fccHelperClearCredential(),
    };
    document.addEventListener('keydown', (event) => {
        if (event.ctrlKey && !event.shiftKey && !event.altKey && event.key === 'p') {
            event.preventDefault();
            window.__fccHelperTrigger();
        }
    }, true);
    console.log('FCC Helper ready: press Ctrl+P or call fccHelper.executeMode()');
})();
"""


class PageBridge:
    def __init__(self, page: Page, detector: ModeDetector, credentials: CredentialProvider):
        self.page = page
        self.detector = detector
        self.credentials = credentials
        self._tasks: set[asyncio.Task] = set()

    async def _detect_mode(self, source) -> str | None:
        handler = await self.detector.detect_current_mode()
        return handler.name if handler else None

    async def _list_modes(self, source) -> list[str]:
        return self.detector.list_modes()

    async def _execute_mode(self, source) -> bool:
        result = await self.detector.execute_current_mode()
        return result.mode_ran

    async def _clear_credential(self, source) -> bool:
        self.credentials.invalidate()
        return True

    async def _trigger(self, source) -> bool:
        # The keydown handler must not block on the whole run.
        if self.detector.busy:
            logger.info("Hotkey ignored: run in progress")
            return False
        task = asyncio.create_task(self.detector.execute_current_mode())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def install(self) -> None:
        await self.page.expose_binding("__fccHelperDetectMode", self._detect_mode)
        await self.page.expose_binding("__fccHelperListModes", self._list_modes)
        await self.page.expose_binding("__fccHelperExecuteMode", self._execute_mode)
        await self.page.expose_binding("__fccHelperClearCredential", self._clear_credential)
        await self.page.expose_binding("__fccHelperTrigger", self._trigger)
        await self.page.add_init_script(BRIDGE_SCRIPT)
        try:
            await self.page.evaluate(BRIDGE_SCRIPT)
        except Exception as exc:
            logger.debug("Bridge will attach on next navigation: %s", exc)
        logger.info("Page bridge installed")

    async def wait_for_pending(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
