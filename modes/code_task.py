import logging

from playwright.async_api import Page

from browser.clipboard import negotiate_clipboard, write_clipboard
from config.settings import settings
from modes.base import ModeHandler
from modes.records import ApplyReport, CodeTask
from services.notifications import NotificationSink
from solving.schemas import CodeSolution

logger = logging.getLogger(__name__)


class CodeTaskHandler(ModeHandler):
    """Shared applier for lab/workshop pages: show the code, copy it if allowed.

    These pages are graded by running the editor contents, so there is no
    submit control to press.
    """

    schema = CodeSolution

    def __init__(self, clipboard_enabled: bool | None = None):
        super().__init__(0.0)
        self.clipboard_enabled = settings.clipboard_enabled if clipboard_enabled is None else clipboard_enabled

    def describe(self, records: list[CodeTask]) -> str:
        return records[0].title if records and records[0].title else "untitled task"

    def _display(self, solution: CodeSolution) -> None:
        print(f"\n=== {self.name} SOLUTION ===")
        print(solution.solution)
        print("=" * (len(self.name) + 18))
        print(f"Explanation: {solution.explanation}\n")

    async def apply(
        self,
        page: Page,
        answers: CodeSolution,
        records: list[CodeTask],
        notifications: NotificationSink,
    ) -> ApplyReport:
        report = ApplyReport()
        self._display(answers)
        report.applied = 1

        if not self.clipboard_enabled:
            notifications.info("Solution Ready", "Clipboard disabled; copy the code from the console")
            return report

        if not await negotiate_clipboard(page, notifications):
            notifications.warning("Clipboard Permission Denied", "Solution is shown in the console only")
            return report

        if await write_clipboard(page, answers.solution):
            logger.info("Solution copied to clipboard (%d chars)", len(answers.solution))
            notifications.success("Copied!", "Solution copied to clipboard")
        else:
            notifications.warning("Copy Failed", "Could not copy to clipboard; copy the code from the console")
        return report
