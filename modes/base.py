import asyncio
import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from playwright.async_api import Page
from pydantic import BaseModel

from browser.playwright_utils import click_with_retry, first_present
from browser.snapshot import DocumentSnapshot
from modes.records import ApplicationWarning, ApplyReport
from services.notifications import NotificationSink

logger = logging.getLogger(__name__)


class PageMode(str, Enum):
    QUIZ = "QUIZ"
    BIG_QUIZ = "BIGQUIZ"
    LAB = "LAB"
    WORKSHOP = "WORKSHOP"


def css_string(value: str) -> str:
    """Quote ``value`` for use inside a CSS attribute selector."""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def response_format_block(example: dict[str, Any]) -> str:
    return "Respond with JSON in this exact format:\n" + json.dumps(example, indent=2)


class ModeHandler(ABC):
    """One page layout family: probe, extractor, prompt, schema and applier."""

    mode: PageMode
    schema: type[BaseModel]
    submit_selector: str | None = None

    def __init__(self, settle_seconds: float = 0.0):
        self.settle_seconds = settle_seconds

    @property
    def name(self) -> str:
        return self.mode.value

    @abstractmethod
    def probe(self, snapshot: DocumentSnapshot) -> bool:
        """Pure check: does this snapshot look like this mode's page?"""

    @abstractmethod
    def extract(self, snapshot: DocumentSnapshot) -> list:
        """Records in page order. Malformed items are skipped, never raised."""

    @abstractmethod
    def build_prompt(self, records: list) -> str: ...

    @abstractmethod
    async def apply(
        self,
        page: Page,
        answers: BaseModel,
        records: list,
        notifications: NotificationSink,
    ) -> ApplyReport: ...

    def describe(self, records: list) -> str:
        return f"{len(records)} question(s)"

    async def activate(
        self,
        page: Page,
        selector: str,
        identifier: int,
        report: ApplyReport,
        notifications: NotificationSink,
    ) -> bool:
        """Click the control matching ``selector``; a miss becomes a warning."""
        control = await first_present(page, selector)
        if control is None:
            self.warn(report, notifications, identifier, f"Could not find control for question {identifier}")
            return False
        try:
            await click_with_retry(control)
        except Exception as exc:
            self.warn(report, notifications, identifier, f"Could not click answer for question {identifier}: {exc}")
            return False
        report.applied += 1
        return True

    def warn(
        self,
        report: ApplyReport,
        notifications: NotificationSink,
        identifier: int | None,
        message: str,
    ) -> None:
        logger.warning(message)
        report.warnings.append(ApplicationWarning(identifier=identifier, message=message))
        notifications.warning("Selection Warning", message)

    async def settle(self) -> None:
        if self.settle_seconds > 0:
            await asyncio.sleep(self.settle_seconds)

    async def submit(self, page: Page, report: ApplyReport, notifications: NotificationSink) -> bool:
        """Wait the settle delay once, then try the submit control once."""
        if not self.submit_selector:
            return False

        await self.settle()
        report.submission_attempted = True

        button = await first_present(page, self.submit_selector)
        if button is None:
            try:
                labels = await page.locator("button").all_text_contents()
            except Exception:
                labels = []
            logger.warning("Could not find submit button. Available buttons: %s", labels)
            notifications.warning("Submit Warning", f"Could not auto-submit {self.name.lower()}. Please submit manually.")
            return False

        try:
            await click_with_retry(button)
        except Exception as exc:
            logger.warning("Submit click failed: %s", exc)
            notifications.warning("Submit Warning", "Submit button could not be clicked. Please submit manually.")
            return False

        report.submitted = True
        logger.info("Submitted %s", self.name)
        return True
