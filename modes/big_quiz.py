import logging
import re

from playwright.async_api import Locator, Page

from browser.playwright_utils import click_with_retry
from browser.snapshot import DocumentSnapshot, text_of
from config.settings import settings
from modes.base import ModeHandler, PageMode, css_string, response_format_block
from modes.records import ApplyReport, QuestionOption, QuestionRecord
from services.notifications import NotificationSink
from solving.schemas import BigQuizAnswers

logger = logging.getLogger(__name__)

CONTAINER = ".quiz-challenge-container"
ITEM = ".quiz-challenge-container ul li"
RADIO_GROUP = '[role="radiogroup"]'
QUESTION_LABEL = ".quiz-question-label p"
QUESTION_NUMBER = 'span[role="none"]:first-child'
RADIO = '[role="radio"]'
ANSWER_LABEL = ".quiz-answer-label"


def parse_question_number(text: str | None, position: int) -> int:
    """'3.' -> 3; items without a readable number fall back to their 1-based position."""
    match = re.search(r"\d+", text or "")
    return int(match.group(0)) if match else position


class BigQuizModeHandler(ModeHandler):
    """End-of-module quiz: a long list of radiogroups keyed by data-value."""

    mode = PageMode.BIG_QUIZ
    schema = BigQuizAnswers
    submit_selector = 'button[type="submit"], .submit-btn'

    def __init__(self, settle_seconds: float | None = None):
        super().__init__(settings.big_quiz_settle_seconds if settle_seconds is None else settle_seconds)

    def probe(self, snapshot: DocumentSnapshot) -> bool:
        return snapshot.exists(CONTAINER) and snapshot.count(f"{ITEM} {RADIO_GROUP}") > 0

    def extract(self, snapshot: DocumentSnapshot) -> list[QuestionRecord]:
        records: list[QuestionRecord] = []
        seen: set[int] = set()

        for position, item in enumerate(snapshot.select(ITEM), start=1):
            group = snapshot.select_one(RADIO_GROUP, item)
            if group is None:
                continue

            prompt = text_of(snapshot.select_one(QUESTION_LABEL, group))
            if not prompt:
                continue

            number = parse_question_number(text_of(snapshot.select_one(QUESTION_NUMBER, group)), position)

            options = []
            for radio in snapshot.select(RADIO, group):
                value = str(radio.get("data-value") or "").strip()
                text = text_of(snapshot.select_one(ANSWER_LABEL, radio))
                if value and text:
                    options.append(QuestionOption(token=value, text=text))

            if number in seen:
                logger.debug("Skipping duplicate question %d", number)
                continue
            if options:
                seen.add(number)
                records.append(QuestionRecord(identifier=number, prompt=prompt, options=tuple(options)))

        return records

    def build_prompt(self, records: list[QuestionRecord]) -> str:
        questions_text = "\n\n".join(
            f"Question {r.identifier}: {r.prompt}\n"
            f"Options: {' | '.join(f'{o.token}. {o.text}' for o in r.options)}"
            for r in records
        )
        example = {
            "answers": [
                {"questionNumber": 1, "correctValue": "4",
                 "explanation": "Brief explanation of why this is correct"},
            ]
        }
        return f"""Analyze these quiz questions and provide the correct answers. For each question, identify the correct answer value and provide a brief explanation.

{questions_text}

Return the results in JSON format with questionNumber, correctValue (the value shown before the correct option, as a string), and explanation.

{response_format_block(example)}"""

    async def _find_item(self, page: Page, number: int) -> Locator | None:
        items = page.locator(ITEM)
        for i in range(await items.count()):
            item = items.nth(i)
            if await item.locator(RADIO_GROUP).count() == 0:
                continue
            span = item.locator(f"{RADIO_GROUP} {QUESTION_NUMBER}")
            text = await span.first.text_content() if await span.count() else ""
            if parse_question_number(text, i + 1) == number:
                return item
        return None

    async def apply(
        self,
        page: Page,
        answers: BigQuizAnswers,
        records: list[QuestionRecord],
        notifications: NotificationSink,
    ) -> ApplyReport:
        report = ApplyReport()

        for answer in answers.answers:
            number = answer.question_number
            logger.info('Selecting answer with value "%s" for question %d', answer.correct_value, number)

            item = await self._find_item(page, number)
            if item is None:
                self.warn(report, notifications, number, f"Could not locate question {number}")
                continue

            radio = item.locator(f"{RADIO}[data-value={css_string(answer.correct_value)}]")
            if await radio.count() == 0:
                radios = item.locator(RADIO)
                available = [await radios.nth(i).get_attribute("data-value") for i in range(await radios.count())]
                logger.debug("Available options in question %d: %s", number, available)
                self.warn(report, notifications, number, f"Could not select answer for question {number}")
                continue

            try:
                await click_with_retry(radio.first)
            except Exception as exc:
                self.warn(report, notifications, number, f"Could not click answer for question {number}: {exc}")
                continue

            report.applied += 1
            logger.info("Selected: %s", answer.explanation)

        return report
