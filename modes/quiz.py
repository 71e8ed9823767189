import logging
import re

from bs4 import Tag
from playwright.async_api import Page

from browser.snapshot import DocumentSnapshot, text_of
from config.settings import settings
from modes.base import ModeHandler, PageMode, response_format_block
from modes.records import ApplyReport, QuestionOption, QuestionRecord
from services.notifications import NotificationSink
from solving.schemas import QuizAnswers

logger = logging.getLogger(__name__)

QUESTION_CONTAINER = "fieldset"
QUESTION_TEXT = ".mcq-question-text"
OPTION_TEXT = ".video-quiz-option"
RADIO_INPUT = 'input[name^="mc-question-"]'
QUESTION_NAME_RE = re.compile(r"mc-question-(\d+)")


def _question_index(fieldset: Tag) -> int | None:
    radio = fieldset.select_one(RADIO_INPUT)
    if radio is not None:
        match = QUESTION_NAME_RE.search(str(radio.get("name", "")))
        if match:
            return int(match.group(1))
    return None


def answer_label_selector(question_index: int, answer_index: int) -> str:
    return f'label[for="mc-question-{question_index}-answer-{answer_index}"]'


class QuizModeHandler(ModeHandler):
    """Short multiple-choice quiz under a lecture video."""

    mode = PageMode.QUIZ
    schema = QuizAnswers
    submit_selector = 'button[type="button"]'

    def __init__(self, settle_seconds: float | None = None):
        super().__init__(settings.quiz_settle_seconds if settle_seconds is None else settle_seconds)

    def probe(self, snapshot: DocumentSnapshot) -> bool:
        return snapshot.exists(f"{QUESTION_CONTAINER} {QUESTION_TEXT}")

    def extract(self, snapshot: DocumentSnapshot) -> list[QuestionRecord]:
        found: list[tuple[int | None, str, tuple[QuestionOption, ...]]] = []

        for fieldset in snapshot.select(QUESTION_CONTAINER):
            prompt = text_of(snapshot.select_one(QUESTION_TEXT, fieldset))
            if not prompt:
                continue

            # Option tokens are DOM positions so they line up with the
            # "-answer-N" label ids even when a blank option is skipped.
            options = []
            for position, el in enumerate(snapshot.select(OPTION_TEXT, fieldset)):
                text = text_of(el)
                if text:
                    options.append(QuestionOption(token=str(position), text=text))
            if not options:
                continue

            found.append((_question_index(fieldset), prompt, tuple(options)))

        # Fieldsets without an mc-question-N name take the running count,
        # moved past any number another fieldset already carries.
        taken = {index for index, _, _ in found if index is not None}
        records: list[QuestionRecord] = []
        used: set[int] = set()
        for index, prompt, options in found:
            if index is None:
                index = len(records)
                while index in taken or index in used:
                    index += 1
            elif index in used:
                logger.debug("Skipping duplicate question %d", index)
                continue
            used.add(index)
            records.append(QuestionRecord(identifier=index, prompt=prompt, options=options))

        return records

    def build_prompt(self, records: list[QuestionRecord]) -> str:
        questions_text = "\n\n".join(
            f"Question {r.identifier}: {r.prompt}\n"
            f"Options: {', '.join(f'{o.token}. {o.text}' for o in r.options)}"
            for r in records
        )
        example = {
            "answers": [
                {"questionIndex": records[0].identifier if records else 0,
                 "correctAnswerIndex": 0,
                 "explanation": "Brief explanation of why this is correct"},
            ]
        }
        return f"""Analyze these coding/web development quiz questions and provide the correct answers. For each question, identify the correct answer index (0-based) and provide a brief explanation.

{questions_text}

Return one entry per question with questionIndex (matching the question number), correctAnswerIndex (the number shown before the correct option), and explanation.

{response_format_block(example)}"""

    async def apply(
        self,
        page: Page,
        answers: QuizAnswers,
        records: list[QuestionRecord],
        notifications: NotificationSink,
    ) -> ApplyReport:
        report = ApplyReport()
        for answer in answers.answers:
            logger.info("Selecting answer %d for question %d", answer.correct_answer_index, answer.question_index)
            selector = answer_label_selector(answer.question_index, answer.correct_answer_index)
            if await self.activate(page, selector, answer.question_index, report, notifications):
                logger.info("Selected: %s", answer.explanation)
        return report
