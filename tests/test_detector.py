"""End-to-end runs through the mode detector with a fake page and backend."""
from __future__ import annotations

import asyncio
import threading

import pytest

from fakes import (
    BIG_QUIZ_HTML,
    PLAIN_HTML,
    QUIZ_HTML,
    FakeBackend,
    FakePage,
    PromptCounter,
    RecordingNotifier,
    make_client,
)
from modes.base import PageMode
from modes.big_quiz import BigQuizModeHandler
from modes.lab import LabModeHandler
from modes.quiz import QuizModeHandler
from modes.workshop import WorkshopModeHandler
from services.credentials import CredentialProvider
from solving.errors import AuthError, BackendError
from workflow.detector import ModeDetector
from workflow.pipeline import RunOutcome

QUIZ_ANSWERS = {
    "answers": [
        {"questionIndex": 0, "correctAnswerIndex": 1, "explanation": "HyperText Markup Language"},
        {"questionIndex": 1, "correctAnswerIndex": 0, "explanation": "<p> is a paragraph"},
        {"questionIndex": 2, "correctAnswerIndex": 2, "explanation": "alt describes the image"},
    ]
}


def _handlers():
    return [
        QuizModeHandler(settle_seconds=0),
        BigQuizModeHandler(settle_seconds=0),
        LabModeHandler(clipboard_enabled=False),
        WorkshopModeHandler(clipboard_enabled=False),
    ]


def _detector(page, credentials, backend, notifier=None, handlers=None):
    return ModeDetector(
        page,
        make_client(credentials, backend),
        notifier or RecordingNotifier(),
        handlers=handlers if handlers is not None else _handlers(),
        auto_submit=True,
    )


class TestDetection:
    def test_plain_page_is_a_miss_not_an_error(self, credentials, notifier):
        backend = FakeBackend(QUIZ_ANSWERS)
        detector = _detector(FakePage(PLAIN_HTML), credentials, backend, notifier)

        assert asyncio.run(detector.detect_current_mode()) is None
        result = asyncio.run(detector.execute_current_mode())

        assert result.outcome == RunOutcome.DETECTION_MISS
        assert result.mode_ran is False
        assert backend.calls == []
        level, title, message = notifier.of("error")[0]
        assert title == "No Mode Detected"
        assert "QUIZ, BIGQUIZ, LAB, WORKSHOP" in message

    def test_first_matching_probe_in_order_wins(self, credentials):
        page = FakePage(QUIZ_HTML + BIG_QUIZ_HTML)
        backend = FakeBackend(QUIZ_ANSWERS)

        detector = _detector(page, credentials, backend)
        assert [asyncio.run(detector.detect_current_mode()).mode for _ in range(3)] == [PageMode.QUIZ] * 3

        reversed_detector = _detector(page, credentials, backend, handlers=list(reversed(_handlers())))
        assert asyncio.run(reversed_detector.detect_current_mode()).mode == PageMode.BIG_QUIZ

    def test_register_and_unregister(self, credentials):
        detector = _detector(FakePage(PLAIN_HTML), credentials, FakeBackend(QUIZ_ANSWERS), handlers=[])
        assert detector.list_modes() == []

        detector.register(LabModeHandler(clipboard_enabled=False))
        detector.register(QuizModeHandler(settle_seconds=0))
        assert detector.list_modes() == ["LAB", "QUIZ"]

        with pytest.raises(ValueError):
            detector.register(QuizModeHandler(settle_seconds=0))

        assert detector.unregister("LAB") is True
        assert detector.unregister("LAB") is False
        assert detector.list_modes() == ["QUIZ"]


class TestRuns:
    def test_quiz_page_is_answered_and_submitted(self, credentials, prompt, notifier):
        page = FakePage(QUIZ_HTML)
        backend = FakeBackend(QUIZ_ANSWERS)
        detector = _detector(page, credentials, backend, notifier)

        result = asyncio.run(detector.execute_current_mode())

        assert result.outcome == RunOutcome.FULLY_APPLIED
        assert result.mode == PageMode.QUIZ
        assert result.submitted is True
        assert len(result.records) == 3
        assert page.clicked_attr("for")[:3] == [
            "mc-question-0-answer-1",
            "mc-question-1-answer-0",
            "mc-question-2-answer-2",
        ]
        assert len(backend.calls) == 1
        request, api_key = backend.calls[0]
        assert request.model == "test-model"
        assert "What does HTML stand for?" in request.prompt
        assert api_key == "key-1"
        assert prompt.calls == 1
        assert detector.last_result is result
        assert notifier.of("success")[-1][1] == "QUIZ Completed!"

    def test_partial_application_is_reported(self, credentials):
        page = FakePage(QUIZ_HTML.replace('for="mc-question-2-answer-2"', 'for="gone"'))
        detector = _detector(page, credentials, FakeBackend(QUIZ_ANSWERS))

        result = asyncio.run(detector.execute_current_mode())

        assert result.outcome == RunOutcome.PARTIALLY_APPLIED
        assert [w.identifier for w in result.warnings] == [2]
        assert result.submitted is True

    def test_empty_extraction_never_calls_the_backend(self, credentials, prompt):
        html = '<fieldset><span class="mcq-question-text"> </span></fieldset>'
        backend = FakeBackend(QUIZ_ANSWERS)
        detector = _detector(FakePage(html), credentials, backend)

        result = asyncio.run(detector.execute_current_mode())

        assert result.mode == PageMode.QUIZ
        assert result.outcome == RunOutcome.EXTRACTION_EMPTY
        assert backend.calls == []
        assert prompt.calls == 0

    def test_unparseable_output_leaves_the_page_and_key_alone(self, credentials, key_store, prompt):
        page = FakePage(QUIZ_HTML)
        detector = _detector(page, credentials, FakeBackend("I am not sure, maybe B?"))

        result = asyncio.run(detector.execute_current_mode())

        assert result.outcome == RunOutcome.DECODE_FAILED
        assert page.clicks == []
        assert key_store.read() == "key-1"
        assert prompt.calls == 1

    def test_backend_failure_is_reported(self, credentials):
        page = FakePage(QUIZ_HTML)
        detector = _detector(page, credentials, FakeBackend(BackendError("Gemini test-model HTTP 500: boom")))

        result = asyncio.run(detector.execute_current_mode())

        assert result.outcome == RunOutcome.BACKEND_FAILED
        assert "HTTP 500" in result.error
        assert page.clicks == []

    def test_rejected_key_is_cleared_and_prompted_again(self, credentials, key_store, prompt):
        page = FakePage(QUIZ_HTML)
        backend = FakeBackend(AuthError("Gemini rejected the API key (HTTP 400)"), QUIZ_ANSWERS)
        detector = _detector(page, credentials, backend)

        first = asyncio.run(detector.execute_current_mode())
        assert first.outcome == RunOutcome.AUTH_FAILED
        assert key_store.read() is None
        assert page.clicks == []

        second = asyncio.run(detector.execute_current_mode())
        assert second.outcome == RunOutcome.FULLY_APPLIED
        assert prompt.calls == 2
        assert [key for _, key in backend.calls] == ["key-1", "key-2"]
        assert key_store.read() == "key-2"

    def test_empty_key_entry_is_not_reported_as_a_rejected_key(self, key_store, notifier):
        credentials = CredentialProvider(store=key_store, prompt=PromptCounter(""))
        backend = FakeBackend(QUIZ_ANSWERS)
        detector = _detector(FakePage(QUIZ_HTML), credentials, backend, notifier)

        result = asyncio.run(detector.execute_current_mode())

        assert result.outcome == RunOutcome.AUTH_FAILED
        assert result.error == "API key is required"
        assert backend.calls == []
        titles = [title for _, title, _ in notifier.of("error")]
        assert titles == ["API Key Required"]
        assert not any("cleared" in message for _, _, message in notifier.events)


class BlockingBackend:
    """Holds the backend call open until the test releases it."""

    def __init__(self, response):
        self.response = response
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def generate(self, request, api_key, timeout):
        self.calls += 1
        self.started.set()
        self.release.wait(5)
        return self.response


class TestBusyGuard:
    def test_trigger_during_a_run_is_ignored(self, credentials, notifier):
        page = FakePage(QUIZ_HTML)
        backend = BlockingBackend(QUIZ_ANSWERS)
        detector = _detector(page, credentials, backend, notifier)

        async def run():
            first = asyncio.create_task(detector.execute_current_mode())
            assert await asyncio.to_thread(backend.started.wait, 5)
            assert detector.busy is True
            second = await detector.execute_current_mode()
            backend.release.set()
            return await first, second

        first, second = asyncio.run(run())

        assert second.outcome == RunOutcome.BUSY
        assert second.mode_ran is False
        assert first.outcome == RunOutcome.FULLY_APPLIED
        assert backend.calls == 1
        assert detector.busy is False
        assert detector.last_result is first
        assert ("warning", "Busy", "A run is already in progress") in notifier.events
