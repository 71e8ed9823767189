"""Tests for per-mode probes and extractors on DOM snapshots."""
from __future__ import annotations

from browser.snapshot import DocumentSnapshot
from fakes import BIG_QUIZ_HTML, LAB_HTML, PLAIN_HTML, QUIZ_HTML, WORKSHOP_HTML
from modes.big_quiz import BigQuizModeHandler, parse_question_number
from modes.lab import LabModeHandler
from modes.quiz import QuizModeHandler
from modes.workshop import WorkshopModeHandler


def _assert_well_formed(records):
    for record in records:
        assert record.prompt
        assert len(record.options) >= 1
        assert all(opt.token and opt.text for opt in record.options)


class TestQuizExtractor:
    def test_three_questions(self):
        records = QuizModeHandler(settle_seconds=0).extract(DocumentSnapshot(QUIZ_HTML))
        assert [r.identifier for r in records] == [0, 1, 2]
        assert records[0].prompt == "What does HTML stand for?"
        assert [o.token for o in records[0].options] == ["0", "1", "2"]
        assert records[1].options[0].text == "<p>"
        _assert_well_formed(records)

    def test_malformed_items_are_skipped(self):
        html = """
        <fieldset><legend><span class="mcq-question-text">  </span></legend>
          <span class="video-quiz-option">orphan option</span></fieldset>
        <fieldset><legend><span class="mcq-question-text">No options here?</span></legend></fieldset>
        <fieldset><p>unrelated fieldset</p></fieldset>
        <fieldset><legend><span class="mcq-question-text">Real question?</span></legend>
          <input type="radio" name="mc-question-3">
          <span class="video-quiz-option"></span>
          <span class="video-quiz-option">second</span></fieldset>
        """
        records = QuizModeHandler(settle_seconds=0).extract(DocumentSnapshot(html))
        assert len(records) == 1
        assert records[0].identifier == 3
        # blank option dropped but the DOM position is kept as the token
        assert [(o.token, o.text) for o in records[0].options] == [("1", "second")]

    def test_identifier_falls_back_to_running_count(self):
        html = """
        <fieldset><span class="mcq-question-text">A?</span><span class="video-quiz-option">a</span></fieldset>
        <fieldset><span class="mcq-question-text">B?</span><span class="video-quiz-option">b</span></fieldset>
        """
        records = QuizModeHandler(settle_seconds=0).extract(DocumentSnapshot(html))
        assert [r.identifier for r in records] == [0, 1]

    def test_unnamed_fieldset_never_reuses_a_named_number(self):
        html = """
        <fieldset><span class="mcq-question-text">Unnamed?</span><span class="video-quiz-option">a</span></fieldset>
        <fieldset><span class="mcq-question-text">Named zero?</span>
          <input type="radio" name="mc-question-0"><span class="video-quiz-option">b</span></fieldset>
        <fieldset><span class="mcq-question-text">Named one?</span>
          <input type="radio" name="mc-question-1"><span class="video-quiz-option">c</span></fieldset>
        """
        records = QuizModeHandler(settle_seconds=0).extract(DocumentSnapshot(html))
        assert [(r.identifier, r.prompt) for r in records] == [
            (2, "Unnamed?"),
            (0, "Named zero?"),
            (1, "Named one?"),
        ]

    def test_repeated_question_name_keeps_the_first(self):
        html = """
        <fieldset><span class="mcq-question-text">First?</span>
          <input type="radio" name="mc-question-4"><span class="video-quiz-option">a</span></fieldset>
        <fieldset><span class="mcq-question-text">Again?</span>
          <input type="radio" name="mc-question-4"><span class="video-quiz-option">b</span></fieldset>
        """
        records = QuizModeHandler(settle_seconds=0).extract(DocumentSnapshot(html))
        assert [(r.identifier, r.prompt) for r in records] == [(4, "First?")]

    def test_prompt_lists_questions_and_shape(self):
        handler = QuizModeHandler(settle_seconds=0)
        prompt = handler.build_prompt(handler.extract(DocumentSnapshot(QUIZ_HTML)))
        assert "Question 0: What does HTML stand for?" in prompt
        assert "1. HyperText Markup Language" in prompt
        assert '"correctAnswerIndex"' in prompt


class TestBigQuizExtractor:
    def test_numbers_and_values(self):
        records = BigQuizModeHandler(settle_seconds=0).extract(DocumentSnapshot(BIG_QUIZ_HTML))
        assert [r.identifier for r in records] == [1, 2]
        assert [o.token for o in records[0].options] == ["1", "2", "3"]
        # option without a data-value is dropped
        assert [o.token for o in records[1].options] == ["1", "2"]
        _assert_well_formed(records)

    def test_position_fallback_does_not_duplicate_a_number(self):
        html = """
        <div class="quiz-challenge-container"><ul>
          <li><div role="radiogroup"><span role="none">2.</span>
            <div class="quiz-question-label"><p>Numbered two?</p></div>
            <div role="radio" data-value="1"><span class="quiz-answer-label">yes</span></div></div></li>
          <li><div role="radiogroup">
            <div class="quiz-question-label"><p>Unnumbered in slot two?</p></div>
            <div role="radio" data-value="1"><span class="quiz-answer-label">no</span></div></div></li>
        </ul></div>
        """
        records = BigQuizModeHandler(settle_seconds=0).extract(DocumentSnapshot(html))
        assert [(r.identifier, r.prompt) for r in records] == [(2, "Numbered two?")]

    def test_parse_question_number(self):
        assert parse_question_number("12.", 1) == 12
        assert parse_question_number("", 4) == 4
        assert parse_question_number(None, 2) == 2

    def test_prompt_uses_values(self):
        handler = BigQuizModeHandler(settle_seconds=0)
        prompt = handler.build_prompt(handler.extract(DocumentSnapshot(BIG_QUIZ_HTML)))
        assert "Question 1: Which keyword declares a constant?" in prompt
        assert "3. const" in prompt
        assert '"correctValue"' in prompt


class TestCodeTaskExtractors:
    def test_lab(self):
        records = LabModeHandler(clipboard_enabled=False).extract(DocumentSnapshot(LAB_HTML))
        assert len(records) == 1
        task = records[0]
        assert task.title == "Build a Palindrome Checker"
        assert task.test_cases == (
            'isPalindrome("eye") should return true.',
            'isPalindrome("nope") should return false.',
        )

    def test_lab_without_content_is_empty(self):
        html = '<h1 id="content-start"></h1><section id="description"></section><ul class="challenge-test-suite"></ul>'
        assert LabModeHandler(clipboard_enabled=False).extract(DocumentSnapshot(html)) == []

    def test_workshop(self):
        records = WorkshopModeHandler(clipboard_enabled=False).extract(DocumentSnapshot(WORKSHOP_HTML))
        task = records[0]
        assert task.title == "Responsive Web Design/Build a Cat Photo App"
        assert task.instructions.startswith("Step 3")
        assert task.current_code == "<h1>CatPhotoApp</h1>\n<p>Hello</p>"

    def test_workshop_without_task_is_empty(self):
        html = WORKSHOP_HTML.replace("Step 3: Add an h2 element below the h1 element.", "")
        assert WorkshopModeHandler(clipboard_enabled=False).extract(DocumentSnapshot(html)) == []


class TestProbes:
    def test_each_probe_matches_its_page(self):
        pages = {
            "QUIZ": QUIZ_HTML,
            "BIGQUIZ": BIG_QUIZ_HTML,
            "LAB": LAB_HTML,
            "WORKSHOP": WORKSHOP_HTML,
        }
        handlers = [
            QuizModeHandler(settle_seconds=0),
            BigQuizModeHandler(settle_seconds=0),
            LabModeHandler(clipboard_enabled=False),
            WorkshopModeHandler(clipboard_enabled=False),
        ]
        for name, html in pages.items():
            snapshot = DocumentSnapshot(html)
            matched = [h.name for h in handlers if h.probe(snapshot)]
            assert matched == [name]

    def test_plain_page_matches_nothing(self):
        snapshot = DocumentSnapshot(PLAIN_HTML)
        assert not QuizModeHandler(settle_seconds=0).probe(snapshot)
        assert not BigQuizModeHandler(settle_seconds=0).probe(snapshot)
        assert not LabModeHandler(clipboard_enabled=False).probe(snapshot)
        assert not WorkshopModeHandler(clipboard_enabled=False).probe(snapshot)
