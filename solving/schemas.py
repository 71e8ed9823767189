"""Answer-set shapes the model must return, one per page mode.

Wire names stay camelCase because those are the names the prompts show the
model; Python code uses the snake_case attributes.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from modes.records import CodeTask, QuestionRecord


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class QuizAnswer(_WireModel):
    question_index: int = Field(alias="questionIndex")
    correct_answer_index: int = Field(alias="correctAnswerIndex")
    explanation: str


class QuizAnswers(_WireModel):
    answers: list[QuizAnswer]

    def check_batch(self, batch: list[QuestionRecord]) -> None:
        by_id = {r.identifier: r for r in batch}
        for ans in self.answers:
            record = by_id.get(ans.question_index)
            if record is None:
                raise ValueError(f"questionIndex {ans.question_index} is not in the question batch")
            if not record.has_token(str(ans.correct_answer_index)):
                raise ValueError(
                    f"correctAnswerIndex {ans.correct_answer_index} is not an option of "
                    f"question {ans.question_index} (options: {record.option_tokens()})"
                )


class BigQuizAnswer(_WireModel):
    question_number: int = Field(alias="questionNumber")
    correct_value: str = Field(alias="correctValue")
    explanation: str

    @field_validator("correct_value", mode="before")
    @classmethod
    def _value_as_text(cls, value):
        # data-value attributes are strings; models often answer 3 instead of "3"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value)) if float(value).is_integer() else str(value)
        return value


class BigQuizAnswers(_WireModel):
    answers: list[BigQuizAnswer]

    def check_batch(self, batch: list[QuestionRecord]) -> None:
        by_id = {r.identifier: r for r in batch}
        for ans in self.answers:
            record = by_id.get(ans.question_number)
            if record is None:
                raise ValueError(f"questionNumber {ans.question_number} is not in the question batch")
            if not record.has_token(ans.correct_value):
                raise ValueError(
                    f"correctValue {ans.correct_value!r} is not an option of "
                    f"question {ans.question_number} (options: {record.option_tokens()})"
                )


class CodeSolution(_WireModel):
    solution: str
    explanation: str

    def check_batch(self, batch: list[CodeTask]) -> None:
        if not self.solution.strip():
            raise ValueError("solution is empty")
