from dataclasses import dataclass, field


@dataclass(frozen=True)
class QuestionOption:
    token: str
    text: str


@dataclass(frozen=True)
class QuestionRecord:
    identifier: int
    prompt: str
    options: tuple[QuestionOption, ...]

    def has_token(self, token: str) -> bool:
        return any(opt.token == token for opt in self.options)

    def option_tokens(self) -> list[str]:
        return [opt.token for opt in self.options]


@dataclass(frozen=True)
class CodeTask:
    """Lab/workshop content: one task per page, solved as a whole."""

    identifier: int
    title: str
    instructions: str
    test_cases: tuple[str, ...] = ()
    current_code: str = ""


@dataclass
class ApplicationWarning:
    identifier: int | None
    message: str


@dataclass
class ApplyReport:
    applied: int = 0
    warnings: list[ApplicationWarning] = field(default_factory=list)
    submitted: bool = False
    submission_attempted: bool = False
