import logging

from playwright.async_api import Page

from browser.snapshot import DocumentSnapshot, take_snapshot
from config.settings import settings
from modes.base import ModeHandler
from modes.big_quiz import BigQuizModeHandler
from modes.lab import LabModeHandler
from modes.quiz import QuizModeHandler
from modes.workshop import WorkshopModeHandler
from services.notifications import NotificationSink
from solving.ai_client import AIClient
from workflow.pipeline import RunOutcome, RunResult, build_pipeline, result_from_state

logger = logging.getLogger(__name__)


def default_handlers() -> list[ModeHandler]:
    """Probe order is the tie-break when two layouts could both match."""
    return [
        QuizModeHandler(),
        BigQuizModeHandler(),
        LabModeHandler(),
        WorkshopModeHandler(),
    ]


def _initial_state() -> dict:
    return {"handler": None, "records": [], "answers": None, "report": None, "outcome": None, "error": ""}


class ModeDetector:
    """Ordered probe table plus the orchestrator for one run at a time."""

    def __init__(
        self,
        page: Page,
        ai_client: AIClient,
        notifications: NotificationSink,
        handlers: list[ModeHandler] | None = None,
        auto_submit: bool | None = None,
    ):
        self.page = page
        self.ai_client = ai_client
        self.notifications = notifications
        self._handlers: list[ModeHandler] = list(handlers) if handlers is not None else default_handlers()
        self._busy = False
        self._last_result: RunResult | None = None
        self._pipeline = build_pipeline(
            page,
            self.match,
            ai_client,
            notifications,
            self.list_modes,
            auto_submit=settings.auto_submit if auto_submit is None else auto_submit,
        )

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def last_result(self) -> RunResult | None:
        """Result of the most recent completed run. Debugging aid only."""
        return self._last_result

    def list_modes(self) -> list[str]:
        return [handler.name for handler in self._handlers]

    def register(self, handler: ModeHandler) -> None:
        if handler.name in self.list_modes():
            raise ValueError(f"Mode already registered: {handler.name}")
        self._handlers.append(handler)

    def unregister(self, name: str) -> bool:
        for i, handler in enumerate(self._handlers):
            if handler.name == name:
                del self._handlers[i]
                return True
        return False

    def match(self, snapshot: DocumentSnapshot) -> ModeHandler | None:
        for handler in self._handlers:
            if handler.probe(snapshot):
                return handler
        return None

    async def detect_current_mode(self) -> ModeHandler | None:
        return self.match(await take_snapshot(self.page))

    async def execute_current_mode(self) -> RunResult:
        if self._busy:
            logger.warning("Trigger ignored: a run is already in progress")
            self.notifications.warning("Busy", "A run is already in progress")
            return RunResult(mode=None, outcome=RunOutcome.BUSY)

        self._busy = True
        try:
            final_state = await self._pipeline.ainvoke(_initial_state())
            result = result_from_state(final_state)
        except Exception as exc:
            logger.exception("Run failed unexpectedly")
            self.notifications.error("Run Failed", str(exc)[:200])
            result = RunResult(mode=None, outcome=RunOutcome.FAILED, error=str(exc))
        finally:
            self._busy = False

        self._last_result = result
        return result
