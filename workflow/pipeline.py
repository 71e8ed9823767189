import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TypedDict

from langgraph.graph import StateGraph, END
from playwright.async_api import Page

from browser.snapshot import DocumentSnapshot, take_snapshot
from modes.base import ModeHandler, PageMode
from modes.records import ApplicationWarning, ApplyReport
from services.notifications import NotificationSink
from solving.ai_client import AIClient
from solving.errors import AuthError, BackendError, DecodingError, MissingKeyError

logger = logging.getLogger(__name__)


class RunOutcome(str, Enum):
    BUSY = "busy"
    DETECTION_MISS = "detection_miss"
    EXTRACTION_EMPTY = "extraction_empty"
    DECODE_FAILED = "decode_failed"
    AUTH_FAILED = "auth_failed"
    BACKEND_FAILED = "backend_failed"
    PARTIALLY_APPLIED = "partially_applied"
    FULLY_APPLIED = "fully_applied"
    FAILED = "failed"


NOT_RUN = {RunOutcome.BUSY, RunOutcome.DETECTION_MISS}


@dataclass
class RunResult:
    mode: PageMode | None
    outcome: RunOutcome
    records: list = field(default_factory=list)
    answers: Any = None
    warnings: list[ApplicationWarning] = field(default_factory=list)
    submitted: bool = False
    error: str = ""

    @property
    def mode_ran(self) -> bool:
        return self.mode is not None and self.outcome not in NOT_RUN


class PipelineState(TypedDict, total=False):
    handler: ModeHandler | None
    records: list
    answers: Any
    report: ApplyReport | None
    outcome: RunOutcome | None
    error: str


Detect = Callable[[DocumentSnapshot], ModeHandler | None]


def build_pipeline(
    page: Page,
    match: Detect,
    ai_client: AIClient,
    notifications: NotificationSink,
    available_modes: Callable[[], list[str]],
    auto_submit: bool = True,
):
    """Compile the Detect -> Extract -> Solve -> Apply -> Submit state machine.

    Every failure edge goes straight to ``report``; there are no backward edges.
    """

    async def detect_node(state: PipelineState) -> dict:
        snapshot = await take_snapshot(page)
        handler = match(snapshot)
        if handler is None:
            logger.info("No supported mode detected on %s", snapshot.url or "this page")
            notifications.error("No Mode Detected", "Available modes: " + ", ".join(available_modes()))
            return {"handler": None, "outcome": RunOutcome.DETECTION_MISS}

        logger.info("%s mode detected", handler.name)
        notifications.info(f"{handler.name} Detected!", "Starting solver...")
        return {"handler": handler}

    async def extract_node(state: PipelineState) -> dict:
        handler = state["handler"]
        # Fresh snapshot: the page may have finished rendering since detection.
        records = handler.extract(await take_snapshot(page))
        if not records:
            logger.info("No %s content found", handler.name)
            notifications.error("Nothing Found", f"Could not find any {handler.name.lower()} content on this page")
            return {"records": [], "outcome": RunOutcome.EXTRACTION_EMPTY}

        logger.info("Found %s", handler.describe(records))
        notifications.success(f"Found {handler.describe(records)}", "Analyzing with AI...")
        return {"records": records}

    async def solve_node(state: PipelineState) -> dict:
        handler = state["handler"]
        records = state["records"]
        try:
            answers = await ai_client.solve(handler.build_prompt(records), handler.schema, records)
        except MissingKeyError as exc:
            logger.error("No API key entered: %s", exc)
            notifications.error("API Key Required", "No key was entered; you will be asked again next run")
            return {"outcome": RunOutcome.AUTH_FAILED, "error": str(exc)}
        except AuthError as exc:
            logger.error("Authentication failed: %s", exc)
            notifications.error("Invalid API Key", "The key was cleared; you will be asked for a new one next run")
            return {"outcome": RunOutcome.AUTH_FAILED, "error": str(exc)}
        except DecodingError as exc:
            logger.error("Could not decode model output: %s", exc)
            notifications.error("Analysis Failed", "The AI response did not match the expected format")
            return {"outcome": RunOutcome.DECODE_FAILED, "error": str(exc)}
        except BackendError as exc:
            logger.error("Backend call failed: %s", exc)
            notifications.error("Analysis Failed", str(exc)[:200])
            return {"outcome": RunOutcome.BACKEND_FAILED, "error": str(exc)}

        logger.info("%s analysis complete", handler.name)
        notifications.success("Analysis Complete!", "Applying answers...")
        return {"answers": answers}

    async def apply_node(state: PipelineState) -> dict:
        handler = state["handler"]
        report = await handler.apply(page, state["answers"], state["records"], notifications)
        outcome = RunOutcome.PARTIALLY_APPLIED if report.warnings else RunOutcome.FULLY_APPLIED
        return {"report": report, "outcome": outcome}

    async def submit_node(state: PipelineState) -> dict:
        handler = state["handler"]
        if auto_submit and handler.submit_selector:
            await handler.submit(page, state["report"], notifications)
        return {}

    async def report_node(state: PipelineState) -> dict:
        outcome = state.get("outcome")
        report = state.get("report")
        if report is not None:
            handler = state["handler"]
            done = f"{report.applied} answer(s) applied"
            if report.submitted:
                done += " and submitted"
            if outcome == RunOutcome.PARTIALLY_APPLIED:
                notifications.warning(f"{handler.name} Partially Completed", done)
            else:
                notifications.success(f"{handler.name} Completed!", done)
        logger.info("Run finished: %s", outcome.value if outcome else "unknown")
        return {}

    def after_detect(state: PipelineState) -> str:
        return "extract" if state.get("handler") is not None else "report"

    def after_extract(state: PipelineState) -> str:
        return "solve" if state.get("records") else "report"

    def after_solve(state: PipelineState) -> str:
        return "apply" if state.get("answers") is not None else "report"

    graph = StateGraph(PipelineState)

    graph.add_node("detect", detect_node)
    graph.add_node("extract", extract_node)
    graph.add_node("solve", solve_node)
    graph.add_node("apply", apply_node)
    graph.add_node("submit", submit_node)
    graph.add_node("report", report_node)

    graph.set_entry_point("detect")
    graph.add_conditional_edges("detect", after_detect, {"extract": "extract", "report": "report"})
    graph.add_conditional_edges("extract", after_extract, {"solve": "solve", "report": "report"})
    graph.add_conditional_edges("solve", after_solve, {"apply": "apply", "report": "report"})
    graph.add_edge("apply", "submit")
    graph.add_edge("submit", "report")
    graph.add_edge("report", END)

    return graph.compile()


def result_from_state(state: dict) -> RunResult:
    handler = state.get("handler")
    report = state.get("report")
    return RunResult(
        mode=handler.mode if handler is not None else None,
        outcome=state.get("outcome") or RunOutcome.FAILED,
        records=list(state.get("records") or []),
        answers=state.get("answers"),
        warnings=list(report.warnings) if report is not None else [],
        submitted=bool(report and report.submitted),
        error=state.get("error", ""),
    )
