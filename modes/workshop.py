from browser.snapshot import DocumentSnapshot, text_of
from modes.base import PageMode, response_format_block
from modes.code_task import CodeTaskHandler
from modes.records import CodeTask

BREADCRUMB_LEFT = "li.breadcrumb-left"
BREADCRUMB_RIGHT = "li.breadcrumb-right"
INSTRUCTIONS = "div.instructions-panel"
EDITOR_LINES = "div.view-lines.monaco-mouse-cursor-text"
EDITOR_LINE = "div.view-line"


def _editor_code(snapshot: DocumentSnapshot) -> str:
    editor = snapshot.select_one(EDITOR_LINES)
    if editor is None:
        return ""
    # Monaco renders one div per visible line; keep the line breaks.
    lines = [line.get_text().replace("\xa0", " ").rstrip() for line in snapshot.select(EDITOR_LINE, editor)]
    if lines:
        return "\n".join(lines).strip("\n")
    return text_of(editor)


class WorkshopModeHandler(CodeTaskHandler):
    mode = PageMode.WORKSHOP

    def probe(self, snapshot: DocumentSnapshot) -> bool:
        return all(
            snapshot.exists(selector)
            for selector in (BREADCRUMB_LEFT, BREADCRUMB_RIGHT, INSTRUCTIONS, EDITOR_LINES)
        )

    def extract(self, snapshot: DocumentSnapshot) -> list[CodeTask]:
        left = text_of(snapshot.select_one(BREADCRUMB_LEFT))
        right = text_of(snapshot.select_one(BREADCRUMB_RIGHT))
        title = f"{left}/{right}" if left and right else left or right
        task = text_of(snapshot.select_one(INSTRUCTIONS))

        if not title or not task:
            return []
        return [CodeTask(identifier=0, title=title, instructions=task, current_code=_editor_code(snapshot))]

    def build_prompt(self, records: list[CodeTask]) -> str:
        task = records[0]
        example = {
            "solution": "// Complete working code here that fulfills the task requirements",
            "explanation": "Brief explanation of the solution and what changes were made",
        }
        return f"""Analyze this FreeCodeCamp workshop task and provide a complete solution.

Workshop: {task.title}

Task Instructions:
{task.instructions}

Current Code:
{task.current_code}

IMPORTANT: Please don't edit code that should not be edited. Only do the modifications that are specified in the task instructions. Preserve any existing code structure, comments, or setup code that is not meant to be changed according to the task requirements.

Based on the workshop title, task instructions, and current code, provide a complete working solution that fulfills all requirements.
Build upon the existing code if it's useful, or provide a completely new solution if needed.
Return the complete code that can be copy-pasted directly into the Monaco editor.

{response_format_block(example)}"""
