from browser.snapshot import DocumentSnapshot, text_of
from modes.base import PageMode, response_format_block
from modes.code_task import CodeTaskHandler
from modes.records import CodeTask

TITLE = "h1#content-start"
DESCRIPTION = "section#description"
TEST_SUITE = "ul.challenge-test-suite"


class LabModeHandler(CodeTaskHandler):
    mode = PageMode.LAB

    def probe(self, snapshot: DocumentSnapshot) -> bool:
        return snapshot.exists(TITLE) and snapshot.exists(DESCRIPTION) and snapshot.exists(TEST_SUITE)

    def extract(self, snapshot: DocumentSnapshot) -> list[CodeTask]:
        title = text_of(snapshot.select_one(TITLE))
        description = text_of(snapshot.select_one(DESCRIPTION))

        test_cases: list[str] = []
        suite = snapshot.select_one(TEST_SUITE)
        if suite is not None:
            for item in snapshot.select("li", suite):
                text = text_of(item)
                if text:
                    test_cases.append(text)

        if not title and not description and not test_cases:
            return []
        return [CodeTask(identifier=0, title=title, instructions=description, test_cases=tuple(test_cases))]

    def build_prompt(self, records: list[CodeTask]) -> str:
        task = records[0]
        tests = "\n".join(f"{i}. {test}" for i, test in enumerate(task.test_cases, start=1))
        example = {
            "solution": "// Complete working code here that passes all test cases",
            "explanation": "Brief explanation of how the solution works",
        }
        return f"""Analyze this FreeCodeCamp coding lab and provide a complete solution.

Lab Title: {task.title}

Description:
{task.instructions}

Test Cases:
{tests}

Based on the lab title, description, and test cases, provide a complete working solution that passes all tests.
Return the complete code that can be copy-pasted directly into the code editor.

{response_format_block(example)}"""
