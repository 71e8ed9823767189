import asyncio
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Observer for run progress. Never influences control flow, except confirm()."""

    def info(self, title: str, message: str = "") -> None: ...

    def success(self, title: str, message: str = "") -> None: ...

    def warning(self, title: str, message: str = "") -> None: ...

    def error(self, title: str, message: str = "") -> None: ...

    async def confirm(self, title: str, message: str = "", confirm_text: str = "Yes") -> bool: ...


def _line(title: str, message: str) -> str:
    return f"{title} - {message}" if message else title


class ConsoleNotifier:
    """Reports to the log and, for the interactive session, to stdout."""

    def __init__(self, echo: bool = True):
        self.echo = echo

    def _emit(self, level: int, marker: str, title: str, message: str) -> None:
        logger.log(level, _line(title, message))
        if self.echo:
            print(f"[{marker}] {_line(title, message)}")

    def info(self, title: str, message: str = "") -> None:
        self._emit(logging.INFO, "info", title, message)

    def success(self, title: str, message: str = "") -> None:
        self._emit(logging.INFO, "ok", title, message)

    def warning(self, title: str, message: str = "") -> None:
        self._emit(logging.WARNING, "warn", title, message)

    def error(self, title: str, message: str = "") -> None:
        self._emit(logging.ERROR, "error", title, message)

    async def confirm(self, title: str, message: str = "", confirm_text: str = "Yes") -> bool:
        question = f"\n{_line(title, message)} [{confirm_text}/no]: "
        answer = await asyncio.get_running_loop().run_in_executor(None, lambda: input(question))
        return answer.strip().lower() in {"y", "yes", confirm_text.lower()}
