#!/usr/bin/env python3
import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from config.settings import settings
from workflow.pipeline import RunResult


def _print_run_summary(result: RunResult) -> None:
    print("\n=== FCC Helper Run Summary ===")
    print(f"Mode:      {result.mode.value if result.mode else '(none)'}")
    print(f"Outcome:   {result.outcome.value}")
    print(f"Records:   {len(result.records)}")
    print(f"Submitted: {'yes' if result.submitted else 'no'}")
    if result.warnings:
        print("\nWarnings:")
        for warning in result.warnings:
            print(f"- {warning.message}")
    if result.error:
        print(f"\nError: {result.error}")
    print("==============================\n")


def setup_logging():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(settings.log_file),
        ],
    )


def _build_detector(page):
    from services.credentials import CredentialProvider
    from services.notifications import ConsoleNotifier
    from solving.ai_client import AIClient
    from workflow.detector import ModeDetector

    credentials = CredentialProvider()
    detector = ModeDetector(
        page=page,
        ai_client=AIClient(credentials),
        notifications=ConsoleNotifier(),
    )
    return detector, credentials


async def _open(url: str | None):
    from browser.session import get_page, safe_goto

    page = await get_page()
    if url:
        await safe_goto(page, url)
    return page


async def _detect(url: str | None) -> None:
    from browser.session import close_browser

    try:
        page = await _open(url)
        detector, _ = _build_detector(page)
        handler = await detector.detect_current_mode()
        print(handler.name if handler else "No supported mode detected")
    finally:
        await close_browser()


async def _execute(url: str | None) -> bool:
    from browser.session import close_browser

    try:
        page = await _open(url)
        detector, _ = _build_detector(page)
        result = await detector.execute_current_mode()
        _print_run_summary(result)
        return result.mode_ran
    finally:
        await close_browser()


async def _watch(url: str | None) -> None:
    from browser.bridge import PageBridge
    from browser.session import close_browser

    try:
        page = await _open(url or settings.start_url)
        detector, credentials = _build_detector(page)
        bridge = PageBridge(page, detector, credentials)
        await bridge.install()
        print("\nWatching. Press Ctrl+P on a quiz, lab or workshop page; close the window to stop.\n")
        await page.wait_for_event("close", timeout=0)
        await bridge.wait_for_pending()
    finally:
        await close_browser()


async def _login() -> None:
    from browser.session import close_browser, get_page, wait_for_sign_in

    try:
        if await wait_for_sign_in(await get_page()):
            print("\nSession saved. You can now run: python main.py watch")
    finally:
        await close_browser()


def main():
    parser = argparse.ArgumentParser(description="FCC Helper")
    parser.add_argument(
        "mode",
        choices=["watch", "execute", "detect", "list-modes", "clear-key", "login"],
        help=(
            "'watch' = open the browser and solve on Ctrl+P, "
            "'execute' = open --url and run the detected mode once, "
            "'detect' = print the mode detected at --url, "
            "'list-modes' = print registered modes in probe order, "
            "'clear-key' = forget the stored API key, "
            "'login' = open the browser to sign in"
        ),
    )
    parser.add_argument("--url", default=None, help="Page to open (default: start_url for watch)")
    args = parser.parse_args()

    setup_logging()
    logger = logging.getLogger("fcc_helper")

    if args.mode == "list-modes":
        from workflow.detector import default_handlers

        for handler in default_handlers():
            print(handler.name)

    elif args.mode == "clear-key":
        from services.credentials import CredentialProvider

        CredentialProvider().invalidate()
        print("\nAPI key cleared. You will be asked for a new one on the next run.\n")

    elif args.mode == "login":
        asyncio.run(_login())

    elif args.mode == "detect":
        asyncio.run(_detect(args.url))

    elif args.mode == "execute":
        logger.info("Starting single run...")
        ran = asyncio.run(_execute(args.url))
        sys.exit(0 if ran else 1)

    elif args.mode == "watch":
        logger.info("Starting watch mode...")
        asyncio.run(_watch(args.url))


if __name__ == "__main__":
    main()
