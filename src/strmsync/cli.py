from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from .config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from .orchestrator import IterationReport, ProviderOrchestrator
from .summary_table import SummaryTableRenderer
from .utils import env_bool
from .version import __version__

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(message)s\n"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strmsync",
        description="Mirror Xtream provider catalogs into a Jellyfin media tree.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.getenv("CONFIG_PATH", str(DEFAULT_CONFIG_PATH))),
        help="Path to the YAML config (default: $CONFIG_PATH or config/config.yaml)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=bool(env_bool("RUN_ONCE")),
        help="Run a single pass per provider and exit",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    # Request lines would otherwise repeat provider credentials at DEBUG
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum: int, _frame: object) -> None:
        LOGGER.info("Received %s, stopping after the current step", signal.Signals(signum).name)
        stop_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, _handle)


def build_orchestrators(config: AppConfig, stop_event: threading.Event) -> list[ProviderOrchestrator]:
    return [ProviderOrchestrator(provider, config.app, stop_event=stop_event) for provider in config.providers]


def run_providers(orchestrators: Sequence[ProviderOrchestrator]) -> list[IterationReport]:
    """Run every provider in its own thread and wait for all of them."""
    threads = [
        threading.Thread(target=orchestrator.run, name=f"provider-{orchestrator.provider.name}", daemon=True)
        for orchestrator in orchestrators
    ]
    for thread in threads:
        thread.start()

    # join with a timeout so signal handlers keep running on the main thread
    for thread in threads:
        while thread.is_alive():
            thread.join(timeout=1.0)

    return [orchestrator.reports[-1] for orchestrator in orchestrators if orchestrator.reports]


def print_summary(reports: Sequence[IterationReport]) -> None:
    """Rich tables on a terminal, a plain text block in the log otherwise."""
    renderer = SummaryTableRenderer(CONSOLE)
    if CONSOLE.is_terminal:
        renderer.print_summary(reports)
    elif reports:
        LOGGER.info(renderer.render_summary_plain_text(reports))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entrypoint."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args.config)
    except Exception as exc:  # noqa: BLE001
        LOGGER.error("Failed to load config: %s", exc)
        return 1

    if args.once:
        config.app.run_once = True

    if not config.providers:
        LOGGER.warning("No providers configured in %s", args.config)
        return 0

    LOGGER.info("Starting strmsync %s with %d provider(s)", __version__, len(config.providers))
    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    reports = run_providers(build_orchestrators(config, stop_event))

    if config.app.run_once:
        print_summary(reports)
    LOGGER.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
