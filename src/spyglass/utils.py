"""Logging setup and small shared helpers."""

import logging
from collections.abc import Iterable
from pathlib import Path

from rich.logging import RichHandler


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Setup logging with RichHandler for console output.

    Args:
        verbose: If True, sets logging to DEBUG level and shows file paths.
                If False, sets logging to INFO level and suppresses noisy loggers.
        log_file: Optional file that receives a plain-text copy of every record,
                  with timestamps, for later troubleshooting.
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,  # URLs contain brackets that Rich would treat as markup
        show_time=True,
        show_path=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    handlers: list[logging.Handler] = [handler]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def unique(values: Iterable[str]) -> list[str]:
    """De-duplicate while preserving first-seen order."""
    return list(dict.fromkeys(values))
