"""Logging configuration for repo-forge."""

import logging
from pathlib import Path
from typing import Optional, Union
from rich.logging import RichHandler
from rich.console import Console


OPERATOR_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Third-party loggers that flood the console below WARNING
QUIET_LOGGERS = ("neo4j",)


def setup_logging(log_level: str = "INFO",
                  rich_console: Optional[Console] = None,
                  log_file: Optional[Union[str, Path]] = None) -> Optional[logging.FileHandler]:
    """
    Route log records to the console and, optionally, an operator log file.

    The console gets everything at ``log_level``. The operator log only
    receives WARNING and above: missing documents, identifier allocation
    failures and store rejections, one line each, so an operator can review
    what a batch left behind without wading through progress output.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        rich_console: Optional Rich console instance
        log_file: Path of the operator log; appended to, parent created

    Returns:
        The operator log handler, or None when no log file was requested
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    if rich_console is None:
        rich_console = Console(stderr=True)

    # Item names and titles come from ingested records and may contain brackets
    rich_handler = RichHandler(
        console=rich_console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False
    )
    rich_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(rich_handler)

    file_handler = None
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(logging.Formatter(OPERATOR_LOG_FORMAT))
        root_logger.addHandler(file_handler)

    logging.getLogger("repo_forge").setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return file_handler


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``repo_forge`` hierarchy; module ``__name__`` values pass through."""
    if name.startswith("repo_forge"):
        return logging.getLogger(name)
    return logging.getLogger(f"repo_forge.{name}")
