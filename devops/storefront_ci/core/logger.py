"""
Logging for the storefront release pipeline.

Two channels:
- structlog events carrying the run context (run id, revision, pull request)
- a rich console line per stage transition for humans reading the CI log

With ``machine_output`` both channels move to stderr so stdout carries only
the JSON report.
"""

import sys
from typing import Any, Dict, Tuple

import structlog
from rich.console import Console
from rich.theme import Theme

console = Console(theme=Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "stage": "bold magenta",
}))

_streams = {"machine_output": False}


def _log_stream():
    return sys.stderr if _streams["machine_output"] else sys.stdout


def _print_logger(*args: Any) -> structlog.PrintLogger:
    return structlog.PrintLogger(_log_stream())


def setup_logging(verbose: bool = False, machine_output: bool = False) -> None:
    """
    Configure structlog and the console.

    Args:
        verbose: Render log events for a terminal instead of as JSON lines
        machine_output: Keep stdout free for a machine-readable report
    """
    _streams["machine_output"] = machine_output
    console.stderr = machine_output

    renderer = structlog.dev.ConsoleRenderer(colors=True) if verbose else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        # resolved per call so the stream follows machine_output
        logger_factory=_print_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)


def bind_run_context(**values: Any) -> None:
    """Attach pipeline run identifiers to every subsequent log line."""
    structlog.contextvars.bind_contextvars(**values)


class StageLogger:
    """
    Logger handed to agents and clients.

    Every call emits one structlog event; all but ``debug`` also print a
    marked console line prefixed with the owner's name.
    """

    MARKS: Dict[str, Tuple[str, str]] = {
        "step": ("stage", "→"),
        "success": ("success", "✓"),
        "warning": ("warning", "⚠"),
        "error": ("error", "✗"),
        "info": ("info", "ℹ"),
    }

    def __init__(self, owner: str):
        self.owner = owner
        self.logger = get_logger(owner)

    def _emit(self, kind: str, level: str, message: str, **fields: Any) -> None:
        style, mark = self.MARKS[kind]
        console.print(f"[{style}]{mark}[/{style}] [{self.owner}] {message}", highlight=False)
        getattr(self.logger, level)(message, **fields)

    def step(self, message: str, step_num: int = None) -> None:
        if step_num:
            message = f"({step_num}) {message}"
        self._emit("step", "info", message, step=step_num)

    def success(self, message: str) -> None:
        self._emit("success", "info", message, status="success")

    def warning(self, message: str) -> None:
        self._emit("warning", "warning", message)

    def error(self, message: str, exc: Exception = None) -> None:
        self._emit("error", "error", message, exc_info=exc)

    def info(self, message: str, **kwargs: Any) -> None:
        self._emit("info", "info", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.debug(message, **kwargs)
