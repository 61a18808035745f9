"""
Chalkboard Logging Configuration - Color-Coded Logs

One line per record: time, level, the module that logged it, then the
message. Tutor events (inbound messages, indicator changes, tool calls,
model calls, finished responses) get a colored arrow tag so a single
response can be followed through the log by its message id.

Usage:
    from logging_config import setup_logging, log_message_in, log_tool
    setup_logging("DEBUG")
    logger = logging.getLogger(__name__)
    log_message_in(logger, "What is 25 + 37?", channel="messaging:math-101")
"""

import logging
import sys
from typing import Any, Iterable, Optional

RESET = "\033[0m"
DIM = "\033[2m"
BOLD = "\033[1m"

# Event tag -> color
EVENT_COLORS = {
    "MESSAGE": "\033[96m",  # Cyan
    "RESPONSE": "\033[92m",  # Green
    "INDICATOR": "\033[95m",  # Magenta
    "TOOL": "\033[93m",  # Yellow
    "LLM": "\033[94m",  # Blue
}

LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: RESET,
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[91m" + BOLD,
}

PREVIEW_CHARS = 80


class ColorFormatter(logging.Formatter):
    """Compact colored formatter: ``HH:MM:SS [LEVL] source: message``.

    ``source`` is the last dotted component of the logger name, so
    ``agents.response_handler`` shows as ``response_handler``.
    """

    def __init__(self, show_source: bool = True, use_color: bool = True):
        super().__init__()
        self.show_source = show_source
        self.use_color = use_color

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self.use_color else text

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            self._paint(self.formatTime(record, "%H:%M:%S"), DIM),
            f"[{self._paint(record.levelname[:4], LEVEL_COLORS.get(record.levelno, RESET))}]",
        ]
        if self.show_source:
            parts.append(self._paint(record.name.rsplit(".", 1)[-1] + ":", DIM))
        parts.append(record.getMessage())

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: int | str = logging.INFO, show_source: bool = True) -> None:
    """Install the colored formatter on the root logger.

    ``level`` may be a name such as ``"debug"``; unknown names fall back to INFO.
    Color is disabled when stdout is not a terminal.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter(show_source=show_source, use_color=sys.stdout.isatty()))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for noisy in ("httpx", "httpcore", "openai", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# =============================================================================
# EVENT HELPERS
# =============================================================================


def _tag(event: str, inbound: bool) -> str:
    arrow = ">>>" if inbound else "<<<"
    return f"{EVENT_COLORS[event]}{arrow} {event}{RESET}"


def _kv(context: dict) -> str:
    return " ".join(f"{k}={v}" for k, v in context.items())


def _preview(text: str) -> str:
    return text if len(text) <= PREVIEW_CHARS else text[:PREVIEW_CHARS] + "..."


def log_message_in(logger: logging.Logger, message: str, **context: Any) -> None:
    """Log an inbound user message (truncated) with its channel context."""
    logger.info(f"{_tag('MESSAGE', True)} {_preview(message)} [{_kv(context)}]")


def log_message_out(
    logger: logging.Logger,
    message_id: str,
    chars: int = 0,
    chunks: int = 0,
    tools_used: Optional[Iterable[str]] = None,
) -> None:
    """Log a completed response.

    Args:
        logger: Logger instance
        message_id: Outbound message id
        chars: Length of the final committed text
        chunks: Number of streamed text chunks
        tools_used: Tool names called while answering
    """
    tools = ", ".join(tools_used or []) or "none"
    logger.info(f"{_tag('RESPONSE', False)} {message_id} chars={chars} chunks={chunks} tools=[{tools}]")


def log_indicator(logger: logging.Logger, state: str, message_id: str) -> None:
    logger.debug(f"{EVENT_COLORS['INDICATOR']}... {state}{RESET} {message_id}")


def log_tool(logger: logging.Logger, tool_name: str, state: str, **context: Any) -> None:
    """Log a tool call; ``state`` is ``"start"`` or ``"end"``."""
    logger.info(f"{_tag('TOOL', state == 'start')} {tool_name} {_kv(context)}".rstrip())


def log_llm(logger: logging.Logger, state: str, model: str = "", duration: float = 0) -> None:
    """Log a model request; ``duration`` (seconds) is reported on ``"end"``."""
    if state == "start":
        logger.info(f"{_tag('LLM', True)} calling {model}")
    else:
        logger.info(f"{_tag('LLM', False)} {model} completed in {duration:.1f}s")
