"""Structured logging for both engine loops, built on structlog + stdlib logging.

Events are snake_case names with key/value context, e.g.
``logger.info("position_closed", trade_id=3, net_pnl="9.92")``. Third-party
libraries that log through stdlib end up in the same stream and format.
"""

import logging
import os
import sys
from typing import TextIO

import structlog

#: Third-party loggers that would otherwise emit one line per HTTP request.
_NOISY_LOGGERS = ("httpx", "httpcore", "google_genai", "uvicorn.access")

_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def _renderer(log_format: str, stream: TextIO) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def setup_logging(
    log_level: str = "INFO",
    log_format: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib records through one formatter.

    Context bound through structlog.contextvars is merged into every event
    and stays local to the asyncio task that bound it.

    Args:
        log_level: Root log level name (e.g. "INFO", "DEBUG").
        log_format: "json" or "console". Defaults to the LOG_FORMAT
            environment variable, then "console".
        stream: Output stream, stderr by default.
    """
    fmt = (log_format or os.environ.get("LOG_FORMAT", "console")).lower()
    out = stream if stream is not None else sys.stderr

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_PRE_CHAIN,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(fmt, out),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
