"""structlog setup shared by the CLI, the scheduler and on-demand runs."""

import logging

import structlog


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structlog for the whole process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        fmt: "json" for one JSON object per line, "console" for humans
    """
    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )


def bind_run_context(run_id: str, trigger: str) -> None:
    """Attach run identity to every log line emitted during a run."""
    structlog.contextvars.bind_contextvars(run_id=run_id, trigger=trigger)


def clear_run_context() -> None:
    structlog.contextvars.unbind_contextvars("run_id", "trigger")
