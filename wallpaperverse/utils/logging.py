"""structlog configuration for the gallery API, scheduler and CLI.

Every event carries ``service``, ``component`` (``api`` or ``cli``),
``env`` and ``version`` so API, scheduler and sync logs from several
deployments can share one sink.  Production (``APP_ENV=production``)
renders one JSON object per line; anything else gets the coloured console
renderer.

Standard-library logging is routed through the same processor chain, so
uvicorn access logs come out in the same format.  The per-request chatter
of httpx (one INFO line per upstream image-source call) and aiosqlite
(one DEBUG line per statement) is held at WARNING.
"""

import logging
import os
import sys

import structlog

from wallpaperverse import __version__

SERVICE_NAME = "wallpaperverse"

_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def add_app_context(
    app_env: str, component: str = "api"
) -> structlog.types.Processor:
    """Build a processor that stamps the deployment identity on each event.

    Keys already present on the event (e.g. a bound ``component``) win.
    """
    context = {
        "service": SERVICE_NAME,
        "component": component,
        "env": app_env,
        "version": __version__,
    }

    def _processor(logger, method_name, event_dict):  # noqa: ANN001, ANN202
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return _processor


def configure_logging(
    log_level: str = "INFO",
    app_env: str | None = None,
    component: str = "api",
    json_output: bool | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and stdlib logging for this process.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR (``LOG_LEVEL``).
        app_env: Deployment name (``APP_ENV``); read from the environment
                 when omitted.
        component: Which entry point is logging, ``api`` or ``cli``.
        json_output: Override the renderer; by default JSON only in
                     production.
    """
    app_env = app_env or os.environ.get("APP_ENV", "development")
    use_json = app_env == "production" if json_output is None else json_output

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_app_context(app_env, component),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Named logger; configures development defaults on first use."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
