# carechain/events.py
"""
Structured events for every committed state change.

Events go to the structlog pipeline; whatever is listening on the stdlib
logging side (a file, stdout, a shipper) is the observability sink.
"""
import logging
import sys

import structlog

logger = structlog.get_logger("carechain.events")


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def emit(name: str, **fields) -> None:
    logger.info(name, **fields)
