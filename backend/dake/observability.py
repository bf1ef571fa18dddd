"""Logfire observability initialization and instrumentation."""

import logging

import logfire

from dake import __version__
from dake.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> bool:
    """
    Initialize Logfire once at startup, before any client is opened.

    Instruments HTTPX (ledger RPC and oracle calls) and bridges Python
    logging to Logfire. Returns False when the token is unset or setup fails;
    observability is optional and never stops a command.
    """
    if not settings.logfire_token:
        logger.debug("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="dake",
            service_version=__version__,
            environment=settings.cluster,
        )

        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire tracking initialized")
        return True

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False
