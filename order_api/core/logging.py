from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional, Union

# Correlation id of the request being served (set by the HTTP middleware).
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | %(message)s"
_HANDLER_NAME = "order_api"


class LoggingContextFilter(logging.Filter):
    """Adds `correlation_id` to every record; "-" outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.correlation_id = correlation_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str, None] = None) -> None:
    """
    Install the stdout handler on the root logger.

    `level` defaults to the LOG_LEVEL application setting. Calling this again
    replaces the handler installed earlier; handlers added by others stay.
    SQL statement logging follows the SQL_ECHO database setting, so the engine
    logger is kept at WARNING here.
    """
    if level is None:
        from order_api.core.settings import get_app_settings

        level = get_app_settings().LOG_LEVEL
    if isinstance(level, str):
        level = level.upper()

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
