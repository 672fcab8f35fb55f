import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from fulfillment.core.config import settings

_HANDLER_NAME = "fulfillment-json"


def setup_logging(level: Optional[str] = None) -> None:
    """Send JSON log lines to stdout.

    Safe to call more than once; the stdout handler is only installed once.
    """
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)

    if any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        static_fields={"service": settings.service_name}
    ))
    root.addHandler(handler)
