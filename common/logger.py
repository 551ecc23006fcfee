import logging
import sys
from typing import Optional

DEFAULT_TRACE_ID = "contentful-knowledge"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(trace_id)s | %(name)s | %(message)s"


class TraceIdFilter(logging.Filter):
    """Stamp every record with the import run's trace id."""

    def __init__(self, trace_id: str = DEFAULT_TRACE_ID):
        super().__init__()
        self.trace_id = trace_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = self.trace_id
        return True


_trace_filter = TraceIdFilter()


def set_trace_id(trace_id: str) -> None:
    _trace_filter.trace_id = trace_id


def get_logger(name: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name or "cfk")
    if logger.handlers:
        return logger
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(_trace_filter)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
