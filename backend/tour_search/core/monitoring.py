"""
Monitoring & observability helpers.

JSONFormatter renders log records as one JSON object per line when
log_format=json; structured fields passed through ``extra=`` (see
STRUCTURED_FIELDS) are copied into the object.

track_performance times a search operation and logs how many packages it
matched.
"""

import time
from typing import Callable, Any, Optional
from functools import wraps
import logging
import json
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

STRUCTURED_FIELDS = ("operation", "duration_ms", "result_count", "method", "path", "status_code")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def _result_count(result: Any) -> Optional[int]:
    """Total matches of a PackageSearchResponse-like result, if it has one."""
    meta = getattr(result, "meta", None)
    return getattr(meta, "total", None)


def track_performance(operation_name: str):
    """Log elapsed time and match count of a (synchronous) search operation."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = round((time.perf_counter() - start) * 1000, 1)
                logger.error(
                    f"{operation_name} failed after {elapsed:.0f}ms: {e}",
                    extra={"operation": operation_name, "duration_ms": elapsed},
                )
                raise
            elapsed = round((time.perf_counter() - start) * 1000, 1)
            count = _result_count(result)
            logger.info(
                f"{operation_name}: {count if count is not None else '?'} matches in {elapsed:.0f}ms",
                extra={"operation": operation_name, "duration_ms": elapsed, "result_count": count},
            )
            return result

        return wrapper

    return decorator
