import logging
from typing import Any, Dict, Optional


_LOGGER = logging.getLogger("smartportfolio")


def get_logger() -> logging.Logger:
    return _LOGGER


def log(level: int, run_trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    dims: Dict[str, Any] = {"runTraceId": run_trace_id} if run_trace_id else {}
    dims.update(dimensions)
    try:
        _LOGGER.log(level, message, extra={"custom_dimensions": dims})
    except Exception:
        # Some handlers reject unknown record attributes
        _LOGGER.log(level, f"{message} | {dims}")


def info(run_trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.INFO, run_trace_id, message, **dimensions)


def warning(run_trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.WARNING, run_trace_id, message, **dimensions)


def error(run_trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.ERROR, run_trace_id, message, **dimensions)
