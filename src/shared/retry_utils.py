import time
from typing import Callable, Optional, Tuple, TypeVar

from src.shared.logging_utils import warning as log_warning

T = TypeVar("T")


def retry_with_backoff(
    operation: Callable[[], T],
    *,
    attempts: int = 3,
    delay: float = 1.5,
    backoff: float = 1.5,
    exceptions: Tuple[type, ...] = (Exception,),
    run_trace_id: Optional[str] = None,
) -> T:
    """Execute `operation` with simple exponential backoff.

    Used around blocking SDK calls that run on worker threads; the last
    failure is re-raised unchanged.
    """
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except exceptions as exc:  # type: ignore[misc]
            if attempt == attempts:
                raise
            log_warning(
                run_trace_id,
                "retry:attempt_failed",
                attempt=attempt,
                nextDelaySeconds=delay,
                error=str(exc),
            )
            time.sleep(delay)
            delay *= backoff
    raise RuntimeError("retry_with_backoff called with attempts < 1")
