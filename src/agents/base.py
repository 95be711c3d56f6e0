from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional


class Agent(ABC):
    """A unit of work driven by a text generation service.

    Carries the caller's ``run_trace_id`` so that every log line an agent
    writes correlates with the sync run that invoked it.
    """

    name: ClassVar[str] = "agent"

    def __init__(self) -> None:
        self._run_trace_id: Optional[str] = None

    def with_run_trace(self, run_trace_id: Optional[str]) -> "Agent":
        self._run_trace_id = run_trace_id
        return self

    def log_dimensions(self, **extra: Any) -> Dict[str, Any]:
        return {"agent": self.name, **extra}

    @abstractmethod
    async def run(self, *args: Any, **kwargs: Any) -> Any:
        """Process a batch and return one result per input."""


__all__ = ["Agent"]
