"""Outcome and aggregate dataclasses for loadpulse."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# NOTE: WorkItem and RequestKind live in engine/workload.py. Re-exported
# here so reporting code can import every record type from one place.
from loadpulse.engine.workload import RequestKind, WorkItem

__all__ = [
    "AggregateStats",
    "RequestKind",
    "RequestMessage",
    "RequestOutcome",
    "WorkItem",
]


@dataclass(frozen=True)
class RequestMessage:
    """Synthetic message built for one request.

    Attributes:
        id: Identifier unique within the run (e.g. ``msg-<ns>-<n>``).
        content: Body text sent with a POST; empty for GET.
        method: ``"GET"`` or ``"POST"``.
        timestamp: UTC time at which the message was built.
    """

    id: str
    content: str
    method: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form used in the results file."""
        return {
            "id": self.id,
            "content": self.content,
            "method": self.method,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class RequestOutcome:
    """Recorded result of executing one work item.

    Attributes:
        work_item: The work item that was executed.
        success: True when the server answered with a 2xx status.
        latency_ms: Wall-clock time around the HTTP call, in milliseconds.
        timestamp: UTC time at which the request was issued.
        generated_id: The synthetic message id.
        status_code: HTTP status, or 0 when no response was received.
        message: The synthetic message that was sent.
    """

    work_item: WorkItem
    success: bool
    latency_ms: float
    timestamp: datetime
    generated_id: str
    status_code: int = 0
    message: RequestMessage | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form used in the results file."""
        return {
            "message": self.message.to_dict() if self.message is not None else None,
            "sequence_index": self.work_item.sequence_index,
            "success": self.success,
            "status_code": self.status_code,
            "response_time_ms": self.latency_ms,
        }


@dataclass(frozen=True)
class AggregateStats:
    """Point-in-time copy of the recorder's counters and result log.

    Attributes:
        total: Number of recorded outcomes.
        successful_posts: POST outcomes with a 2xx status.
        failed_posts: POST outcomes without a 2xx status.
        successful_gets: GET outcomes with a 2xx status.
        failed_gets: GET outcomes without a 2xx status.
        total_latency_ms: Sum of all outcome latencies.
        results: Every recorded outcome, in record order.
    """

    total: int = 0
    successful_posts: int = 0
    failed_posts: int = 0
    successful_gets: int = 0
    failed_gets: int = 0
    total_latency_ms: float = 0.0
    results: tuple[RequestOutcome, ...] = field(default_factory=tuple)

    @property
    def successful(self) -> int:
        """Return the number of successful outcomes of either kind."""
        return self.successful_posts + self.successful_gets

    @property
    def failed(self) -> int:
        """Return the number of failed outcomes of either kind."""
        return self.failed_posts + self.failed_gets

    @property
    def average_latency_ms(self) -> float:
        """Return mean latency, or 0.0 when nothing was recorded."""
        if self.total == 0:
            return 0.0
        return self.total_latency_ms / self.total

    @property
    def error_rate(self) -> float:
        """Return the failed fraction (0.0 to 1.0)."""
        if self.total == 0:
            return 0.0
        return self.failed / self.total

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form used in the results file."""
        return {
            "total_requests": self.total,
            "successful_posts": self.successful_posts,
            "failed_posts": self.failed_posts,
            "successful_gets": self.successful_gets,
            "failed_gets": self.failed_gets,
            "total_response_time_ms": self.total_latency_ms,
            "results": [outcome.to_dict() for outcome in self.results],
        }
