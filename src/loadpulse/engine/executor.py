"""Executes one work item against the message API and records the outcome."""

from __future__ import annotations

import itertools
import json
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from loadpulse._internal.logging import get_logger
from loadpulse.client.http_client import MESSAGES_PATH
from loadpulse.engine.workload import RequestKind
from loadpulse.metrics.models import RequestMessage, RequestOutcome

if TYPE_CHECKING:
    from loadpulse.client.http_client import HttpReply, MessageTransport
    from loadpulse.engine.workload import WorkItem
    from loadpulse.metrics.recorder import ResultRecorder

logger = get_logger("engine.executor")


def extract_host(kind: RequestKind, body: bytes) -> str | None:
    """Return the server-suggested host from a successful response body.

    A POST response is a single message object; a GET response is a list
    of them and the first element is used. Any decoding problem, a missing
    field or an empty value yields None.

    Args:
        kind: Method of the request that produced ``body``.
        body: Raw response body.

    Returns:
        The ``host_ip`` value, or None if none could be read.
    """
    try:
        data: Any = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None

    if kind is RequestKind.GET:
        if not isinstance(data, list) or not data:
            return None
        data = data[0]

    if not isinstance(data, dict):
        return None
    host = data.get("host_ip")
    if not isinstance(host, str) or not host:
        return None
    return host


class RequestExecutor:
    """Performs one HTTP call per work item.

    ``execute`` never raises for request failures: transport errors,
    timeouts and non-2xx statuses all become a failed ``RequestOutcome``
    and the prior endpoint is kept. Every outcome is recorded before
    ``execute`` returns.
    """

    def __init__(
        self,
        transport: MessageTransport,
        recorder: ResultRecorder,
        *,
        path: str = MESSAGES_PATH,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Pre-configured HTTP client shared by the run.
            recorder: Accumulator receiving every outcome.
            path: Message API path on each endpoint.
        """
        self._transport = transport
        self._recorder = recorder
        self._path = path
        self._counter = itertools.count()

    @property
    def recorder(self) -> ResultRecorder:
        """Return the recorder receiving this executor's outcomes."""
        return self._recorder

    def _new_message(self, kind: RequestKind) -> RequestMessage:
        now = datetime.now(UTC)
        content = f"Content generated at {now.isoformat()}" if kind is RequestKind.POST else ""
        return RequestMessage(
            id=f"msg-{time.time_ns()}-{next(self._counter)}",
            content=content,
            method=kind.value,
            timestamp=now,
        )

    async def _send(self, message: RequestMessage, endpoint: str) -> HttpReply:
        if message.method == RequestKind.POST.value:
            return await self._transport.post(endpoint, self._path, {"content": message.content})
        return await self._transport.get(endpoint, self._path)

    async def execute(self, item: WorkItem, endpoint: str) -> tuple[str, RequestOutcome]:
        """Execute ``item`` against ``endpoint``.

        Args:
            item: The work item to execute.
            endpoint: Current ``host:port`` snapshot.

        Returns:
            Tuple of (endpoint for the next request, recorded outcome).
        """
        message = self._new_message(item.kind)
        next_endpoint = endpoint
        status = 0
        success = False

        start = time.monotonic()
        try:
            reply = await self._send(message, endpoint)
        except Exception as exc:
            latency_ms = (time.monotonic() - start) * 1000
            logger.warning(
                "%s request #%d to %s failed: %s: %s",
                item.kind.value,
                item.sequence_index,
                endpoint,
                type(exc).__name__,
                exc,
                extra={"endpoint": endpoint, "sequence_index": item.sequence_index},
            )
        else:
            latency_ms = (time.monotonic() - start) * 1000
            status = reply.status
            success = reply.ok
            if success:
                host = extract_host(item.kind, reply.body)
                if host is None:
                    logger.debug(
                        "No host in %s response #%d; keeping %s",
                        item.kind.value,
                        item.sequence_index,
                        endpoint,
                    )
                else:
                    next_endpoint = host
            else:
                logger.debug(
                    "%s request #%d returned status %d",
                    item.kind.value,
                    item.sequence_index,
                    status,
                )

        outcome = RequestOutcome(
            work_item=item,
            success=success,
            latency_ms=latency_ms,
            timestamp=message.timestamp,
            generated_id=message.id,
            status_code=status,
            message=message,
        )
        self._recorder.record(outcome)
        return next_endpoint, outcome
