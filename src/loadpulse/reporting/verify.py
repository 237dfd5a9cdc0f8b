"""Post-run check of the server's message count against client counters."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loadpulse._internal.logging import get_logger
from loadpulse.client.http_client import MESSAGES_PATH

if TYPE_CHECKING:
    from loadpulse.client.http_client import MessageTransport
    from loadpulse.metrics.models import AggregateStats

logger = get_logger("reporting.verify")


@dataclass(frozen=True)
class VerificationResult:
    """Server-reported message count next to the client's own counts.

    Attributes:
        server_messages: Number of messages the server lists.
        client_successful_posts: POSTs the client saw succeed.
        client_successful_gets: GETs the client saw succeed.
    """

    server_messages: int
    client_successful_posts: int
    client_successful_gets: int

    @property
    def posts_match(self) -> bool:
        """Return True when the server holds exactly the client's successful POSTs."""
        return self.server_messages == self.client_successful_posts


async def verify_server(
    transport: MessageTransport,
    endpoint: str,
    stats: AggregateStats,
) -> VerificationResult | None:
    """Fetch the server's message list and compare it with ``stats``.

    Args:
        transport: Open HTTP client.
        endpoint: ``host:port`` to query.
        stats: Final statistics of the run.

    Returns:
        The comparison, or None if the server could not be queried or
        answered with something other than a JSON list.
    """
    try:
        reply = await transport.get(endpoint, MESSAGES_PATH)
    except Exception as exc:
        logger.warning("Error getting statistics from server: %s: %s", type(exc).__name__, exc)
        return None

    if not reply.ok:
        logger.warning("Server verification returned status %d", reply.status)
        return None

    try:
        messages = json.loads(reply.body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Error decoding server statistics: %s", exc)
        return None

    if not isinstance(messages, list):
        logger.warning("Server statistics are not a list: %s", type(messages).__name__)
        return None

    return VerificationResult(
        server_messages=len(messages),
        client_successful_posts=stats.successful_posts,
        client_successful_gets=stats.successful_gets,
    )
