"""GET/POST workload generation with a target POST ratio."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum


class RequestKind(Enum):
    """HTTP method of a planned request."""

    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class WorkItem:
    """One planned HTTP call.

    Attributes:
        kind: GET or POST.
        sequence_index: Position of the item in dispatch order.
    """

    kind: RequestKind
    sequence_index: int


def post_count(n: int, post_ratio: float) -> int:
    """Return the number of POSTs in a batch of ``n`` at ``post_ratio``.

    Rounds half up, so ``post_count(5, 0.5) == 3``.
    """
    return min(n, math.floor(n * post_ratio + 0.5))


def _check_ratio(post_ratio: float) -> None:
    if not 0.0 <= post_ratio <= 1.0:
        msg = f"post_ratio must be between 0 and 1, got {post_ratio}"
        raise ValueError(msg)


class WorkloadGenerator:
    """Decides the method of each request.

    Two policies share one owned random source:

    * ``batch`` builds a fixed composition and shuffles it (quota mode).
    * ``sample`` draws each kind independently (interval mode).

    Passing a ``random.Random`` seeded with a fixed value makes both
    policies reproducible.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        """Initialize the generator.

        Args:
            rng: Random source to draw from. A fresh unseeded
                ``random.Random`` is created when omitted.
        """
        self._rng = rng if rng is not None else random.Random()  # noqa: S311

    def batch(self, n: int, post_ratio: float, start_index: int = 0) -> list[WorkItem]:
        """Build a shuffled batch with an exact POST count.

        Args:
            n: Batch size. Zero yields an empty list.
            post_ratio: Target POST fraction in ``[0, 1]``.
            start_index: Sequence index of the first item.

        Returns:
            ``n`` work items, ``post_count(n, post_ratio)`` of them POSTs,
            in shuffled order with consecutive sequence indices.

        Raises:
            ValueError: If ``n`` is negative or the ratio is out of range.
        """
        if n < 0:
            msg = f"batch size must be >= 0, got {n}"
            raise ValueError(msg)
        _check_ratio(post_ratio)

        posts = post_count(n, post_ratio)
        kinds = [RequestKind.POST] * posts + [RequestKind.GET] * (n - posts)
        self._rng.shuffle(kinds)
        return [WorkItem(kind=kind, sequence_index=start_index + i) for i, kind in enumerate(kinds)]

    def sample(self, index: int, post_ratio: float) -> WorkItem:
        """Draw a single work item: POST with probability ``post_ratio``."""
        _check_ratio(post_ratio)
        kind = RequestKind.POST if self._rng.random() < post_ratio else RequestKind.GET
        return WorkItem(kind=kind, sequence_index=index)
