"""Tests for the workload generator."""

from __future__ import annotations

import random
from collections import Counter

import pytest

from loadpulse.engine.workload import RequestKind, WorkItem, WorkloadGenerator, post_count


def _kinds(items: list[WorkItem]) -> list[RequestKind]:
    return [item.kind for item in items]


class TestPostCount:
    @pytest.mark.parametrize(
        ("n", "ratio", "expected"),
        [
            (10, 0.7, 7),
            (10, 0.0, 0),
            (10, 1.0, 10),
            (5, 0.5, 3),
            (3, 0.5, 2),
            (0, 0.7, 0),
            (7, 0.33, 2),
        ],
    )
    def test_rounds_half_up(self, n: int, ratio: float, expected: int) -> None:
        assert post_count(n, ratio) == expected


class TestBatch:
    def test_exact_composition(self) -> None:
        gen = WorkloadGenerator(random.Random(1))
        batch = gen.batch(10, 0.7)
        counts = Counter(_kinds(batch))
        assert counts[RequestKind.POST] == 7
        assert counts[RequestKind.GET] == 3

    def test_empty_batch(self) -> None:
        gen = WorkloadGenerator(random.Random(1))
        assert gen.batch(0, 0.5) == []

    def test_pure_get_batch(self) -> None:
        gen = WorkloadGenerator(random.Random(1))
        assert _kinds(gen.batch(8, 0.0)) == [RequestKind.GET] * 8

    def test_pure_post_batch(self) -> None:
        gen = WorkloadGenerator(random.Random(1))
        assert _kinds(gen.batch(8, 1.0)) == [RequestKind.POST] * 8

    def test_sequence_indices_are_consecutive(self) -> None:
        gen = WorkloadGenerator(random.Random(1))
        batch = gen.batch(5, 0.4, start_index=20)
        assert [item.sequence_index for item in batch] == [20, 21, 22, 23, 24]

    def test_shuffle_changes_order(self) -> None:
        """Over many seeds, the shuffled order almost never equals the unshuffled one."""
        unshuffled = [RequestKind.POST] * 8 + [RequestKind.GET] * 8
        identical = 0
        for seed in range(50):
            gen = WorkloadGenerator(random.Random(seed))
            if _kinds(gen.batch(16, 0.5)) == unshuffled:
                identical += 1
        assert identical <= 1

    def test_same_seed_same_sequence(self) -> None:
        first = WorkloadGenerator(random.Random(42))
        second = WorkloadGenerator(random.Random(42))
        for start in range(0, 50, 10):
            assert first.batch(10, 0.3, start) == second.batch(10, 0.3, start)

    def test_different_seed_differs(self) -> None:
        first = [_kinds(WorkloadGenerator(random.Random(1)).batch(40, 0.5))]
        second = [_kinds(WorkloadGenerator(random.Random(2)).batch(40, 0.5))]
        assert first != second

    def test_rejects_negative_size(self) -> None:
        gen = WorkloadGenerator(random.Random(1))
        with pytest.raises(ValueError, match=">= 0"):
            gen.batch(-1, 0.5)

    @pytest.mark.parametrize("ratio", [-0.1, 1.5])
    def test_rejects_ratio_out_of_range(self, ratio: float) -> None:
        gen = WorkloadGenerator(random.Random(1))
        with pytest.raises(ValueError, match="between 0 and 1"):
            gen.batch(10, ratio)


class TestSample:
    def test_ratio_zero_is_always_get(self) -> None:
        gen = WorkloadGenerator(random.Random(3))
        assert all(gen.sample(i, 0.0).kind is RequestKind.GET for i in range(200))

    def test_ratio_one_is_always_post(self) -> None:
        gen = WorkloadGenerator(random.Random(3))
        assert all(gen.sample(i, 1.0).kind is RequestKind.POST for i in range(200))

    def test_ratio_is_approximated(self) -> None:
        gen = WorkloadGenerator(random.Random(7))
        posts = sum(gen.sample(i, 0.7).kind is RequestKind.POST for i in range(5000))
        assert 0.65 < posts / 5000 < 0.75

    def test_same_seed_same_samples(self) -> None:
        first = WorkloadGenerator(random.Random(9))
        second = WorkloadGenerator(random.Random(9))
        assert [first.sample(i, 0.5) for i in range(100)] == [
            second.sample(i, 0.5) for i in range(100)
        ]

    def test_carries_index(self) -> None:
        gen = WorkloadGenerator(random.Random(3))
        assert gen.sample(17, 0.5).sequence_index == 17


class TestWorkItem:
    def test_frozen(self) -> None:
        item = WorkItem(kind=RequestKind.GET, sequence_index=0)
        with pytest.raises(AttributeError):
            item.sequence_index = 1  # type: ignore[misc]
