"""Tests for the binary-heap priority queue."""

import heapq
import random

import pytest

from heap_queue import HeapQueue, QueueEntry


class TestHeapQueueSequence:
    """Push/pop sequence carried across steps on one queue."""

    @pytest.fixture(scope="class")
    def hq(self):
        return HeapQueue()

    def test_pop_smallest(self, hq):
        hq.heappush(3, '1st')
        hq.heappush(5, '2nd')
        hq.heappush(1, '3rd')
        assert hq.heappop() == '3rd'

    def test_length_after_pop(self, hq):
        assert hq.length() == 2

    def test_fractional_priority(self, hq):
        hq.heappush(8, '4th')
        hq.heappush(1.4, '5th')
        assert hq.heappop() == '5th'

    def test_length_again(self, hq):
        assert len(hq) == 3

    def test_ties_pop_in_insertion_order(self, hq):
        hq.heappush(9, '6th')
        hq.heappush(10, '7th')
        hq.heappush(3, '8th')
        assert hq.heappop() == '1st'
        assert hq.heappop() == '8th'

    def test_clear(self, hq):
        hq.clear()
        assert hq.length() == 0

    def test_reuse_after_clear(self, hq):
        for priority, task in [(20, '1st'), (30, '2nd'), (10, '3rd'), (5, '4th'), (1, '5th'),
                               (2, '6th'), (3, '7th'), (6, '8th'), (6, '9th')]:
            hq.heappush(priority, task)
        assert hq.heappop() == '5th'
        assert hq.heappop() == '6th'


class TestHeapQueueProperties:
    def test_empty_pop_returns_none(self):
        hq = HeapQueue()
        assert hq.heappop() is None
        assert len(hq) == 0

    def test_example_order(self):
        hq = HeapQueue()
        for value in [3, 5, 1, 8, 1.4]:
            hq.heappush(value, value)
        assert [hq.heappop() for _ in range(5)] == [1, 1.4, 3, 5, 8]

    def test_size_tracks_pushes_and_pops(self):
        hq = HeapQueue()
        for i in range(10):
            hq.heappush(i % 3, i)
        for _ in range(4):
            hq.heappop()
        assert len(hq) == 6

    def test_counter_survives_clear(self):
        """Entries pushed after clear() still order after each other by push time."""
        hq = HeapQueue()
        hq.heappush(1, 'a')
        hq.clear()
        hq.heappush(1, 'b')
        hq.heappush(1, 'c')
        assert hq._queue[0].counter == 1
        assert [hq.heappop(), hq.heappop()] == ['b', 'c']

    @pytest.mark.parametrize("seed", range(5))
    def test_random_sequence_is_stable_sorted(self, seed):
        rng = random.Random(seed)
        hq = HeapQueue()
        pushed = []
        for i in range(300):
            priority = rng.choice([0, 1, 2, 2.5, 3, rng.random() * 5])
            hq.heappush(priority, i)
            pushed.append((priority, i))
        expected = [i for _, i in sorted(pushed)]
        assert [hq.heappop() for _ in range(len(pushed))] == expected
        assert hq.heappop() is None

    @pytest.mark.parametrize("seed", range(5))
    def test_interleaved_matches_heapq(self, seed):
        rng = random.Random(seed)
        hq = HeapQueue()
        reference = []
        counter = 0
        for _ in range(1000):
            if reference and rng.random() < 0.45:
                _, _, expected = heapq.heappop(reference)
                assert hq.heappop() == expected
            else:
                priority = rng.randint(0, 20)
                heapq.heappush(reference, (priority, counter, f"task{counter}"))
                hq.heappush(priority, f"task{counter}")
                counter += 1
            assert len(hq) == len(reference)

    def test_heap_invariant_after_pops(self):
        hq = HeapQueue()
        for priority in [5, 9, 6, 12, 10, 7, 8, 15, 13, 11, 14, 1, 6, 5]:
            hq.heappush(priority, priority)
        for _ in range(6):
            hq.heappop()
            queue = hq._queue
            for index in range(1, len(queue)):
                assert not queue[index].orders_before(queue[(index - 1) >> 1])


class TestQueueEntry:
    def test_orders_by_priority_then_counter(self):
        assert QueueEntry(1, 5, None).orders_before(QueueEntry(2, 0, None))
        assert QueueEntry(1, 0, None).orders_before(QueueEntry(1, 1, None))
        assert not QueueEntry(1, 1, None).orders_before(QueueEntry(1, 1, None))
