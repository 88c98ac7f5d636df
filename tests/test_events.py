"""
Tests for temporal event synthesis.
"""

from datetime import datetime, timedelta

import numpy as np
import pytest

from seed_graph.events import SHAPES, EventQueue, event_cdf, generate_events

START = datetime(2024, 1, 1, 9, 0, 0)
END = START + timedelta(days=14)


def share_in_first_half(events, start=START, end=END):
    midpoint = start + (end - start) / 2
    return sum(1 for e in events if e < midpoint) / len(events)


class TestGenerateEvents:
    """Shape, bounds and ordering of generated timestamps."""

    def test_returns_requested_count(self):
        events = generate_events(250, START, END, rng=np.random.default_rng(1))
        assert len(events) == 250

    def test_events_within_window(self):
        events = generate_events(500, START, END, rng=np.random.default_rng(2))
        assert all(START <= e <= END for e in events)

    def test_events_ascending(self):
        events = generate_events(500, START, END, rng=np.random.default_rng(3))
        assert events == sorted(events)

    def test_zero_total_is_empty(self):
        assert generate_events(0, START, END) == []

    def test_zero_length_window(self):
        """Every event lands on the single instant."""
        events = generate_events(10, START, START, rng=np.random.default_rng(4))
        assert events == [START] * 10

    def test_whole_second_offsets(self):
        events = generate_events(100, START, END, rng=np.random.default_rng(5))
        assert all(e.microsecond == 0 for e in events)

    @pytest.mark.parametrize("shape", sorted(SHAPES))
    @pytest.mark.parametrize("trend", ["positive", "negative"])
    def test_every_curve_stays_in_window(self, shape, trend):
        events = generate_events(200, START, END, shape=shape, trend=trend,
                                 rng=np.random.default_rng(6))
        assert len(events) == 200
        assert all(START <= e <= END for e in events)

    def test_seeded_generator_is_deterministic(self):
        first = generate_events(100, START, END, rng=np.random.default_rng(42))
        second = generate_events(100, START, END, rng=np.random.default_rng(42))
        assert first == second


class TestCurveDensity:
    """Where the mass of each curve falls."""

    def test_ease_out_negative_front_loaded(self):
        events = generate_events(2000, START, END, "ease-out", "negative",
                                 rng=np.random.default_rng(7))
        assert share_in_first_half(events) > 0.8

    def test_ease_out_positive_back_loaded(self):
        events = generate_events(2000, START, END, "ease-out", "positive",
                                 rng=np.random.default_rng(8))
        assert share_in_first_half(events) < 0.2

    def test_flat_is_uniform(self):
        events = generate_events(2000, START, END, "flat", "negative",
                                 rng=np.random.default_rng(9))
        assert 0.45 < share_in_first_half(events) < 0.55

    def test_cdf_monotone_and_normalised(self):
        for shape in SHAPES:
            u, cdf = event_cdf(shape, "negative")
            assert cdf[0] == 0.0
            assert cdf[-1] == pytest.approx(1.0)
            assert np.all(np.diff(cdf) > 0)
            assert u[0] == 0.0 and u[-1] == 1.0


class TestInvalidArguments:
    """ValueError conditions."""

    def test_negative_total(self):
        with pytest.raises(ValueError, match="non-negative"):
            generate_events(-1, START, END)

    def test_reversed_window(self):
        with pytest.raises(ValueError, match="before"):
            generate_events(5, END, START)

    def test_unknown_shape(self):
        with pytest.raises(ValueError, match="shape"):
            generate_events(5, START, END, shape="zigzag")

    def test_unknown_trend(self):
        with pytest.raises(ValueError, match="trend"):
            generate_events(5, START, END, trend="sideways")

    def test_unknown_shape_rejected_even_for_zero_total(self):
        with pytest.raises(ValueError):
            generate_events(0, START, END, shape="zigzag")


class TestEventQueue:
    """Front-first consumption."""

    def test_pops_in_order_then_none(self):
        events = [START, START + timedelta(hours=1), START + timedelta(hours=2)]
        queue = EventQueue(events)
        assert len(queue) == 3
        assert [queue.pop() for _ in range(3)] == events
        assert queue.pop() is None
        assert len(queue) == 0

    def test_does_not_mutate_source_list(self):
        events = [START, END]
        queue = EventQueue(events)
        queue.pop()
        assert events == [START, END]

    def test_empty_queue(self):
        assert EventQueue().pop() is None
