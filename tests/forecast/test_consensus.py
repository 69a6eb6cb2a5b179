"""Tests for ConsensusAggregator clustering, merging and ranking."""

from datetime import date

import pytest

from forecast.consensus import ConsensusAggregator, fallback_entries, quality_for
from forecast.models import SourceResult
from shared_types import Confidence, Quality, WindowKind

DAY = date(2026, 10, 17)


@pytest.fixture
def aggregator():
    return ConsensusAggregator()


class TestClustering:
    def test_threshold_boundary_merges_at_120(self, aggregator, location, make_window, make_result):
        results = [
            make_result("a", [make_window(600, 720, source_id="a")]),
            make_result("b", [make_window(720, 840, source_id="b")]),
        ]
        schedule = aggregator.aggregate(results, DAY, location)
        assert len(schedule.entries) == 1
        assert schedule.entries[0].agreement_count == 2

    def test_threshold_boundary_splits_at_121(self, aggregator, location, make_window, make_result):
        results = [
            make_result("a", [make_window(600, 660, source_id="a")]),
            make_result("b", [make_window(721, 781, source_id="b")]),
        ]
        schedule = aggregator.aggregate(results, DAY, location)
        assert len(schedule.entries) == 2
        assert [e.agreement_count for e in schedule.entries] == [1, 1]

    def test_weighted_merge(self, aggregator, location, make_window, make_result):
        results = [
            make_result("a", [make_window(600, 720, source_id="a", weight=0.6)]),
            make_result("b", [make_window(630, 750, source_id="b", weight=0.4)]),
        ]
        entry = aggregator.aggregate(results, DAY, location).entries[0]
        assert entry.merged_start == pytest.approx(612)
        assert entry.merged_end == pytest.approx(732)

    def test_single_member_passes_through(self, aggregator, location, make_window, make_result):
        results = [make_result("a", [make_window(605, 725, source_id="a", weight=0.3)])]
        entry = aggregator.aggregate(results, DAY, location).entries[0]
        assert entry.merged_start == 605
        assert entry.merged_end == 725
        assert entry.quality == Quality.FAIR

    def test_kinds_never_mix(self, aggregator, location, make_window, make_result):
        results = [
            make_result(
                "a",
                [
                    make_window(600, 720, WindowKind.MAJOR, source_id="a"),
                    make_window(610, 670, WindowKind.MINOR, source_id="a"),
                ],
            ),
        ]
        entries = aggregator.aggregate(results, DAY, location).entries
        assert {e.kind for e in entries} == {WindowKind.MAJOR, WindowKind.MINOR}
        assert all(len(e.members) == 1 for e in entries)

    def test_joins_first_matching_cluster_in_creation_order(
        self, aggregator, location, make_window, make_result
    ):
        # 700 is within 120 of both 600 and 800; the older cluster wins
        results = [
            make_result("a", [make_window(600, 650, source_id="a")]),
            make_result("b", [make_window(800, 850, source_id="b")]),
            make_result("c", [make_window(700, 750, source_id="c")]),
        ]
        entries = aggregator.aggregate(results, DAY, location).entries
        first = entries[0]
        assert first.sources == ["a", "c"]

    def test_agreement_counts_distinct_sources(self, aggregator, location, make_window, make_result):
        results = [
            make_result("a", [make_window(600, 660, source_id="a"), make_window(630, 690, source_id="a")]),
        ]
        entry = aggregator.aggregate(results, DAY, location).entries[0]
        assert len(entry.members) == 2
        assert entry.agreement_count == 1
        assert entry.quality == Quality.FAIR


class TestQuality:
    @pytest.mark.parametrize(
        "count,expected",
        [(1, Quality.FAIR), (2, Quality.GOOD), (3, Quality.EXCELLENT), (4, Quality.EXCELLENT)],
    )
    def test_labels(self, count, expected):
        assert quality_for(count) == expected

    def test_three_sources_excellent(self, aggregator, location, make_window, make_result):
        results = [
            make_result(s, [make_window(600 + i * 10, 720 + i * 10, source_id=s)])
            for i, s in enumerate(["a", "b", "c"])
        ]
        schedule = aggregator.aggregate(results, DAY, location)
        assert schedule.entries[0].quality == Quality.EXCELLENT
        assert schedule.confidence_tier == Confidence.HIGH


class TestOrdering:
    def test_sorted_by_merged_start(self, aggregator, location, make_window, make_result):
        results = [
            make_result(
                "a",
                [
                    make_window(1100, 1220, WindowKind.MAJOR, source_id="a"),
                    make_window(300, 360, WindowKind.MINOR, source_id="a"),
                    make_window(500, 620, WindowKind.MAJOR, source_id="a"),
                ],
            )
        ]
        starts = [e.merged_start for e in aggregator.aggregate(results, DAY, location).entries]
        assert starts == [300, 500, 1100]

    def test_ties_keep_major_first(self, aggregator, location, make_window, make_result):
        results = [
            make_result(
                "a",
                [
                    make_window(600, 660, WindowKind.MINOR, source_id="a"),
                    make_window(600, 720, WindowKind.MAJOR, source_id="a"),
                ],
            )
        ]
        kinds = [e.kind for e in aggregator.aggregate(results, DAY, location).entries]
        assert kinds == [WindowKind.MAJOR, WindowKind.MINOR]

    def test_deterministic(self, aggregator, location, make_window, make_result):
        def build():
            return [
                make_result("a", [make_window(480, 600, source_id="a", weight=0.4),
                                  make_window(1200, 1320, source_id="a", weight=0.4)]),
                make_result("b", [make_window(510, 630, source_id="b", weight=0.3),
                                  make_window(900, 960, WindowKind.MINOR, source_id="b", weight=0.3)]),
                make_result("c", [make_window(1190, 1310, source_id="c", weight=0.2)]),
            ]

        first = [e.to_dict() for e in aggregator.aggregate(build(), DAY, location).entries]
        second = [e.to_dict() for e in aggregator.aggregate(build(), DAY, location).entries]
        assert first == second


class TestFallback:
    def test_zero_successes(self, aggregator, location):
        results = [
            SourceResult.failure("a", Confidence.HIGH, "timeout"),
            SourceResult.failure("b", Confidence.MEDIUM, "HTTP 500"),
        ]
        schedule = aggregator.aggregate(results, DAY, location)
        assert schedule.is_fallback
        assert schedule.confidence_tier == Confidence.LOW
        assert schedule.sources_used == 0
        assert schedule.sources_attempted == 2
        assert [(e.merged_start, e.merged_end) for e in schedule.entries] == [(360, 480), (1080, 1200)]
        assert all(e.kind == WindowKind.MAJOR for e in schedule.entries)
        assert schedule.errors == [
            {"source_id": "a", "message": "timeout"},
            {"source_id": "b", "message": "HTTP 500"},
        ]

    def test_no_results_at_all(self, aggregator, location):
        schedule = aggregator.aggregate([], DAY, location)
        assert schedule.is_fallback
        assert len(schedule.entries) == 2

    def test_fallback_entries_are_estimated(self):
        assert all(e.quality == Quality.ESTIMATED for e in fallback_entries())


class TestEndToEnd:
    def test_two_sources_agree(self, aggregator, location, make_window, make_result):
        results = [
            make_result("A", [make_window(480, 600, source_id="A", weight=0.5)]),
            make_result("B", [make_window(510, 630, source_id="B", weight=0.5)]),
        ]
        schedule = aggregator.aggregate(results, DAY, location)
        assert len(schedule.entries) == 1
        entry = schedule.entries[0]
        assert entry.to_dict()["start"] == "08:15"
        assert entry.to_dict()["end"] == "10:15"
        assert entry.quality == Quality.GOOD
        assert schedule.confidence_tier == Confidence.MEDIUM
        assert schedule.sources_used == 2
        assert not schedule.is_fallback

    def test_failed_results_only_feed_errors(self, aggregator, location, make_window, make_result):
        results = [
            make_result("A", [make_window(480, 600, source_id="A")]),
            SourceResult.failure("B", Confidence.HIGH, "timeout"),
        ]
        schedule = aggregator.aggregate(results, DAY, location, min_sources=2)
        assert schedule.sources_used == 1
        assert schedule.sources_attempted == 2
        assert schedule.degraded
        assert schedule.errors == [{"source_id": "B", "message": "timeout"}]


class TestMoonAndRating:
    def test_highest_confidence_wins(self, aggregator, location, make_window, make_result):
        results = [
            make_result("a", [make_window(480, 600, source_id="a")], Confidence.MEDIUM,
                        moon_phase="Waxing Gibbous", day_rating=2.0),
            make_result("b", [make_window(480, 600, source_id="b")], Confidence.HIGH,
                        moon_phase="Full Moon"),
        ]
        schedule = aggregator.aggregate(results, DAY, location)
        assert schedule.moon_phase == "Full Moon"
        # Only the medium source reported a rating
        assert schedule.day_rating == 2.0

    def test_ties_go_to_input_order(self, aggregator, location, make_window, make_result):
        results = [
            make_result("a", [make_window(480, 600, source_id="a")], moon_phase="First Quarter"),
            make_result("b", [make_window(480, 600, source_id="b")], moon_phase="Full Moon"),
        ]
        assert aggregator.aggregate(results, DAY, location).moon_phase == "First Quarter"

    def test_unset_when_nobody_reports(self, aggregator, location, make_window, make_result):
        results = [make_result("a", [make_window(480, 600, source_id="a")])]
        schedule = aggregator.aggregate(results, DAY, location)
        assert schedule.moon_phase is None
        assert schedule.day_rating is None


class TestMidnightAndOverlap:
    def test_window_crossing_midnight_is_unwrapped(self, aggregator, location, make_window, make_result):
        results = [make_result("a", [make_window(1380, 60, source_id="a")])]
        entry = aggregator.aggregate(results, DAY, location).entries[0]
        assert entry.merged_start == 1380
        assert entry.merged_end == 1500
        assert entry.to_dict()["end"] == "01:00"

    def test_same_kind_overlap_is_clipped(self, aggregator, location, make_window, make_result):
        # Starts 130 apart form two clusters, but the first runs past the second's start
        results = [
            make_result("a", [make_window(600, 900, source_id="a")]),
            make_result("b", [make_window(730, 960, source_id="b")]),
        ]
        entries = aggregator.aggregate(results, DAY, location).entries
        assert len(entries) == 2
        assert entries[1].merged_start == entries[0].merged_end == 900
        assert entries[1].merged_end == 960

    def test_cluster_inside_previous_is_dropped(self, aggregator, location, make_window, make_result):
        results = [
            make_result("a", [make_window(600, 1000, source_id="a")]),
            make_result("b", [make_window(730, 850, source_id="b")]),
        ]
        entries = aggregator.aggregate(results, DAY, location).entries
        assert len(entries) == 1
        assert entries[0].sources == ["a"]

    def test_broad_single_source_window_yields_to_agreement(
        self, aggregator, location, make_window, make_result
    ):
        results = [
            make_result("a", [make_window(600, 960, source_id="a")], confidence=Confidence.LOW),
            make_result("b", [make_window(730, 800, source_id="b")]),
            make_result("c", [make_window(735, 805, source_id="c")]),
            make_result("d", [make_window(740, 810, source_id="d")]),
        ]
        entries = aggregator.aggregate(results, DAY, location).entries

        assert [(e.merged_start, e.merged_end, e.quality) for e in entries] == [
            (735, 805, Quality.EXCELLENT),
            (805, 960, Quality.FAIR),
        ]
        assert entries[0].sources == ["b", "c", "d"]

    def test_weaker_cluster_keeps_longest_remaining_piece(
        self, aggregator, location, make_window, make_result
    ):
        results = [
            make_result("a", [make_window(600, 1000, source_id="a")]),
            make_result("b", [make_window(730, 850, source_id="b")]),
            make_result("c", [make_window(730, 850, source_id="c")]),
        ]
        entries = aggregator.aggregate(results, DAY, location).entries

        assert [(e.merged_start, e.merged_end) for e in entries] == [(730, 850), (850, 1000)]
        assert [e.agreement_count for e in entries] == [2, 1]

    def test_different_kinds_may_overlap(self, aggregator, location, make_window, make_result):
        results = [
            make_result(
                "a",
                [
                    make_window(600, 720, WindowKind.MAJOR, source_id="a"),
                    make_window(650, 710, WindowKind.MINOR, source_id="a"),
                ],
            )
        ]
        entries = aggregator.aggregate(results, DAY, location).entries
        assert [(e.merged_start, e.merged_end) for e in entries] == [(600, 720), (650, 710)]
