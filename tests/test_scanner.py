"""
Tests for dsegments.inference.scanner module.
"""
import warnings

import pytest
import numpy as np

from dsegments.core.probabilities import ProbabilityModel, Bucket, State
from dsegments.inference.scanner import (
    SegmentScanner,
    Segment,
    find_dsegments,
    scan_chromosomes,
)


def _pairs(counts, first_position=1):
    return [(first_position + i, c) for i, c in enumerate(counts)]


@pytest.fixture
def tie_model():
    """
    Symmetric transitions and identical emissions for bucket 1, so one read
    start scores exactly 0 and leaves the running sum unchanged.
    """
    model = ProbabilityModel()
    for i, j, p in [(1, 1, 0.9), (1, 2, 0.1), (2, 1, 0.1), (2, 2, 0.9)]:
        model.set_transition_probability(i, j, p)
    for b, (e1, e2) in enumerate([(0.6, 0.1), (0.3, 0.3), (0.09, 0.1), (0.01, 0.5)]):
        model.set_emission_probability(State.BACKGROUND, b, e1)
        model.set_emission_probability(State.ELEVATED, b, e2)
    return model


@pytest.fixture
def boundary_model():
    """
    Model whose bucket-3 score is bit-for-bit equal to its threshold.

    With P(1->1) = P(2->1) = e2(3) and P(1->2) = e1(3), both quantities
    reduce to the same sum of the same logs:
        (ln P(1->1) + ln P(2->2)) - (ln P(1->2) + ln P(1->1))
    """
    model = ProbabilityModel()
    model.set_transition_probability(1, 1, 0.5)
    model.set_transition_probability(1, 2, 0.05)
    model.set_transition_probability(2, 1, 0.5)
    model.set_transition_probability(2, 2, 0.8)
    model.set_emission_probability(State.BACKGROUND, Bucket.THREE_OR_MORE, 0.05)
    model.set_emission_probability(State.ELEVATED, Bucket.THREE_OR_MORE, 0.5)
    return model


class TestBasicScan:
    def test_empty_input(self, sharp_model):
        result = SegmentScanner(sharp_model).scan([])
        assert result.segments == []
        assert result.n_positions == 0
        assert result.all_counts.total == 0

    def test_threshold_taken_from_model(self, sharp_model):
        scanner = SegmentScanner(sharp_model)
        assert scanner.threshold == sharp_model.threshold

    def test_single_high_position_below_threshold(self, sharp_model):
        result = find_dsegments(sharp_model, _pairs([0] * 5 + [3] + [0] * 10))
        assert result.segments == []

    def test_segment_closed_by_threshold_drop(self, sharp_model):
        counts = [0] * 5 + [3, 3] + [0] * 10
        result = find_dsegments(sharp_model, _pairs(counts))

        assert len(result.segments) == 1
        seg = result.segments[0]
        assert (seg.start, seg.end) == (6, 7)
        assert seg.score == pytest.approx(2 * sharp_model.d_segment_score(3))

    def test_segment_histogram_covers_closed_window(self, sharp_model):
        # Window stays open for five zeros after the peak before it drops
        # a full threshold below it
        counts = [0] * 5 + [3, 3] + [0] * 10
        result = find_dsegments(sharp_model, _pairs(counts))

        assert result.all_counts.as_dict() == {'0': 15, '1': 0, '2': 0, '3': 2}
        assert result.segment_counts.as_dict() == {'0': 5, '1': 0, '2': 0, '3': 2}

    def test_trailing_window_flushed(self, sharp_model):
        result = find_dsegments(sharp_model, _pairs([0, 0, 3, 3]))
        assert len(result.segments) == 1
        assert (result.segments[0].start, result.segments[0].end) == (3, 4)
        assert result.segment_counts.as_dict() == {'0': 0, '1': 0, '2': 0, '3': 2}

    def test_counts_above_three_clamped(self, sharp_model):
        clamped = find_dsegments(sharp_model, _pairs([0, 3, 3, 0]))
        raw = find_dsegments(sharp_model, _pairs([0, 9, 41, 0]))
        assert raw.segments == clamped.segments
        assert raw.all_counts == clamped.all_counts

    def test_ties_favor_later_position(self, tie_model):
        assert tie_model.d_segment_score(Bucket.ONE) == 0.0
        result = find_dsegments(tie_model, _pairs([3, 3, 1, 1]))
        assert len(result.segments) == 1
        assert (result.segments[0].start, result.segments[0].end) == (1, 4)

    def test_positions_with_gaps(self, sharp_model):
        obs = [(10, 0), (20, 3), (35, 3), (50, 0)]
        result = find_dsegments(sharp_model, obs)
        assert len(result.segments) == 1
        assert (result.segments[0].start, result.segments[0].end) == (11, 35)


class TestBoundary:
    def test_score_equals_threshold(self, boundary_model):
        assert boundary_model.d_segment_score(Bucket.THREE_OR_MORE) == boundary_model.threshold

    def test_trailing_window_at_threshold_is_emitted(self, boundary_model):
        result = find_dsegments(boundary_model, [(1, 3)])
        assert len(result.segments) == 1
        assert result.segments[0] == Segment(1, 1, boundary_model.threshold)


class TestDefaultModelScenario:
    def test_all_zero_background(self, default_model):
        result = find_dsegments(default_model, _pairs([0] * 5000))
        assert result.segments == []
        assert result.all_counts[Bucket.ZERO] == 5000
        assert result.segment_counts.total == 0

    def test_embedded_run_of_threes(self, default_model):
        counts = [0] * 200 + [3] * 30 + [0] * 300
        result = find_dsegments(default_model, _pairs(counts))

        assert len(result.segments) == 1
        seg = result.segments[0]
        assert seg.start == 201
        assert seg.end == 230
        assert seg.score == pytest.approx(30 * default_model.d_segment_score(3))
        assert seg.score >= result.threshold

    def test_short_run_not_significant(self, default_model):
        counts = [0] * 200 + [3] * 15 + [0] * 300
        result = find_dsegments(default_model, _pairs(counts))
        assert result.segments == []


class TestUndefinedScores:
    def test_warns_on_undefined_bucket(self, sharp_model):
        sharp_model.set_emission_probability(State.BACKGROUND, Bucket.ZERO, 0)
        with pytest.warns(UserWarning, match="undefined"):
            SegmentScanner(sharp_model)

    def test_undefined_score_keeps_window_open(self, sharp_model):
        # Undefined log values are carried through the running sum as nan,
        # so every later comparison is false and the window is only closed
        # by the end-of-input flush.
        sharp_model.set_emission_probability(State.BACKGROUND, Bucket.ZERO, 0)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            scanner = SegmentScanner(sharp_model)
        result = scanner.scan(_pairs([3, 3, 0, 0, 0, 3, 3, 3]))

        assert np.isnan(scanner.cumulative_score)
        assert len(result.segments) == 1
        assert (result.segments[0].start, result.segments[0].end) == (1, 2)
        assert result.segment_counts.as_dict() == {'0': 3, '1': 0, '2': 0, '3': 5}


class TestScannerLifecycle:
    def test_update_after_finalize(self, sharp_model):
        scanner = SegmentScanner(sharp_model)
        scanner.update(1, 3)
        scanner.finalize()
        with pytest.raises(RuntimeError):
            scanner.update(2, 3)

    def test_finalize_twice_is_stable(self, sharp_model):
        scanner = SegmentScanner(sharp_model)
        for pos, c in _pairs([3, 3]):
            scanner.update(pos, c)
        first = scanner.finalize()
        second = scanner.finalize()
        assert first.segments == second.segments
        assert first.segment_counts == second.segment_counts

    def test_model_not_mutated(self, sharp_model, random_observations):
        before = sharp_model.to_dict()
        find_dsegments(sharp_model, random_observations)
        assert sharp_model.to_dict() == before


class TestScanProperties:
    def test_segments_ordered_and_disjoint(self, sharp_model, random_observations):
        result = find_dsegments(sharp_model, random_observations)
        assert len(result.segments) >= 1
        for seg in result.segments:
            assert seg.start <= seg.end
        for prev, nxt in zip(result.segments, result.segments[1:]):
            assert prev.end < nxt.start

    def test_scores_meet_threshold(self, sharp_model, random_observations):
        result = find_dsegments(sharp_model, random_observations)
        assert all(seg.score >= result.threshold for seg in result.segments)

    def test_segment_histogram_bounded(self, sharp_model, random_observations):
        result = find_dsegments(sharp_model, random_observations)
        assert np.all(result.segment_counts.counts <= result.all_counts.counts)
        assert result.all_counts.total == result.n_positions == len(random_observations)

    def test_idempotent(self, sharp_model, random_observations):
        first = find_dsegments(sharp_model, random_observations)
        second = find_dsegments(sharp_model, random_observations)
        assert first.segments == second.segments
        assert first.all_counts == second.all_counts
        assert first.segment_counts == second.segment_counts

    def test_accepts_lazy_iterable(self, sharp_model, random_observations):
        eager = find_dsegments(sharp_model, random_observations)
        lazy = find_dsegments(sharp_model, iter(random_observations))
        assert eager.segments == lazy.segments

    def test_progress_bar(self, sharp_model, random_observations):
        result = SegmentScanner(sharp_model, chrom='chr1').scan(random_observations, progress=True)
        assert result.chrom == 'chr1'


class TestScanChromosomes:
    def test_one_result_per_chromosome(self, sharp_model):
        records = ([('chr1', p, c) for p, c in _pairs([0, 3, 3, 0])] +
                   [('chr2', p, c) for p, c in _pairs([0, 0, 0, 3, 3])])
        results = scan_chromosomes(sharp_model, records)

        assert [r.chrom for r in results] == ['chr1', 'chr2']
        assert [(s.start, s.end) for s in results[0].segments] == [(2, 3)]
        assert [(s.start, s.end) for s in results[1].segments] == [(4, 5)]
        assert results[0].n_positions == 4
        assert results[1].n_positions == 5

    def test_chromosome_state_is_not_shared(self, sharp_model):
        # A window open at the end of chr1 must not continue into chr2
        records = [('chr1', 1, 3), ('chr2', 1, 3)]
        results = scan_chromosomes(sharp_model, records)
        assert all(r.segments == [] for r in results)

    def test_chrom_filter(self, sharp_model):
        records = ([('chr1', p, c) for p, c in _pairs([3, 3])] +
                   [('chr2', p, c) for p, c in _pairs([3, 3])])
        results = scan_chromosomes(sharp_model, records, chroms={'chr2'})
        assert [r.chrom for r in results] == ['chr2']


class TestSegment:
    def test_length(self):
        assert Segment(5, 9, 12.0).length == 5

    def test_rounded_score(self):
        assert Segment(1, 2, 2.45).rounded_score == 2.5
