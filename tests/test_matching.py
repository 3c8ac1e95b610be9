"""Tests for the ICP outer loop and end-to-end scan matching."""

import numpy as np
import pytest

from scanmatch import (
    IcpEstimator,
    PointNormalAnalyzer,
    PointResampler,
    Pose2D,
    Scan,
    ScanMatcher,
    load_config,
)


@pytest.fixture
def small_offset():
    return Pose2D(0.04, -0.03, 2.0)


class TestIcpEstimator:
    def test_converges_from_identity(self, square_points, small_offset):
        reference = small_offset.global_point(square_points)
        est = IcpEstimator().estimate(square_points, Pose2D(), reference=reference)
        assert est.pose.tx == pytest.approx(small_offset.tx, abs=5e-3)
        assert est.pose.ty == pytest.approx(small_offset.ty, abs=5e-3)
        assert est.pose.th == pytest.approx(small_offset.th, abs=0.3)
        assert est.match_ratio == 1.0
        assert est.used_points == len(square_points)
        assert est.rounds >= 2

    def test_no_overlap_returns_prediction(self, square_points):
        reference = square_points + [10.0, 10.0]
        predicted = Pose2D(0.1, 0.2, 3.0)
        est = IcpEstimator().estimate(square_points, predicted, reference=reference)
        assert est.pose.allclose(predicted)
        assert est.cost == np.inf
        assert est.used_points == 0
        assert est.correspondences is None

    def test_round_cap(self, square_points, small_offset):
        reference = small_offset.global_point(square_points)
        est = IcpEstimator(max_rounds=1).estimate(square_points, Pose2D(), reference=reference)
        assert est.rounds == 1

    def test_reuses_reference(self, square_points, small_offset):
        icp = IcpEstimator()
        icp.finder.set_reference(small_offset.global_point(square_points))
        est = icp.estimate(square_points, Pose2D())
        assert est.used_points > 0

    def test_call_reference_leaves_finder_alone(self, square_points, small_offset):
        icp = IcpEstimator()
        icp.finder.set_reference(small_offset.global_point(square_points))
        stored = icp.finder.reference
        est = icp.estimate(square_points, Pose2D(), reference=square_points + [10.0, 0.0])
        assert est.used_points == 0
        assert icp.finder.reference is stored


class TestScanMatcher:
    def test_accepts_good_match(self, square_points, small_offset):
        reference = small_offset.global_point(square_points)
        matcher = ScanMatcher.from_config(load_config())
        res = matcher.match(Scan(square_points), reference, Pose2D())
        assert res.accepted
        assert res.pose.tx == pytest.approx(small_offset.tx, abs=0.02)
        assert res.pose.ty == pytest.approx(small_offset.ty, abs=0.02)
        assert res.pose.th == pytest.approx(small_offset.th, abs=1.0)
        assert res.inlier_ratio >= 0.8

    def test_rejects_without_overlap(self, square_points):
        predicted = Pose2D(0.5, 0.5, 10.0)
        res = ScanMatcher().match(Scan(square_points), square_points + [20.0, 0.0], predicted)
        assert not res.accepted
        assert res.pose.allclose(predicted)
        assert res.used_points == 0
        assert res.inlier_ratio == 0.0

    def test_rejects_too_few_points(self, square_points, small_offset):
        reference = small_offset.global_point(square_points)
        matcher = ScanMatcher(min_used_points=len(square_points) + 1)
        predicted = Pose2D()
        res = matcher.match(Scan(square_points), reference, predicted)
        assert not res.accepted
        assert res.pose.allclose(predicted)

    def test_preprocess_annotates_copy(self, square_points):
        src = Scan(square_points)
        matcher = ScanMatcher(resampler=PointResampler(), analyzer=PointNormalAnalyzer())
        out = matcher.preprocess(src)
        assert out is not src
        assert out.valid_normal_mask().any()
        assert not src.valid_normal_mask().any()

    def test_point_to_line_config(self, square_points, small_offset):
        cfg = load_config()
        cfg["cost"]["method"] = "point_to_line"
        reference = PointNormalAnalyzer().analyse(Scan(small_offset.global_point(square_points)))
        res = ScanMatcher.from_config(cfg).match(Scan(square_points), reference, Pose2D())
        assert res.accepted
        assert res.pose.tx == pytest.approx(small_offset.tx, abs=0.02)
        assert res.pose.ty == pytest.approx(small_offset.ty, abs=0.02)

    def test_stages_can_be_disabled(self):
        cfg = load_config()
        cfg["matcher"]["resample"] = False
        cfg["matcher"]["analyse_normals"] = False
        matcher = ScanMatcher.from_config(cfg)
        assert matcher.resampler is None
        assert matcher.analyzer is None
