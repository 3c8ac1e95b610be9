"""Tests for the registration cost functions."""

import numpy as np
import pytest

from scanmatch import (
    CorrespondenceFinder,
    PointNormalAnalyzer,
    PointToLineCost,
    Pose2D,
    Scan,
    SquaredDistanceCost,
    cost_from_config,
)
from scanmatch.association import Correspondences


@pytest.fixture
def corr_at_true(square_points, true_pose):
    reference = true_pose.global_point(square_points)
    corr, _ = CorrespondenceFinder().find(square_points, true_pose, reference=reference)
    return corr


class TestSquaredDistance:
    def test_zero_at_true_pose(self, corr_at_true, true_pose):
        assert SquaredDistanceCost().evaluate(true_pose, corr_at_true) == pytest.approx(0.0, abs=1e-20)

    def test_scores_candidate_not_association_pose(self, corr_at_true, square_points, true_pose):
        reference = true_pose.global_point(square_points)
        expected = np.mean(np.sum((square_points - reference) ** 2, axis=1))
        assert SquaredDistanceCost().evaluate(Pose2D(), corr_at_true) == pytest.approx(expected)

    def test_pure_translation(self):
        pts = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        corr = Correspondences(pts, pts, [0, 1, 2], [0, 1, 2])
        cost = SquaredDistanceCost().evaluate(Pose2D(0.1, 0.0, 0.0), corr)
        assert cost == pytest.approx(0.01)

    def test_empty_is_infinite(self, square_points):
        corr = Correspondences(square_points, square_points, [], [])
        assert SquaredDistanceCost().evaluate(Pose2D(), corr) == np.inf

    def test_inlier_ratio(self):
        pts = np.array([[0.0, 0.0], [1.0, 0.0]])
        ref = np.array([[0.1, 0.0], [1.5, 0.0]])
        corr = Correspondences(pts, ref, [0, 1], [0, 1])
        assert SquaredDistanceCost(inlier_limit=0.2).inlier_ratio(Pose2D(), corr) == 0.5


class TestPointToLine:
    def test_sliding_along_wall_is_free(self, line_points):
        ref = PointNormalAnalyzer().analyse(Scan(line_points))
        idx = np.arange(len(line_points))
        corr = Correspondences(line_points, ref.points, idx, idx, ref.normals)
        slide = Pose2D(0.02, 0.0, 0.0)
        assert PointToLineCost().evaluate(slide, corr) == pytest.approx(0.0, abs=1e-20)
        assert SquaredDistanceCost().evaluate(slide, corr) == pytest.approx(4e-4)

    def test_offset_across_wall(self, line_points):
        ref = PointNormalAnalyzer().analyse(Scan(line_points))
        idx = np.arange(len(line_points))
        corr = Correspondences(line_points, ref.points, idx, idx, ref.normals)
        assert PointToLineCost().evaluate(Pose2D(0.0, 0.03, 0.0), corr) == pytest.approx(9e-4)

    def test_falls_back_without_normals(self, corr_at_true):
        pose = Pose2D(0.2, -0.1, 3.0)
        assert PointToLineCost().evaluate(pose, corr_at_true) == pytest.approx(
            SquaredDistanceCost().evaluate(pose, corr_at_true))

    def test_isolated_reference_uses_euclidean(self):
        pts = np.array([[0.0, 0.0]])
        ref = PointNormalAnalyzer().analyse(Scan(pts))
        corr = Correspondences(pts, ref.points, [0], [0], ref.normals)
        assert PointToLineCost().evaluate(Pose2D(0.1, 0.1, 0.0), corr) == pytest.approx(0.02)


class TestFromConfig:
    def test_default_method(self):
        assert isinstance(cost_from_config({}), SquaredDistanceCost)

    def test_point_to_line(self):
        cost = cost_from_config({"cost": {"method": "point_to_line", "inlier_limit": 0.1}})
        assert isinstance(cost, PointToLineCost)
        assert cost.inlier_limit == 0.1

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="unknown cost method"):
            cost_from_config({"cost": {"method": "nope"}})
