"""Register one scan against a reference point set.

Pipeline::

    scan ─► resample ─► analyse normals ─► ICP ─► accept / reject

The match is accepted when enough points were paired and enough of them fit
the final pose.  A rejected match returns the predicted pose, so a tracking
loop can fall back on its motion model.
"""

import logging
from collections import namedtuple

from .cost import cost_from_config
from .estimator import IcpEstimator
from .normals import PointNormalAnalyzer
from .resample import PointResampler
from .scan import Scan

logger = logging.getLogger(__name__)


MatchResult = namedtuple(
    "MatchResult",
    ["pose", "cost", "accepted", "match_ratio", "inlier_ratio", "used_points", "scan"],
)


class ScanMatcher:
    """Preprocess a scan and estimate its pose against a reference.

    Parameters
    ----------
    estimator : IcpEstimator
    resampler : PointResampler or None
        ``None`` skips resampling.
    analyzer : PointNormalAnalyzer or None
        ``None`` skips normal analysis.
    min_used_points : int
        Fewer paired points than this rejects the match.
    min_inlier_ratio : float
        A lower fraction of pairs within the cost's ``inlier_limit`` under the
        final pose rejects the match.
    """

    def __init__(self, estimator=None, resampler=None, analyzer=None,
                 min_used_points=50, min_inlier_ratio=0.8):
        self.estimator = estimator if estimator is not None else IcpEstimator()
        self.resampler = resampler
        self.analyzer = analyzer
        self.min_used_points = int(min_used_points)
        self.min_inlier_ratio = float(min_inlier_ratio)

    @classmethod
    def from_config(cls, cfg):
        sec = cfg.get("matcher", {})
        resampler = PointResampler.from_config(cfg) if sec.get("resample", True) else None
        analyzer = PointNormalAnalyzer.from_config(cfg) if sec.get("analyse_normals", True) else None
        return cls(
            estimator=IcpEstimator.from_config(cfg, cost=cost_from_config(cfg)),
            resampler=resampler,
            analyzer=analyzer,
            min_used_points=sec.get("min_used_points", 50),
            min_inlier_ratio=sec.get("min_inlier_ratio", 0.8),
        )

    def preprocess(self, scan):
        """Resample and analyse a copy of *scan*; the input is left untouched."""
        scan = scan.copy() if isinstance(scan, Scan) else Scan(scan)
        if self.resampler is not None:
            scan = self.resampler.resample(scan)
        if self.analyzer is not None:
            self.analyzer.analyse(scan)
        return scan

    def match(self, scan, reference, predicted_pose):
        """Estimate the pose of *scan* in the frame of *reference*.

        Returns a :class:`MatchResult`; ``scan`` is the preprocessed scan.
        """
        cur = self.preprocess(scan)
        est = self.estimator.estimate(cur, predicted_pose, reference=reference)

        inlier_ratio = 0.0
        if est.correspondences is not None:
            cost = self.estimator.optimizer.cost
            inlier_ratio = cost.inlier_ratio(est.pose, est.correspondences)

        accepted = (est.used_points >= self.min_used_points
                    and inlier_ratio >= self.min_inlier_ratio)
        if accepted:
            pose = est.pose
        else:
            pose = predicted_pose.copy()
            logger.info("Match rejected: used=%d (min %d), inlier_ratio=%.3f (min %.3f)",
                        est.used_points, self.min_used_points,
                        inlier_ratio, self.min_inlier_ratio)

        return MatchResult(
            pose=pose,
            cost=est.cost,
            accepted=accepted,
            match_ratio=est.match_ratio,
            inlier_ratio=inlier_ratio,
            used_points=est.used_points,
            scan=cur,
        )
