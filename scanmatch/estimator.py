"""Iterative closest point: alternate association and pose optimisation.

Each round re-associates the current scan under the latest estimate, then runs
one :class:`~scanmatch.optimizer.PoseOptimizer` pass on those fixed pairs.  The
loop ends when a round's cost changes by no more than ``convergence_threshold``
or after ``max_rounds``.
"""

import logging
from collections import namedtuple

import numpy as np

from .association import CorrespondenceFinder
from .optimizer import PoseOptimizer

logger = logging.getLogger(__name__)


EstimateResult = namedtuple(
    "EstimateResult",
    ["pose", "cost", "match_ratio", "used_points", "rounds", "correspondences"],
)


class IcpEstimator:
    """Estimate the pose of a scan against a reference set.

    Parameters
    ----------
    finder : CorrespondenceFinder
    optimizer : PoseOptimizer
    max_rounds : int
        Maximum association/optimisation rounds.
    convergence_threshold : float
        Stop when the round cost changes by no more than this.
    """

    def __init__(self, finder=None, optimizer=None, max_rounds=100,
                 convergence_threshold=1e-6):
        self.finder = finder if finder is not None else CorrespondenceFinder()
        self.optimizer = optimizer if optimizer is not None else PoseOptimizer()
        self.max_rounds = int(max_rounds)
        self.convergence_threshold = float(convergence_threshold)

    @classmethod
    def from_config(cls, cfg, cost=None):
        sec = cfg.get("icp", {})
        return cls(
            finder=CorrespondenceFinder.from_config(cfg),
            optimizer=PoseOptimizer.from_config(cfg, cost=cost),
            max_rounds=sec.get("max_rounds", 100),
            convergence_threshold=sec.get("convergence_threshold", 1e-6),
        )

    def estimate(self, current, predicted_pose, reference=None):
        """Refine *predicted_pose* so *current* lines up with the reference.

        *reference* is used for this call only; the finder's stored reference
        set is left as it was.  When the first round finds no pairs at all,
        the predicted pose is returned with ``cost=inf`` and ``used_points=0``.
        """
        if reference is not None:
            ref = self.finder.prepare(reference)
        else:
            ref = self.finder.reference

        pose = predicted_pose.copy()
        best = EstimateResult(pose.copy(), np.inf, 0.0, 0, 0, None)
        prev = np.inf
        rnd = 0

        for rnd in range(1, self.max_rounds + 1):
            corr, ratio = self.finder.find(current, pose, reference=ref)
            if len(corr) == 0:
                logger.debug("ICP round %d: no correspondences, stopping", rnd)
                break

            res = self.optimizer.optimize(corr, pose)
            pose = res.pose
            if res.cost < best.cost:
                best = EstimateResult(res.pose, res.cost, ratio, len(corr), rnd, corr)
            logger.debug("ICP round %d: cost=%.8f ratio=%.3f pose=%r",
                         rnd, res.cost, ratio, res.pose)

            if abs(prev - res.cost) <= self.convergence_threshold:
                break
            prev = res.cost
        else:
            logger.debug("ICP stopped after max_rounds=%d", self.max_rounds)

        return best._replace(rounds=rnd)
