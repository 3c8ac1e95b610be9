"""Steepest-descent pose refinement with numerical gradients.

The correspondence set is fixed; only the candidate pose moves.  One run:

1. evaluate the cost at the initial pose
2. estimate ∂cost/∂(tx, ty, θ) by forward differences
3. step against the gradient, scaled by ``learning_rate``
4. keep the lowest-cost pose seen so far
5. stop once the cost changes by no more than ``convergence_threshold``
   between iterations, or after ``max_iterations``

The best pose seen is returned, not the last iterate, so ending on an
overshoot costs nothing.  The angle is searched in radians; degrees only
appear on the :class:`~scanmatch.pose.Pose2D` boundary.
"""

import enum
import logging
import threading
from collections import namedtuple

import numpy as np

from .cost import SquaredDistanceCost
from .errors import InsufficientDataError
from .pose import Pose2D

logger = logging.getLogger(__name__)


class Termination(enum.Enum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    DIVERGED = "diverged"


OptimizationResult = namedtuple(
    "OptimizationResult",
    ["pose", "cost", "iterations", "termination", "cost_history"],
)

OptimizerStats = namedtuple("OptimizerStats", ["call_count", "good_cost_sum"])


class PoseOptimizer:
    """Minimise a cost function over (tx, ty, θ) for fixed correspondences.

    Parameters
    ----------
    cost : object
        Scoring strategy with ``evaluate(pose, correspondences) -> float``.
        Defaults to :class:`~scanmatch.cost.SquaredDistanceCost`.
    learning_rate : float
        Gradient step scale.  The angular step is further divided by
        ``max(1, mean r²)``, *r* being the distance of the matched points from
        the sensor origin, so one rate suits a 1 m box and a 20 m hall alike.
        Stable for ``learning_rate < 0.5``.
    translation_step, angular_step : float
        Forward-difference steps (metres, radians).
    convergence_threshold : float
        Stop when ``|previous cost − cost| <= convergence_threshold``.
    max_iterations : int
        Hard cap on iterations; hitting it ends the run with
        :attr:`Termination.MAX_ITERATIONS`.
    sanity_bound : float
        Only best costs below this are added to the diagnostic cost sum.
    """

    def __init__(self, cost=None, learning_rate=0.05, translation_step=1e-5,
                 angular_step=1e-4, convergence_threshold=1e-9,
                 max_iterations=10000, sanity_bound=100.0):
        self.cost = cost if cost is not None else SquaredDistanceCost()
        self.learning_rate = float(learning_rate)
        self.steps = np.array([translation_step, translation_step, angular_step],
                              dtype=float)
        self.convergence_threshold = float(convergence_threshold)
        self.max_iterations = int(max_iterations)
        self.sanity_bound = float(sanity_bound)

        self._lock = threading.Lock()
        self._call_count = 0
        self._good_cost_sum = 0.0

    @classmethod
    def from_config(cls, cfg, cost=None):
        sec = cfg.get("optimizer", {})
        return cls(
            cost=cost,
            learning_rate=sec.get("learning_rate", 0.05),
            translation_step=sec.get("translation_step", 1e-5),
            angular_step=sec.get("angular_step", 1e-4),
            convergence_threshold=sec.get("convergence_threshold", 1e-9),
            max_iterations=sec.get("max_iterations", 10000),
            sanity_bound=sec.get("sanity_bound", 100.0),
        )

    # ── diagnostics ──────────────────────────────────────────────────────

    @property
    def stats(self):
        """Runs so far and the sum of their best costs below ``sanity_bound``."""
        with self._lock:
            return OptimizerStats(self._call_count, self._good_cost_sum)

    @property
    def mean_good_cost(self):
        call_count, good_cost_sum = self.stats
        return good_cost_sum / call_count if call_count else 0.0

    def reset_stats(self):
        with self._lock:
            self._call_count = 0
            self._good_cost_sum = 0.0

    def _record(self, best_cost):
        with self._lock:
            self._call_count += 1
            if best_cost < self.sanity_bound:
                self._good_cost_sum += best_cost

    # ── optimisation ─────────────────────────────────────────────────────

    def _cost_at(self, x, correspondences):
        return self.cost.evaluate(Pose2D.from_radians(*x), correspondences)

    def _gradient(self, x, ev, correspondences):
        grad = np.empty(3)
        for k in range(3):
            xk = x.copy()
            xk[k] += self.steps[k]
            grad[k] = (self._cost_at(xk, correspondences) - ev) / self.steps[k]
        return grad

    def step_rates(self, correspondences):
        """Per-axis step scale for (tx, ty, θ).

        ∂²cost/∂θ² grows with the mean squared radius of the matched points,
        so the angular rate is divided by it to keep all three axes equally
        conditioned.
        """
        pts = correspondences.current_points()
        mean_r2 = float(np.mean(np.sum(pts * pts, axis=1)))
        return self.learning_rate * np.array([1.0, 1.0, 1.0 / max(1.0, mean_r2)])

    def optimize(self, correspondences, initial_pose):
        """Refine *initial_pose* against *correspondences*.

        Returns an :class:`OptimizationResult`; ``cost_history`` holds the best
        cost after every iteration (initial cost first) and never increases.
        """
        if len(correspondences) == 0:
            raise InsufficientDataError("correspondence set is empty")

        rates = self.step_rates(correspondences)
        x = np.array([initial_pose.tx, initial_pose.ty, initial_pose.rad])
        ev = self._cost_at(x, correspondences)
        best_x, best_cost = x.copy(), ev
        history = [best_cost]
        prev = np.inf
        n_iter = 0
        termination = Termination.CONVERGED

        while abs(prev - ev) > self.convergence_threshold:
            if n_iter >= self.max_iterations:
                termination = Termination.MAX_ITERATIONS
                logger.warning("Optimizer hit max_iterations=%d (cost=%.3e, delta=%.2e)",
                               self.max_iterations, ev, abs(prev - ev))
                break
            n_iter += 1
            prev = ev

            x = x - rates * self._gradient(x, ev, correspondences)
            ev = self._cost_at(x, correspondences)
            if not np.isfinite(ev):
                termination = Termination.DIVERGED
                logger.warning("Optimizer diverged at iter=%d; keeping best cost=%.3e",
                               n_iter, best_cost)
                break
            if ev < best_cost:
                best_x, best_cost = x.copy(), ev
            history.append(best_cost)

        self._record(best_cost)
        if termination is Termination.CONVERGED:
            logger.debug("Optimizer converged: iter=%d, cost=%.8f", n_iter, best_cost)

        return OptimizationResult(
            pose=Pose2D.from_radians(*best_x),
            cost=best_cost,
            iterations=n_iter,
            termination=termination,
            cost_history=history,
        )
