"""Registration cost functions.

A cost function scores a *candidate* pose against a correspondence set that
was fixed earlier (possibly under a different predicted pose).  The pairs are
never re-associated here: every call only moves the matched current points.

Any object with ``evaluate(pose, correspondences) -> float`` can be handed to
:class:`~scanmatch.optimizer.PoseOptimizer`.

Two scoring strategies are provided:

``SquaredDistanceCost``
    mean ‖R·p + t − q‖²  (point-to-point)
``PointToLineCost``
    mean (n · (R·p + t − q))²  with n the reference normal (point-to-line);
    pairs whose reference point has no normal use the point-to-point term.
"""

import numpy as np

from .scan import INVALID_NORMAL


# ── helpers ──────────────────────────────────────────────────────────────────

def _residuals(pose, correspondences):
    """Matched current points moved by *pose*, minus their reference points."""
    moved = pose.global_point(correspondences.current_points())
    return moved - correspondences.reference_points()


def _mean(err):
    return float(np.mean(err)) if len(err) else np.inf


def _inlier_ratio(err, limit):
    if len(err) == 0:
        return 0.0
    return float(np.count_nonzero(err <= limit ** 2) / len(err))


# ── scoring strategies ───────────────────────────────────────────────────────

class SquaredDistanceCost:
    """Mean squared point-to-point distance.

    Parameters
    ----------
    inlier_limit : float
        Residuals within this distance (metres) count as inliers in
        :meth:`inlier_ratio`.  Does not affect :meth:`evaluate`.
    """

    def __init__(self, inlier_limit=0.2):
        self.inlier_limit = float(inlier_limit)

    def squared_errors(self, pose, correspondences):
        r = _residuals(pose, correspondences)
        return np.sum(r * r, axis=1)

    def evaluate(self, pose, correspondences):
        return _mean(self.squared_errors(pose, correspondences))

    def inlier_ratio(self, pose, correspondences):
        """Fraction of pairs whose residual is within ``inlier_limit``."""
        return _inlier_ratio(self.squared_errors(pose, correspondences),
                             self.inlier_limit)


class PointToLineCost:
    """Mean squared distance along the reference normal.

    Needs a correspondence set built from a reference :class:`~scanmatch.scan.Scan`
    whose normals have been analysed; without normals it degrades to the
    point-to-point score.
    """

    def __init__(self, inlier_limit=0.2):
        self.inlier_limit = float(inlier_limit)

    def squared_errors(self, pose, correspondences):
        r = _residuals(pose, correspondences)
        err = np.sum(r * r, axis=1)
        normals = correspondences.matched_normals()
        if normals is None:
            return err
        valid = ~np.all(normals == INVALID_NORMAL, axis=1)
        proj = np.sum(r[valid] * normals[valid], axis=1)
        err[valid] = proj * proj
        return err

    def evaluate(self, pose, correspondences):
        return _mean(self.squared_errors(pose, correspondences))

    def inlier_ratio(self, pose, correspondences):
        return _inlier_ratio(self.squared_errors(pose, correspondences),
                             self.inlier_limit)


COST_FUNCTIONS = {
    "point_to_point": SquaredDistanceCost,
    "point_to_line": PointToLineCost,
}


def cost_from_config(cfg):
    """Build the cost function named in the ``cost`` config section."""
    sec = cfg.get("cost", {})
    method = sec.get("method", "point_to_point")
    try:
        cls = COST_FUNCTIONS[method]
    except KeyError:
        raise ValueError(
            f"unknown cost method {method!r}; expected one of {sorted(COST_FUNCTIONS)}"
        ) from None
    return cls(inlier_limit=sec.get("inlier_limit", 0.2))
