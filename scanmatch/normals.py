"""Scan-order normal estimation and point classification.

For each point the first neighbour on either side whose distance falls in
``[min_dist, max_dist]`` gives a tangent; rotating it by 90° gives a normal.
Comparing the left and right normals classifies the point:

    both sides, nearly parallel  →  LINE
    both sides, diverging        →  CORNER
    one side only                →  LINE
    no side                      →  ISOLATED  (normal = INVALID_NORMAL)

Unlike a k-nearest-neighbour PCA estimate, this uses the scan ordering, so it
never mixes points from two surfaces that happen to be close in space.
"""

import logging

import numpy as np

from .scan import INVALID_NORMAL, PointType

logger = logging.getLogger(__name__)


class PointNormalAnalyzer:
    """Compute per-point normals and shape classes of an ordered scan.

    Parameters
    ----------
    min_dist : float
        Neighbours closer than this (metres) give noisy normals and are skipped.
    max_dist : float
        Neighbours farther than this are treated as a discontinuity; the search
        on that side stops once the running distance exceeds it.
    corner_angle : float
        Degrees.  Left/right normals diverging by more than this make a corner.
    """

    def __init__(self, min_dist=0.06, max_dist=1.0, corner_angle=45.0):
        self.min_dist = float(min_dist)
        self.max_dist = float(max_dist)
        self.corner_angle = float(corner_angle)
        self.cos_threshold = np.cos(np.radians(self.corner_angle))

    @classmethod
    def from_config(cls, cfg):
        sec = cfg.get("normals", {})
        return cls(
            min_dist=sec.get("min_dist", 0.06),
            max_dist=sec.get("max_dist", 1.0),
            corner_angle=sec.get("corner_angle", 45.0),
        )

    def side_normal(self, points, idx, direction):
        """Unit normal from point *idx* and its first valid neighbour.

        *direction* is ``-1`` (left, decreasing index) or ``+1`` (right).
        Returns ``None`` when no neighbour lies in the distance window.
        """
        cx, cy = points[idx]
        i = idx + direction
        while 0 <= i < len(points):
            dx = points[i, 0] - cx
            dy = points[i, 1] - cy
            d = np.hypot(dx, dy)
            if self.min_dist <= d <= self.max_dist:
                return np.array([dy / d, -dx / d])
            if d > self.max_dist:
                break
            i += direction
        return None

    def analyse(self, scan):
        """Annotate *scan* in place with normals and types; returns the scan."""
        pts = scan.points
        n = len(pts)
        normals = np.tile(INVALID_NORMAL, (n, 1)).astype(float)
        types = np.full(n, PointType.ISOLATED, dtype=int)

        for i in range(n):
            n_left = self.side_normal(pts, i, -1)
            n_right = self.side_normal(pts, i, 1)
            if n_right is not None:
                n_right = -n_right          # same orientation as the left side

            if n_left is not None and n_right is not None:
                if abs(n_left @ n_right) >= self.cos_threshold:
                    types[i] = PointType.LINE
                else:
                    types[i] = PointType.CORNER
                s = n_left + n_right
                length = np.hypot(s[0], s[1])
                # opposite normals (a hairpin) cancel out; keep the left one
                normals[i] = s / length if length > 1e-12 else n_left
            elif n_left is not None:
                types[i] = PointType.LINE
                normals[i] = n_left
            elif n_right is not None:
                types[i] = PointType.LINE
                normals[i] = n_right

        scan.normals = normals
        scan.types = types
        if n:
            counts = np.bincount(types, minlength=len(PointType))
            logger.debug("Normals: n=%d line=%d corner=%d isolated=%d", n,
                         counts[PointType.LINE], counts[PointType.CORNER],
                         counts[PointType.ISOLATED])
        return scan
