"""Ordered laser scans with per-point normals and shape classes.

Points are stored column-wise::

    scan.points   (N, 2) float   x, y
    scan.normals  (N, 2) float   unit normal, or INVALID_NORMAL
    scan.types    (N,)   int     PointType

Order matters: it is the angular/spatial adjacency of the sweep and the normal
analyser relies on it.
"""

import enum
from collections import namedtuple

import numpy as np


class PointType(enum.IntEnum):
    UNSET = 0
    LINE = 1
    CORNER = 2
    ISOLATED = 3


# Not a unit vector, so it can never be confused with a real normal.
INVALID_NORMAL = (-1.0, -1.0)

ScanPoint = namedtuple("ScanPoint", ["x", "y", "normal", "type"])
ScanPoint.__doc__ = "One scan point; ``normal`` is ``None`` when it has none."


def _as_points(points, copy=True):
    pts = np.asarray(points, dtype=float)
    if pts.size == 0:
        return np.empty((0, 2))
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"points must have shape (N, 2), got {pts.shape}")
    return pts.copy() if copy else pts


class Scan:
    """One sweep of a 2-D range sensor."""

    def __init__(self, points, normals=None, types=None):
        self.points = _as_points(points)
        n = len(self.points)
        if normals is None:
            self.normals = np.tile(INVALID_NORMAL, (n, 1)).astype(float)
        else:
            self.normals = np.asarray(normals, dtype=float).reshape(n, 2).copy()
        if types is None:
            self.types = np.full(n, PointType.UNSET, dtype=int)
        else:
            self.types = np.asarray(types, dtype=int).reshape(n).copy()

    @classmethod
    def from_ranges(cls, ranges, angle_min, angle_increment,
                    min_range=0.0, max_range=np.inf):
        """Polar range readings (radians) → scan in the sensor frame.

        Readings outside ``[min_range, max_range]`` or not finite are skipped;
        the order of the remaining beams is kept.
        """
        r = np.asarray(ranges, dtype=float)
        angles = angle_min + angle_increment * np.arange(len(r))
        keep = np.isfinite(r) & (r >= min_range) & (r <= max_range)
        r, angles = r[keep], angles[keep]
        return cls(np.column_stack([r * np.cos(angles), r * np.sin(angles)]))

    def __len__(self):
        return len(self.points)

    def __getitem__(self, i):
        x, y = self.points[i]
        normal = None
        if self.has_normal(i):
            normal = (float(self.normals[i, 0]), float(self.normals[i, 1]))
        return ScanPoint(float(x), float(y), normal, PointType(int(self.types[i])))

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    def has_normal(self, i):
        return not np.array_equal(self.normals[i], INVALID_NORMAL)

    def valid_normal_mask(self):
        """Boolean mask of points carrying a real normal."""
        return ~np.all(self.normals == INVALID_NORMAL, axis=1)

    def copy(self):
        return Scan(self.points, self.normals, self.types)

    def transformed(self, pose):
        """Copy of this scan moved into the frame *pose* maps into.

        Normals are rotated with the points; invalid normals stay invalid.
        """
        out = self.copy()
        out.points = pose.global_point(self.points)
        valid = self.valid_normal_mask()
        out.normals[valid] = self.normals[valid] @ pose.rmat.T
        return out

    def __repr__(self):
        return f"Scan(n={len(self)})"
