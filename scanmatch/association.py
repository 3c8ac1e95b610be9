"""Gated nearest-neighbour data association.

Each current-scan point is moved into the reference frame with the predicted
pose and paired with its nearest reference point, provided that point lies
within ``gate`` metres.  Points with no reference neighbour inside the gate are
left out; the match ratio reports how many were paired.

The search uses a KDTree built once per reference set, so a call costs
O(N log M) instead of the O(N·M) brute-force scan.
"""

import logging
from collections import namedtuple

import numpy as np
from scipy.spatial import KDTree

from .errors import InsufficientDataError
from .scan import Scan, _as_points

logger = logging.getLogger(__name__)


ReferenceSet = namedtuple("ReferenceSet", ["points", "normals", "tree"])
ReferenceSet.__doc__ = "Reference points, their normals (or ``None``) and the KDTree over them."


def _points_of(obj):
    if isinstance(obj, Scan):
        return obj.points
    return _as_points(obj, copy=False)


class Correspondences:
    """Index pairs between a current point array and a reference point array.

    ``current_idx[k]`` is paired with ``reference_idx[k]``.  The set keeps
    references to both source arrays so the indices stay valid for as long as
    the set exists; it owns no point data itself.  Callers must not modify
    the source arrays while a set built on them is in use.
    """

    __slots__ = ("current", "reference", "current_idx", "reference_idx",
                 "reference_normals")

    def __init__(self, current, reference, current_idx, reference_idx,
                 reference_normals=None):
        self.current = current
        self.reference = reference
        self.current_idx = np.asarray(current_idx, dtype=np.intp)
        self.reference_idx = np.asarray(reference_idx, dtype=np.intp)
        self.reference_normals = reference_normals
        if self.current_idx.shape != self.reference_idx.shape:
            raise ValueError("current_idx and reference_idx must have equal length")

    def __len__(self):
        return len(self.current_idx)

    def pairs(self):
        """List of ``(current_index, reference_index)`` tuples."""
        return list(zip(self.current_idx.tolist(), self.reference_idx.tolist()))

    def current_points(self):
        """Matched current points, local frame, shape (K, 2)."""
        return self.current[self.current_idx]

    def reference_points(self):
        """Matched reference points, shape (K, 2)."""
        return self.reference[self.reference_idx]

    def matched_normals(self):
        """Normals of the matched reference points, or ``None``."""
        if self.reference_normals is None:
            return None
        return self.reference_normals[self.reference_idx]


class CorrespondenceFinder:
    """Pair current-scan points with their nearest reference points.

    The stored reference is a single :class:`ReferenceSet` that is replaced
    whole and read once per :meth:`find`, so one finder can serve several
    threads.  Passing ``reference=`` to :meth:`find` never touches it.

    Parameters
    ----------
    gate : float
        Maximum pairing distance in metres.  Compared in squared form.
    """

    def __init__(self, gate=0.2):
        self.gate = float(gate)
        self._ref = None

    @classmethod
    def from_config(cls, cfg):
        return cls(gate=cfg.get("association", {}).get("gate", 0.2))

    @staticmethod
    def prepare(reference):
        """Build the :class:`ReferenceSet` for an (M, 2) array or a :class:`Scan`.

        A :class:`Scan` also contributes its normals to the correspondence sets,
        which point-to-line scoring needs.
        """
        if isinstance(reference, ReferenceSet):
            return reference
        pts = _points_of(reference)
        if len(pts) == 0:
            raise InsufficientDataError("reference point set is empty")
        normals = reference.normals if isinstance(reference, Scan) else None
        return ReferenceSet(pts, normals, KDTree(pts))

    @property
    def reference(self):
        """The stored :class:`ReferenceSet`, or ``None``."""
        return self._ref

    def set_reference(self, reference):
        """Fix the reference set used when :meth:`find` is given none."""
        self._ref = self.prepare(reference)

    def find(self, current, predicted_pose, reference=None):
        """Associate *current* with the reference set under *predicted_pose*.

        *reference* (raw points, a :class:`Scan` or a :class:`ReferenceSet`)
        is used for this call only.  Returns ``(correspondences, match_ratio)``
        where ``match_ratio`` is the fraction of current points that were
        paired.  Rejecting low ratios is left to the caller.
        """
        ref = self._ref if reference is None else self.prepare(reference)
        if ref is None:
            raise InsufficientDataError("no reference point set given")

        cur = _points_of(current)
        if len(cur) == 0:
            raise InsufficientDataError("current scan is empty")

        moved = predicted_pose.global_point(cur)
        dists, nn = ref.tree.query(moved)
        inlier = dists ** 2 <= self.gate ** 2

        cur_idx = np.flatnonzero(inlier)
        corr = Correspondences(cur, ref.points, cur_idx, nn[inlier], ref.normals)
        ratio = len(cur_idx) / len(cur)
        logger.debug("Association: %d/%d matched (ratio=%.3f, gate=%.3f)",
                     len(cur_idx), len(cur), ratio, self.gate)
        return corr, ratio
