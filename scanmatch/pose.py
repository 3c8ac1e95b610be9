"""Rigid 2-D poses and frame conversions.

A pose stores a translation ``(tx, ty)`` in metres and a rotation ``th`` in
degrees.  The angle is held once in radians internally and the 2×2 rotation
matrix is rebuilt by the same setter that changes it, so the two can never
disagree.

Angles are never wrapped: repeated composition may leave [-180, 180).
"""

import numpy as np


# ── pose ─────────────────────────────────────────────────────────────────────

class Pose2D:
    """Rigid 2-D transform from a local frame into a reference frame.

    >>> p = Pose2D(1.0, 0.0, 90.0)
    >>> p.global_point([1.0, 0.0])
    array([1., 1.])
    """

    __slots__ = ("tx", "ty", "_rad", "_rmat")

    def __init__(self, tx=0.0, ty=0.0, th=0.0):
        self.tx = float(tx)
        self.ty = float(ty)
        self.th = th

    @classmethod
    def from_radians(cls, tx, ty, rad):
        """Build a pose from an angle already expressed in radians."""
        pose = cls.__new__(cls)
        pose.tx = float(tx)
        pose.ty = float(ty)
        pose._set_rad(rad)
        return pose

    @classmethod
    def from_matrix(cls, T):
        """3×3 homogeneous matrix → pose."""
        T = np.asarray(T, dtype=float)
        return cls.from_radians(T[0, 2], T[1, 2], np.arctan2(T[1, 0], T[0, 0]))

    # ── angle / rotation ─────────────────────────────────────────────────

    def _set_rad(self, rad):
        rad = float(rad)
        c, s = np.cos(rad), np.sin(rad)
        self._rad = rad
        self._rmat = np.array([[c, -s],
                               [s,  c]])

    @property
    def th(self):
        """Rotation angle in degrees."""
        return float(np.degrees(self._rad))

    @th.setter
    def th(self, value):
        self._set_rad(np.radians(float(value)))

    @property
    def rad(self):
        """Rotation angle in radians."""
        return self._rad

    @property
    def rmat(self):
        """Rotation matrix (read-only copy)."""
        return self._rmat.copy()

    @property
    def translation(self):
        return np.array([self.tx, self.ty])

    # ── mutation ─────────────────────────────────────────────────────────

    def reset(self):
        self.set_val(0.0, 0.0, 0.0)

    def set_val(self, tx, ty, th):
        self.tx = float(tx)
        self.ty = float(ty)
        self.th = th

    def copy(self):
        return Pose2D.from_radians(self.tx, self.ty, self._rad)

    # ── frame conversion ─────────────────────────────────────────────────

    def global_point(self, p):
        """Local frame → global frame.  Accepts shape (2,) or (N, 2)."""
        p = np.asarray(p, dtype=float)
        return p @ self._rmat.T + self.translation

    def relative_point(self, p):
        """Global frame → local frame.  Exact inverse of :meth:`global_point`."""
        p = np.asarray(p, dtype=float)
        return (p - self.translation) @ self._rmat

    def as_matrix(self):
        """Pose → 3×3 homogeneous matrix."""
        T = np.eye(3)
        T[:2, :2] = self._rmat
        T[:2, 2] = self.tx, self.ty
        return T

    def as_vec(self):
        """Pose → ``[tx, ty, th_deg]``."""
        return np.array([self.tx, self.ty, self.th])

    def allclose(self, other, atol_t=1e-9, atol_th=1e-9):
        """True when translations and angles (degrees) agree within tolerance."""
        return (abs(self.tx - other.tx) <= atol_t
                and abs(self.ty - other.ty) <= atol_t
                and abs(self.th - other.th) <= atol_th)

    def __repr__(self):
        return f"Pose2D(tx={self.tx:.6g}, ty={self.ty:.6g}, th={self.th:.6g})"


# ── composition ──────────────────────────────────────────────────────────────

def calc_relative_pose(current, base):
    """Pose of *current* expressed in the frame of *base*.

    rotation    = current.th − base.th
    translation = base.Rᵀ · (current.t − base.t)
    """
    d = current.translation - base.translation
    tx, ty = d @ base._rmat
    return Pose2D.from_radians(tx, ty, current._rad - base._rad)


def calc_global_pose(relative, base):
    """Inverse of :func:`calc_relative_pose`: advance *base* by *relative*."""
    tx, ty = base._rmat @ relative.translation + base.translation
    return Pose2D.from_radians(tx, ty, base._rad + relative._rad)
