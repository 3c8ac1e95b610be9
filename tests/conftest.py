import os

import numpy as np
import pytest

from scanmatch import Pose2D


REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def square_outline(half=0.8, spacing=0.05):
    """Ordered points around a square centred on the origin (counter-clockwise)."""
    s = np.arange(0.0, 2 * half - 1e-9, spacing)
    lo, hi = -half, half
    sides = [
        np.column_stack([lo + s, np.full_like(s, lo)]),
        np.column_stack([np.full_like(s, hi), lo + s]),
        np.column_stack([hi - s, np.full_like(s, hi)]),
        np.column_stack([np.full_like(s, lo), hi - s]),
    ]
    return np.vstack(sides)


@pytest.fixture
def square_points():
    """128 points on a 1.6 m square room outline, 0.05 m apart."""
    return square_outline()


@pytest.fixture
def line_points():
    """Straight wall along +x, 0.05 m spacing."""
    x = np.linspace(0.0, 1.0, 21)
    return np.column_stack([x, np.zeros_like(x)])


@pytest.fixture
def l_shape_points():
    """Two perpendicular walls meeting at the origin; apex at index 20."""
    s = np.linspace(0.0, 1.0, 21)
    leg_a = np.column_stack([s - 1.0, np.zeros_like(s)])     # (-1, 0) → (0, 0)
    leg_b = np.column_stack([np.zeros_like(s[1:]), s[1:]])   # (0, 0.05) → (0, 1)
    return np.vstack([leg_a, leg_b])


@pytest.fixture
def true_pose():
    return Pose2D(0.3, -0.1, 5.0)


@pytest.fixture
def config_path():
    return os.path.join(REPO_ROOT, "config.yaml")


@pytest.fixture
def hall_points():
    """8 m square room outline, 0.1 m apart (mean squared radius ≈ 21 m²)."""
    return square_outline(half=4.0, spacing=0.1)
