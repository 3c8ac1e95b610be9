"""YAML configuration.

Every component reads its own section with ``cfg.get(section, {})`` and
per-key defaults, so a partial file is enough::

    optimizer:
      learning_rate: 0.02
    matcher:
      min_used_points: 30
"""

import copy

import yaml

from .errors import ConfigError


DEFAULT_CONFIG = {
    "resample": {
        "spacing": 0.05,
        "max_gap": 0.25,
    },
    "normals": {
        "min_dist": 0.06,
        "max_dist": 1.0,
        "corner_angle": 45.0,
    },
    "association": {
        "gate": 0.2,
    },
    "cost": {
        "method": "point_to_point",
        "inlier_limit": 0.2,
    },
    "optimizer": {
        "learning_rate": 0.05,
        "translation_step": 1e-5,
        "angular_step": 1e-4,
        "convergence_threshold": 1e-9,
        "max_iterations": 10000,
        "sanity_bound": 100.0,
    },
    "icp": {
        "max_rounds": 100,
        "convergence_threshold": 1e-6,
    },
    "matcher": {
        "resample": True,
        "analyse_normals": True,
        "min_used_points": 50,
        "min_inlier_ratio": 0.8,
    },
}


def merge_config(base, override):
    """Section-wise merge: keys in *override* win, other defaults survive."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def load_config(path=None):
    """Read a YAML file and merge it over :data:`DEFAULT_CONFIG`.

    ``path=None`` returns a copy of the defaults.
    """
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping, got {type(data).__name__}")
    for section, value in data.items():
        if section in DEFAULT_CONFIG and not isinstance(value, dict):
            raise ConfigError(f"config section {section!r} must be a mapping")
    return merge_config(DEFAULT_CONFIG, data)
