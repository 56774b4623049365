#!/usr/bin/env python3
"""
Ray-casting cavity classification for triangulated solids.

ALGORITHM OVERVIEW:
Selects the surface triangles that bound an internal void of a closed,
outward-oriented solid:
1. For every triangle, start a probe ray just outside its centroid,
   displaced along the triangle's own geometric normal
2. Cast the ray along that normal against every other triangle using the
   Möller-Trumbore algorithm
3. Drop hits closer than a minimum distance (grazing near-self hits)
4. Sort the remaining hits and merge near-coincident ones, so that a ray
   crossing a seam between adjacent triangles counts once
5. Apply the parity rule: a positive, even number of distinct crossings
   means the ray entered and left the solid again, so the triangle faces
   into an enclosed cavity

PERFORMANCE NOTES:
- No spatial index: every ray is tested against every triangle, O(n²)
- Each ray is vectorized over all triangles with numpy
- Intended for moderate-sized meshes
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging

import numpy as np

from .constants import (
    CLASSIFY_PROGRESS_INTERVAL,
    DEFAULT_RAY_ORIGIN_OFFSET,
    DEFAULT_RAY_T_EPS,
    DEFAULT_RAY_T_MIN,
    RAY_FORWARD_TOLERANCE,
    RAY_PARALLEL_TOLERANCE,
)
from .exceptions import raise_configuration_error
from .geometry_utils import facet_normals


def _config_float(section: Dict[str, Any], key: str, default: float) -> float:
    """Numeric config value; missing or unparsable entries fall back to ``default``."""
    value = section.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class RayCastSettings:
    """Tuning of the ray-parity cavity classification."""
    origin_offset: float = DEFAULT_RAY_ORIGIN_OFFSET
    t_min: float = DEFAULT_RAY_T_MIN
    t_eps: float = DEFAULT_RAY_T_EPS

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RayCastSettings":
        """Build settings from the ``RAYCAST`` section of a configuration dict."""
        section = config.get("RAYCAST", {})
        settings = cls(
            origin_offset=_config_float(section, "origin_offset", DEFAULT_RAY_ORIGIN_OFFSET),
            t_min=_config_float(section, "t_min", DEFAULT_RAY_T_MIN),
            t_eps=_config_float(section, "t_eps", DEFAULT_RAY_T_EPS),
        )
        invalid = [name for name in ("origin_offset", "t_min", "t_eps") if getattr(settings, name) <= 0]
        if invalid:
            raise_configuration_error(f"RAYCAST parameters must be positive: {', '.join(invalid)}",
                                      parameters=invalid)
        return settings


def moller_trumbore(origin: np.ndarray, direction: np.ndarray,
                    v0: np.ndarray, edge1: np.ndarray, edge2: np.ndarray) -> np.ndarray:
    """
    Intersect one ray with many triangles.

    Args:
        origin: Ray origin [x, y, z]
        direction: Ray direction [x, y, z], not required to be unit length
        v0: First corner of each triangle, shape (n, 3)
        edge1: v1 - v0 for each triangle, shape (n, 3)
        edge2: v2 - v0 for each triangle, shape (n, 3)

    Returns:
        Ray parameter t per triangle, NaN where the ray misses. Only forward
        hits (t > RAY_FORWARD_TOLERANCE) are reported.
    """
    h = np.cross(direction, edge2)
    a = np.einsum('ij,ij->i', edge1, h)

    # Ray parallel to triangle
    parallel = np.abs(a) < RAY_PARALLEL_TOLERANCE
    with np.errstate(divide='ignore', invalid='ignore'):
        f = np.where(parallel, 0.0, 1.0 / np.where(parallel, 1.0, a))
    s = origin - v0
    u = f * np.einsum('ij,ij->i', s, h)
    q = np.cross(s, edge1)
    v = f * (q @ direction)
    t = f * np.einsum('ij,ij->i', edge2, q)

    hit = ~parallel & (u >= 0.0) & (u <= 1.0) & (v >= 0.0) & (u + v <= 1.0) & (t > RAY_FORWARD_TOLERANCE)
    return np.where(hit, t, np.nan)


def count_distinct_hits(distances: np.ndarray, t_eps: float) -> int:
    """
    Count crossings after merging hits closer than ``t_eps`` to the last
    counted one.
    """
    distinct = 0
    last_t = -np.inf
    for t in np.sort(distances):
        if t - last_t > t_eps:
            distinct += 1
            last_t = t
    return distinct


class RaycastFluidClassifier:
    """Ray-parity classifier selecting triangles that bound an internal cavity."""

    def __init__(self, points: np.ndarray, faces: np.ndarray,
                 settings: Optional[RayCastSettings] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.settings = settings or RayCastSettings()

        corners = points[faces] if len(faces) else np.zeros((0, 3, 3))
        self.v0 = corners[:, 0]
        self.edge1 = corners[:, 1] - corners[:, 0]
        self.edge2 = corners[:, 2] - corners[:, 0]
        self.centroids = corners.mean(axis=1) if len(faces) else np.zeros((0, 3))
        self.normals, _ = facet_normals(corners[:, 0], corners[:, 1], corners[:, 2])

    def probe_ray(self, index: int) -> Tuple[np.ndarray, np.ndarray]:
        """Origin and direction of the probe ray leaving triangle ``index``."""
        normal = self.normals[index]
        return self.centroids[index] + self.settings.origin_offset * normal, normal

    def distinct_hits(self, index: int) -> int:
        """Number of distinct boundary crossings of the probe ray of ``index``."""
        origin, direction = self.probe_ray(index)
        t = moller_trumbore(origin, direction, self.v0, self.edge1, self.edge2)
        t[index] = np.nan
        t = t[~np.isnan(t)]
        return count_distinct_hits(t[t > self.settings.t_min], self.settings.t_eps)

    def find_even_hit_triangles(self) -> List[int]:
        """
        Classify every triangle.

        Returns:
            Indices of triangles whose probe ray has a positive, even number
            of distinct crossings, in ascending order
        """
        n_triangles = len(self.v0)
        self.logger.info(f"Classifying {n_triangles} triangles by ray parity "
                         f"(offset={self.settings.origin_offset:g}, t_min={self.settings.t_min:g}, "
                         f"t_eps={self.settings.t_eps:g})")

        selected = []
        for i in range(n_triangles):
            hits = self.distinct_hits(i)
            if hits > 0 and hits % 2 == 0:
                selected.append(i)
            if (i + 1) % CLASSIFY_PROGRESS_INTERVAL == 0:
                self.logger.debug(f"Classified {i + 1}/{n_triangles} triangles, {len(selected)} selected")

        self.logger.info(f"Even-hit triangles: {len(selected)} of {n_triangles}")
        return selected
