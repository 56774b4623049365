#!/usr/bin/env python3
"""
Geometry primitives and vector helpers shared across the mesh engine.

Positions are kept as ``Vec3`` named tuples so that vertex identity is
exact component equality with lexicographic (x, y, z) ordering. Bulk
arithmetic over many triangles goes through numpy.
"""

from typing import Iterable, NamedTuple, Tuple

import numpy as np


class Vec3(NamedTuple):
    """Point or direction in 3D. Compares and orders lexicographically."""
    x: float
    y: float
    z: float


class Triangle(NamedTuple):
    """Facet with a stored normal and three independent vertex copies."""
    normal: Vec3
    v0: Vec3
    v1: Vec3
    v2: Vec3


EdgeKey = Tuple[int, int]


def edge_key(a: int, b: int) -> EdgeKey:
    """Canonical (min, max) key identifying an edge in either direction."""
    return (a, b) if a < b else (b, a)


def to_vec3(values) -> Vec3:
    """Convert any length-3 sequence (list, tuple, numpy row) to ``Vec3``."""
    x, y, z = values
    return Vec3(float(x), float(y), float(z))


def negate(v: Vec3) -> Vec3:
    return Vec3(-v.x, -v.y, -v.z)


def facet_normals(v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Right-hand-rule normals of many triangles at once.

    Args:
        v0, v1, v2: Arrays of shape (n, 3) holding the triangle corners

    Returns:
        Tuple of (unit normals, raw cross-product lengths). Rows whose
        length is zero are left as zero vectors.
    """
    cross = np.cross(v1 - v0, v2 - v0)
    lengths = np.linalg.norm(cross, axis=1)
    normals = np.zeros_like(cross)
    nonzero = lengths > 0.0
    normals[nonzero] = cross[nonzero] / lengths[nonzero, None]
    return normals, lengths


def centroid(points: Iterable[Vec3]) -> Vec3:
    """Arithmetic mean of a collection of positions."""
    return to_vec3(np.mean(np.asarray(list(points), dtype=float), axis=0))
