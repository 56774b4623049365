"""Shared fixtures: small STL files and closed box meshes built in code."""

import struct
from pathlib import Path
from typing import List

import numpy as np
import pytest

from stl_cavity.geometry_utils import Triangle, to_vec3


SIMPLE_STL = """solid simple
  facet normal 0.577350 0.577350 0.577350
    outer loop
      vertex 1 0 0
      vertex 0 1 0
      vertex 0 0 1
    endloop
  endfacet
endsolid simple
"""


def box_triangles(lo: float, hi: float, inward: bool = False) -> List[Triangle]:
    """
    Axis-aligned cube [lo, hi]^3 as 12 triangles.

    Faces are emitted as -x, +x, -y, +y, -z, +z, two triangles each, every
    face split along the same in-plane diagonal. Normals point outward, or
    toward the cube center when ``inward`` is set.
    """
    triangles = []
    for axis in range(3):
        a, b = (axis + 1) % 3, (axis + 2) % 3
        for side in (lo, hi):
            corners = []
            for ca, cb in ((lo, lo), (hi, lo), (hi, hi), (lo, hi)):
                p = [0.0, 0.0, 0.0]
                p[axis], p[a], p[b] = side, ca, cb
                corners.append(np.array(p))
            desired = np.zeros(3)
            desired[axis] = 1.0 if side == hi else -1.0
            if inward:
                desired = -desired
            for i, j, k in ((0, 1, 2), (0, 2, 3)):
                v0, v1, v2 = corners[i], corners[j], corners[k]
                if np.dot(np.cross(v1 - v0, v2 - v0), desired) < 0:
                    v1, v2 = v2, v1
                triangles.append(Triangle(to_vec3(desired), to_vec3(v0), to_vec3(v1), to_vec3(v2)))
    return triangles


def hollow_box_triangles() -> List[Triangle]:
    """Solid cube [0, 3]^3 with a closed cubic void [1, 2]^3."""
    return box_triangles(0.0, 3.0) + box_triangles(1.0, 2.0, inward=True)


def write_binary_stl(path: Path, triangles: List[Triangle], header: bytes = b"binary test",
                     declared_count: int = None) -> Path:
    count = len(triangles) if declared_count is None else declared_count
    with open(path, 'wb') as f:
        f.write(header.ljust(80, b'\0'))
        f.write(struct.pack('<I', count))
        for t in triangles:
            f.write(struct.pack('<12fH', *t.normal, *t.v0, *t.v1, *t.v2, 0))
    return path


@pytest.fixture
def simple_stl(tmp_path) -> Path:
    path = tmp_path / "simple.stl"
    path.write_text(SIMPLE_STL)
    return path


@pytest.fixture
def box() -> List[Triangle]:
    return box_triangles(0.0, 1.0)


@pytest.fixture
def hollow_box() -> List[Triangle]:
    return hollow_box_triangles()


@pytest.fixture
def hollow_box_stl(tmp_path, hollow_box) -> Path:
    return write_binary_stl(tmp_path / "hollow_box.stl", hollow_box, header=b"hollow box")
