"""
Geometric-quality diagnostics over an indexed triangle mesh.

Watertightness (duplicates, boundary / non-manifold edges, degenerate
triangles) and winding consistency against the normals declared in the
source file. Findings are reported, never raised.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .constants import DEGENERATE_AREA_TOLERANCE, WINDING_DOT_TOLERANCE
from .geometry_utils import EdgeKey, facet_normals


@dataclass
class WatertightReport:
    """Counts gathered by the watertight check."""
    triangles: int = 0
    vertices: int = 0
    unique_edges: int = 0
    duplicate_triangles: int = 0
    boundary_edges: int = 0
    non_manifold_edges: int = 0
    degenerate_triangles: int = 0

    @property
    def watertight(self) -> bool:
        if self.triangles == 0:
            return False
        return (self.duplicate_triangles == 0 and self.boundary_edges == 0
                and self.non_manifold_edges == 0 and self.degenerate_triangles == 0)

    def format(self) -> str:
        if self.triangles == 0:
            return "Watertight: no triangles\n"
        lines = []
        if self.duplicate_triangles > 0:
            lines.append(f"Duplicate triangles: {self.duplicate_triangles}")
        lines.append(f"Edges: {self.unique_edges} unique; {self.boundary_edges} boundary (count=1), "
                     f"{self.non_manifold_edges} non-manifold (count>2)")
        if self.degenerate_triangles > 0:
            lines.append(f"Degenerate triangles (zero area): {self.degenerate_triangles}")
        lines.append(f"Vertices: {self.vertices} unique (from {self.triangles} triangles)")
        lines.append(f"Watertight: {'yes' if self.watertight else 'no'}")
        return "\n".join(lines) + "\n"


@dataclass
class WindingReport:
    """Right-hand-rule agreement between geometric and declared normals."""
    consistent: int = 0
    inverted: List[Tuple[int, float]] = field(default_factory=list)

    def format(self) -> str:
        lines = [f"  triangle {index} opposite winding (dot={dot:g})" for index, dot in self.inverted]
        lines.append(f"Right-hand rule: {self.consistent} OK, {len(self.inverted)} opposite winding")
        return "\n".join(lines) + "\n"


def _edge_array(faces: np.ndarray) -> np.ndarray:
    """All three edges of every face as canonical (min, max) rows."""
    edges = np.concatenate([faces[:, [0, 1]], faces[:, [1, 2]], faces[:, [2, 0]]])
    return np.sort(edges, axis=1)


def edge_counts(faces: np.ndarray) -> Dict[EdgeKey, int]:
    """
    Tally how many triangles use each edge.

    Args:
        faces: Index triples, shape (n, 3)

    Returns:
        Mapping from canonical edge key to occurrence count
    """
    if len(faces) == 0:
        return {}
    unique, counts = np.unique(_edge_array(faces), axis=0, return_counts=True)
    return {(int(a), int(b)): int(c) for (a, b), c in zip(unique, counts)}


def check_watertight(points: np.ndarray, faces: np.ndarray) -> WatertightReport:
    """
    Check that every edge is shared by exactly two triangles and that there
    are no duplicate or degenerate triangles.

    Duplicates are detected on the sorted index triple, so two triangles
    over the same three vertices match regardless of winding.
    """
    report = WatertightReport(triangles=len(faces), vertices=len(points))
    if len(faces) == 0:
        return report

    unique_faces = np.unique(np.sort(faces, axis=1), axis=0)
    report.duplicate_triangles = len(faces) - len(unique_faces)

    _, counts = np.unique(_edge_array(faces), axis=0, return_counts=True)
    report.unique_edges = len(counts)
    report.boundary_edges = int(np.count_nonzero(counts == 1))
    report.non_manifold_edges = int(np.count_nonzero(counts > 2))

    corners = points[faces]
    cross = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])
    area2 = np.einsum('ij,ij->i', cross, cross)
    report.degenerate_triangles = int(np.count_nonzero(area2 <= DEGENERATE_AREA_TOLERANCE))
    return report


def check_winding(points: np.ndarray, faces: np.ndarray,
                  declared_normals: np.ndarray) -> Optional[WindingReport]:
    """
    Compare each triangle's right-hand-rule normal with its declared normal.

    Returns None when the declared normals are not aligned one-to-one with
    the faces. Triangles whose dot product falls inside the tolerance band,
    or whose geometric normal has zero length, are neither counted nor
    reported.
    """
    if len(declared_normals) != len(faces):
        return None
    report = WindingReport()
    if len(faces) == 0:
        return report

    corners = points[faces]
    normals, lengths = facet_normals(corners[:, 0], corners[:, 1], corners[:, 2])
    dots = np.einsum('ij,ij->i', normals, declared_normals)
    valid = lengths > 0.0

    report.consistent = int(np.count_nonzero(valid & (dots > WINDING_DOT_TOLERANCE)))
    for index in np.flatnonzero(valid & (dots < -WINDING_DOT_TOLERANCE)):
        report.inverted.append((int(index), float(dots[index])))
    return report
