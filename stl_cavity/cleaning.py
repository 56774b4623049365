"""Post-processing pass turning a raw triangle list into a clean one."""

from dataclasses import dataclass
from typing import Dict, List, Optional, TextIO
import logging

import numpy as np

from .constants import NORMAL_LENGTH_TOLERANCE
from .geometry_utils import Triangle, Vec3, edge_key, facet_normals, to_vec3

logger = logging.getLogger(__name__)


@dataclass
class CleanReport:
    """What the cleaning pass removed or found."""
    triangles_before: int = 0
    triangles_after: int = 0
    duplicate_triangles: int = 0
    degenerate_triangles: int = 0
    vertex_refs: int = 0
    unique_vertices: int = 0
    non_manifold_edges: int = 0

    def format(self) -> str:
        if self.triangles_before == 0:
            return "No triangles.\n"
        lines = [
            "Clean triangles report:",
            f"  Duplicate triangles removed: {self.duplicate_triangles}",
            f"  Vertices: {self.vertex_refs} refs -> {self.unique_vertices} unique "
            f"(merged {self.vertex_refs - self.unique_vertices} duplicate positions)",
            f"  Degenerate triangles removed: {self.degenerate_triangles}",
        ]
        if self.non_manifold_edges > 0:
            lines.append(f"  Non-manifold edges (shared by >2 triangles): {self.non_manifold_edges}")
        lines.append(f"  Triangles before: {self.triangles_before}  after: {self.triangles_after}")
        return "\n".join(lines) + "\n"


def clean_mesh(triangles: List[Triangle], out: Optional[TextIO] = None) -> List[Triangle]:
    """
    Merge duplicate vertices, drop degenerate and duplicate triangles, and
    recompute normals.

    Non-manifold edges (shared by more than two triangles) are counted
    but left in place.

    Args:
        triangles: Triangle list; stored normals are ignored
        out: Optional text stream receiving the report; without one the
            report is logged

    Returns:
        New triangle list with unit right-hand-rule normals
    """
    report = CleanReport(triangles_before=len(triangles), vertex_refs=3 * len(triangles))
    if not triangles:
        _emit(report, out)
        return []

    vertex_index: Dict[Vec3, int] = {}
    verts: List[Vec3] = []

    def index_of(v: Vec3) -> int:
        idx = vertex_index.get(v)
        if idx is None:
            idx = vertex_index[v] = len(verts)
            verts.append(v)
        return idx

    indexed = []
    for t in triangles:
        i, j, k = index_of(t.v0), index_of(t.v1), index_of(t.v2)
        if i == j or j == k or k == i:
            report.degenerate_triangles += 1
            continue
        indexed.append((i, j, k))
    report.unique_vertices = len(verts)

    seen = set()
    unique_tris = []
    for tri in indexed:
        key = tuple(sorted(tri))
        if key in seen:
            report.duplicate_triangles += 1
            continue
        seen.add(key)
        unique_tris.append(tri)

    edge_count: Dict[tuple, int] = {}
    for i, j, k in unique_tris:
        for a, b in ((i, j), (j, k), (k, i)):
            key = edge_key(a, b)
            edge_count[key] = edge_count.get(key, 0) + 1
    report.non_manifold_edges = sum(1 for count in edge_count.values() if count > 2)

    cleaned = []
    if unique_tris:
        points = np.asarray(verts, dtype=float)
        faces = np.asarray(unique_tris, dtype=np.intp)
        normals, lengths = facet_normals(points[faces[:, 0]], points[faces[:, 1]], points[faces[:, 2]])
        for (i, j, k), normal, length in zip(unique_tris, normals, lengths):
            if length <= NORMAL_LENGTH_TOLERANCE:
                continue
            cleaned.append(Triangle(to_vec3(normal), verts[i], verts[j], verts[k]))

    report.triangles_after = len(cleaned)
    _emit(report, out)
    return cleaned


def _emit(report: CleanReport, out: Optional[TextIO]) -> None:
    if out is not None:
        out.write(report.format())
    else:
        for line in report.format().splitlines():
            logger.info(line)
