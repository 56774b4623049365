"""
Boundary loop tracing and capping for a subset of an indexed mesh.

The open edges of the subset (edges used by exactly one subset triangle)
form a directed graph. It is decomposed into closed loops by walking
unused edges; a walk that runs back into its own path splits the touched
sub-loop off and caps it immediately. Every loop is fan-triangulated from
its centroid.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple
import logging

import numpy as np

from .constants import NORMAL_LENGTH_TOLERANCE
from .geometry_utils import EdgeKey, Triangle, Vec3, centroid, edge_key, negate, to_vec3

logger = logging.getLogger(__name__)


class DirectedEdge(NamedTuple):
    """Oriented occurrence of an edge inside one triangle."""
    start: int
    end: int
    triangle: int


class BoundaryLoop(NamedTuple):
    """Closed vertex cycle plus the triangle whose normal orients its cap."""
    vertices: List[int]
    reference_triangle: int


def find_boundary_edges(faces: np.ndarray, subset: Iterable[int]) -> List[DirectedEdge]:
    """
    Directed edges used by exactly one triangle of ``subset``.

    Indices outside ``faces`` are ignored. The result is ordered by
    canonical edge key so that loop tracing is deterministic.
    """
    occurrences: Dict[EdgeKey, List[DirectedEdge]] = defaultdict(list)
    for ti in subset:
        if not 0 <= ti < len(faces):
            continue
        v0, v1, v2 = (int(v) for v in faces[ti])
        for a, b in ((v0, v1), (v1, v2), (v2, v0)):
            occurrences[edge_key(a, b)].append(DirectedEdge(a, b, ti))
    return [edges[0] for _, edges in sorted(occurrences.items()) if len(edges) == 1]


def trace_boundary_loops(boundary_edges: Sequence[DirectedEdge]) -> List[BoundaryLoop]:
    """
    Decompose directed boundary edges into closed loops.

    Seeds are taken in ``boundary_edges`` order, and at each vertex the
    first unused outgoing edge is followed. Loops are returned in the order
    they are closed: a sub-loop split off at a revisited vertex precedes the
    loop it was split from.
    """
    outgoing: Dict[int, List[Tuple[int, int]]] = defaultdict(list)
    for edge in boundary_edges:
        outgoing[edge.start].append((edge.end, edge.triangle))

    used = set()
    loops = []
    for seed in boundary_edges:
        if (seed.start, seed.end) in used:
            continue

        start = seed.start
        path = [seed.start, seed.end]
        path_triangles = [seed.triangle, seed.triangle]
        used.add((seed.start, seed.end))
        current = seed.end

        while current != start:
            step = next(((nxt, tri) for nxt, tri in outgoing[current] if (current, nxt) not in used), None)
            if step is None:
                logger.warning(f"Boundary walk from vertex {start} dead-ends at vertex {current}")
                break
            nxt, tri = step
            used.add((current, nxt))

            if nxt == start:
                break
            if nxt not in path:
                path.append(nxt)
                path_triangles.append(tri)
                current = nxt
                continue

            # Self-touching chain: split the sub-loop off at the revisit point
            idx = path.index(nxt)
            loops.append(BoundaryLoop(path[idx:], path_triangles[idx]))
            del path[idx + 1:]
            del path_triangles[idx + 1:]
            current = path[-1]

        loops.append(BoundaryLoop(path, path_triangles[0]))
    return loops


def cap_loop(points: np.ndarray, loop: Sequence[int], reference_normal: Vec3) -> List[Triangle]:
    """
    Fan-triangulate one closed loop from its centroid.

    Each cap triangle is oriented so its normal does not oppose
    ``reference_normal``. Loops with fewer than three vertices and fans
    with a near-zero normal are skipped.
    """
    if len(loop) < 3:
        logger.debug(f"Skipping degenerate loop of {len(loop)} vertices")
        return []

    loop_points = [to_vec3(points[vi]) for vi in loop]
    center = centroid(loop_points)
    c = np.asarray(center)
    ref = np.asarray(reference_normal)

    caps = []
    for i, va in enumerate(loop_points):
        vb = loop_points[(i + 1) % len(loop_points)]
        n = np.cross(np.asarray(va) - c, np.asarray(vb) - c)
        length = float(np.linalg.norm(n))
        if length <= NORMAL_LENGTH_TOLERANCE:
            continue
        normal = to_vec3(n / length)
        if float(np.dot(n, ref)) >= 0.0:
            caps.append(Triangle(normal, center, va, vb))
        else:
            caps.append(Triangle(negate(normal), center, vb, va))
    return caps


def add_caps(points: np.ndarray, faces: np.ndarray, subset: Sequence[int],
             reference_normals: np.ndarray,
             subset_triangles: Optional[List[Triangle]] = None) -> List[Triangle]:
    """
    Close every open boundary loop of ``subset``.

    Args:
        points: Vertex positions, shape (n, 3)
        faces: Index triples, shape (m, 3)
        subset: Indices of the triangles to keep
        reference_normals: Geometric unit normal per face, shape (m, 3)
        subset_triangles: Materialized subset triangles; the caps are
            appended after them

    Returns:
        The subset triangles followed by the generated cap triangles
    """
    triangles = list(subset_triangles or [])
    if len(points) == 0:
        return triangles

    boundary = find_boundary_edges(faces, subset)
    if not boundary:
        return triangles

    loops = trace_boundary_loops(boundary)
    n_before = len(triangles)
    for loop in loops:
        triangles.extend(cap_loop(points, loop.vertices, to_vec3(reference_normals[loop.reference_triangle])))

    logger.info(f"Capped {len(loops)} boundary loops ({len(boundary)} open edges) "
                f"with {len(triangles) - n_before} triangles")
    return triangles
