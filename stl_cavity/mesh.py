"""
Indexed triangle mesh engine.

``StlMesh`` loads an STL file, merges exactly-equal vertices into a shared
vertex array, and answers geometric queries on the result: volume,
watertightness, winding, ray intersection, subset capping and internal
cavity (fluid) extraction.

Typical use::

    mesh = StlMesh()
    if mesh.read("part.stl"):
        mesh.remove_duplicate_vertices()
        print(mesh.volume())
        fluid = mesh.compute_fluid_mesh()
"""

from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, TextIO, Union
import logging

import numpy as np

from .capping import add_caps
from .cleaning import clean_mesh
from .constants import STL_DEFAULT_SOLID_NAME, STL_EVEN_HITS_SOLID_NAME
from .diagnostics import (
    WatertightReport,
    WindingReport,
    check_watertight,
    check_winding,
    edge_counts,
)
from .exceptions import StlReadError
from .geometry_utils import EdgeKey, Triangle, Vec3, facet_normals, negate, to_vec3
from .point_in_mesh import RayCastSettings, RaycastFluidClassifier, moller_trumbore
from .stl_processor import STLProcessor, trim_header
from .writer import write_solid


class RayHit(NamedTuple):
    hit: bool
    t: float


class StlMesh:
    """
    Shared-vertex triangle mesh loaded from an STL file.

    State is reset in full by every ``read``. Geometry queries assume
    ``remove_duplicate_vertices`` has run; before that they see an empty
    mesh.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._reset()

    def _reset(self) -> None:
        self._header = ""
        self._soup: List[Triangle] = []
        self._points = np.zeros((0, 3))
        self._faces = np.zeros((0, 3), dtype=np.intp)
        self._declared_normals = np.zeros((0, 3))
        self._indexed = False

    @classmethod
    def from_triangles(cls, triangles: Sequence[Triangle], header: str = "",
                       logger: Optional[logging.Logger] = None) -> "StlMesh":
        """Build an indexed mesh from an in-memory triangle list."""
        mesh = cls(logger)
        mesh._header = header
        mesh._soup = list(triangles)
        mesh.remove_duplicate_vertices()
        return mesh

    # ------------------------------------------------------------------
    # Loading and indexing
    # ------------------------------------------------------------------

    def read(self, path: Union[str, Path]) -> bool:
        """
        Load an ASCII or binary STL file as a triangle soup.

        Prior state is cleared first, so a failed load leaves an empty mesh.

        Returns:
            True on success, False if the file is missing or malformed
        """
        self._reset()
        try:
            header, triangles = STLProcessor(self.logger).read_triangles(path)
        except StlReadError as e:
            self.logger.error(f"STL read failed: {e}")
            return False

        self._header = header
        self._soup = triangles
        self.logger.info(f"Loaded {len(triangles)} triangles from {Path(path).name}")
        return True

    def remove_duplicate_vertices(self) -> None:
        """
        Convert the loaded soup into a shared-vertex mesh.

        Vertices are identified by exact coordinate equality and numbered
        in first-seen order; triangle order is preserved. The declared
        facet normals are kept aside for the winding check. The soup is
        consumed.
        """
        if self._indexed and not self._soup:
            self.logger.warning("Mesh already indexed; nothing to do")
            return

        self._declared_normals = np.asarray([t.normal for t in self._soup], dtype=float).reshape(-1, 3)

        index: Dict[Vec3, int] = {}
        vertices: List[Vec3] = []

        def vertex_id(v: Vec3) -> int:
            i = index.get(v)
            if i is None:
                i = index[v] = len(vertices)
                vertices.append(v)
            return i

        faces = [(vertex_id(t.v0), vertex_id(t.v1), vertex_id(t.v2)) for t in self._soup]

        self._points = np.asarray(vertices, dtype=float).reshape(-1, 3)
        self._faces = np.asarray(faces, dtype=np.intp).reshape(-1, 3)
        self._soup = []
        self._indexed = True

        self.logger.info(f"Indexed {len(self._faces)} triangles: {3 * len(self._faces)} vertex refs -> "
                         f"{len(self._points)} unique vertices")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def header(self) -> str:
        return self._header

    @property
    def name(self) -> str:
        """Solid name used for full-mesh writes."""
        return trim_header(self._header) or STL_DEFAULT_SOLID_NAME

    @property
    def vertices(self) -> np.ndarray:
        return self._points

    @property
    def indexed_triangles(self) -> np.ndarray:
        return self._faces

    @property
    def declared_normals(self) -> np.ndarray:
        return self._declared_normals

    def triangle_count(self) -> int:
        return len(self._faces)

    def get_triangle(self, i: int) -> Triangle:
        """
        Materialize triangle ``i`` with its recomputed unit normal.

        Raises:
            IndexError: If ``i`` is not a valid triangle index
        """
        if not 0 <= i < len(self._faces):
            raise IndexError(f"triangle index {i} out of range (0..{len(self._faces) - 1})")
        v0, v1, v2 = (to_vec3(self._points[vi]) for vi in self._faces[i])
        normals, _ = facet_normals(np.asarray([v0]), np.asarray([v1]), np.asarray([v2]))
        return Triangle(to_vec3(normals[0]), v0, v1, v2)

    def geometric_normals(self) -> np.ndarray:
        """Unit right-hand-rule normal per triangle (zero for degenerate ones)."""
        corners = self._points[self._faces]
        normals, _ = facet_normals(corners[:, 0], corners[:, 1], corners[:, 2])
        return normals

    def edge_counts(self) -> Dict[EdgeKey, int]:
        """Occurrence count of every canonical edge."""
        return edge_counts(self._faces)

    # ------------------------------------------------------------------
    # Volume
    # ------------------------------------------------------------------

    def volume(self) -> float:
        """
        Enclosed volume by the divergence theorem.

        Sums signed tetrahedra against the origin and returns the absolute
        value. Only meaningful for a closed, consistently oriented mesh;
        neither property is checked here.
        """
        if len(self._faces) == 0:
            return 0.0
        corners = self._points[self._faces]
        signed = np.einsum('ij,ij->i', corners[:, 0], np.cross(corners[:, 1], corners[:, 2])) / 6.0
        return abs(float(np.sum(signed, dtype=np.longdouble)))

    @staticmethod
    def volume_from_file(path: Union[str, Path]) -> Optional[float]:
        """Load, index and measure ``path``; None if the file cannot be read."""
        mesh = StlMesh()
        if not mesh.read(path):
            return None
        mesh.remove_duplicate_vertices()
        return mesh.volume()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def watertight_report(self) -> WatertightReport:
        return check_watertight(self._points, self._faces)

    def winding_report(self) -> Optional[WindingReport]:
        return check_winding(self._points, self._faces, self._declared_normals)

    def check_watertight(self, out: Optional[TextIO] = None) -> bool:
        """
        Report duplicates, open and non-manifold edges and degenerate
        triangles.

        Returns:
            True if none of them is present
        """
        report = self.watertight_report()
        self._emit(report.format(), out)
        return report.watertight

    def check_right_hand_winding(self, out: Optional[TextIO] = None) -> None:
        """
        Report triangles whose vertex order disagrees with the normal
        declared in the source file. Silent when the declared normals no
        longer line up with the triangles.
        """
        report = self.winding_report()
        if report is not None:
            self._emit(report.format(), out)

    def _emit(self, text: str, out: Optional[TextIO]) -> None:
        if out is not None:
            out.write(text)
        else:
            for line in text.splitlines():
                self.logger.info(line)

    # ------------------------------------------------------------------
    # Ray casting and cavity extraction
    # ------------------------------------------------------------------

    def ray_intersect(self, tri_index: int, origin: Sequence[float], direction: Sequence[float]) -> RayHit:
        """
        Möller-Trumbore intersection of a ray with triangle ``tri_index``.

        Returns:
            RayHit(hit, t); only forward hits count and t is 0.0 on a miss
        """
        if not 0 <= tri_index < len(self._faces):
            raise IndexError(f"triangle index {tri_index} out of range (0..{len(self._faces) - 1})")
        corners = self._points[self._faces[tri_index:tri_index + 1]]
        t = moller_trumbore(np.asarray(origin, dtype=float), np.asarray(direction, dtype=float),
                            corners[:, 0], corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])[0]
        if np.isnan(t):
            return RayHit(False, 0.0)
        return RayHit(True, float(t))

    def find_even_hit_triangles(self, settings: Optional[RayCastSettings] = None) -> List[int]:
        """Indices of the triangles classified as bounding an internal cavity."""
        classifier = RaycastFluidClassifier(self._points, self._faces, settings, self.logger)
        return classifier.find_even_hit_triangles()

    def add_caps(self, triangle_indices: Iterable[int]) -> List[Triangle]:
        """
        Materialize a subset of triangles and close its open boundary loops.

        Returns:
            The subset triangles (out-of-range indices skipped) followed by
            the cap triangles, each oriented to agree with the retained
            triangle next to its loop
        """
        triangle_indices = list(triangle_indices)
        subset = [self.get_triangle(i) for i in triangle_indices if 0 <= i < len(self._faces)]
        return add_caps(self._points, self._faces, triangle_indices, self.geometric_normals(), subset)

    def compute_fluid_mesh(self, settings: Optional[RayCastSettings] = None,
                           out: Optional[TextIO] = None,
                           even_hits: Optional[Iterable[int]] = None) -> List[Triangle]:
        """
        Extract the closed surface of the cavity enclosed by the solid.

        Classifies triangles by ray parity, caps the selection, turns the
        caps to face into the cavity, and cleans the result.

        Args:
            settings: Ray-parity tuning; defaults when None
            out: Optional stream receiving the cleaning report
            even_hits: Result of an earlier ``find_even_hit_triangles``
                call, to avoid classifying twice

        Returns:
            Cleaned fluid triangle list
        """
        selected = list(even_hits) if even_hits is not None else self.find_even_hit_triangles(settings)
        fluid = self.add_caps(selected)

        n_subset = sum(1 for i in selected if 0 <= i < len(self._faces))
        for i in range(n_subset, len(fluid)):
            cap = fluid[i]
            fluid[i] = Triangle(negate(cap.normal), cap.v0, cap.v2, cap.v1)

        return clean_mesh(fluid, out)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write_ascii_stl(self, path: Union[str, Path], only_indices: Optional[Sequence[int]] = None) -> bool:
        """
        Write the mesh, or the triangles listed in ``only_indices``, as
        ASCII STL with recomputed normals.

        The full mesh is written under the header name; a subset is
        written as solid ``even_hits`` and out-of-range indices are skipped.
        """
        if only_indices is None:
            return write_solid(path, self.name, (self.get_triangle(i) for i in range(len(self._faces))))
        return write_solid(path, STL_EVEN_HITS_SOLID_NAME,
                           (self.get_triangle(i) for i in only_indices if 0 <= i < len(self._faces)))
