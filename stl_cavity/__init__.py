"""
STL Cavity Extraction Package

Triangulated-surface engine for closed solids:
- ASCII / binary STL loading and exact shared-vertex indexing
- Watertightness and winding diagnostics, enclosed volume
- Ray-parity detection of triangles bounding an internal cavity
- Boundary loop capping and mesh cleaning into a closed fluid mesh
"""

from .cleaning import clean_mesh
from .geometry_utils import Triangle, Vec3
from .mesh import StlMesh
from .point_in_mesh import RayCastSettings
from .writer import write_ascii_stl_from_triangles

__version__ = "1.0.0"
__all__ = [
    "StlMesh",
    "Triangle",
    "Vec3",
    "RayCastSettings",
    "clean_mesh",
    "write_ascii_stl_from_triangles",
]
