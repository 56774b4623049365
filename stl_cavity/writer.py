"""ASCII STL serialization."""

from pathlib import Path
from typing import Iterable, TextIO, Union
import logging

from .constants import STL_ASCII_PRECISION, STL_FLUID_SOLID_NAME
from .exceptions import StlWriteError
from .geometry_utils import Triangle, Vec3

logger = logging.getLogger(__name__)


def _fmt(v: Vec3) -> str:
    return f"{v.x:.{STL_ASCII_PRECISION}g} {v.y:.{STL_ASCII_PRECISION}g} {v.z:.{STL_ASCII_PRECISION}g}"


def write_one_facet(f: TextIO, t: Triangle) -> None:
    """Write one facet block; stored values are written verbatim."""
    f.write(f"  facet normal {_fmt(t.normal)}\n")
    f.write("    outer loop\n")
    f.write(f"      vertex {_fmt(t.v0)}\n")
    f.write(f"      vertex {_fmt(t.v1)}\n")
    f.write(f"      vertex {_fmt(t.v2)}\n")
    f.write("    endloop\n  endfacet\n")


def _write(path: Union[str, Path], name: str, triangles: Iterable[Triangle]) -> int:
    try:
        with open(path, 'w') as f:
            f.write(f"solid {name}\n")
            count = 0
            for t in triangles:
                write_one_facet(f, t)
                count += 1
            f.write(f"endsolid {name}\n")
    except OSError as e:
        raise StlWriteError(f"Cannot write STL: {e}", output_file=str(path)) from e
    return count


def write_solid(path: Union[str, Path], name: str, triangles: Iterable[Triangle]) -> bool:
    """
    Write ``triangles`` as an ASCII solid called ``name``.

    Returns:
        False if the destination cannot be written. A partially written
        file is not removed.
    """
    try:
        count = _write(path, name, triangles)
    except StlWriteError as e:
        logger.error(f"STL write failed: {e}")
        return False

    logger.info(f"Wrote {count} triangles to {path} (solid {name})")
    return True


def write_ascii_stl_from_triangles(path: Union[str, Path], triangles: Iterable[Triangle]) -> bool:
    """Write an arbitrary triangle list, e.g. a fluid mesh, as solid ``fluid``."""
    return write_solid(path, STL_FLUID_SOLID_NAME, triangles)
