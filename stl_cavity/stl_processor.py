"""
STL decoding for stl_cavity.

Handles both ASCII and binary STL formats and produces an unindexed
triangle soup together with the file's display name.
"""

import struct
from pathlib import Path
from typing import List, Optional, Tuple, Union
import logging

from .constants import (
    STL_BINARY_COUNT_SIZE,
    STL_BINARY_HEADER_SIZE,
    STL_BINARY_RECORD_FORMAT,
    STL_BINARY_RECORD_SIZE,
    STL_FACET_MARKER,
    STL_MAX_BINARY_TRIANGLES,
    STL_SOLID_KEYWORD,
    STL_VERTEX_MARKER,
)
from .exceptions import StlReadError, raise_format_error
from .geometry_utils import Triangle, Vec3


def _parse_three_floats(line: str, marker: str) -> Optional[Vec3]:
    """Return the three numbers following ``marker`` on ``line``, or None."""
    pos = line.find(marker)
    if pos < 0:
        return None
    parts = line[pos + len(marker):].split()
    try:
        return Vec3(float(parts[0]), float(parts[1]), float(parts[2]))
    except (IndexError, ValueError):
        return None


def trim_header(raw: str) -> str:
    """Strip trailing NUL and space padding from a header string."""
    return raw.rstrip('\0 ')


class STLProcessor:
    """
    STL file processor that handles both ASCII and binary STL formats.

    The grammar is chosen from the first five bytes: a leading ``solid``
    keyword selects the text grammar, anything else the binary one.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def read_triangles(self, stl_path: Union[str, Path]) -> Tuple[str, List[Triangle]]:
        """
        Read STL triangles.

        Args:
            stl_path: Path to STL file

        Returns:
            Tuple of (display name, list of soup triangles)

        Raises:
            StlReadError: If the file cannot be opened
            StlFormatError: If the content is malformed or truncated
        """
        stl_path = Path(stl_path)
        try:
            with open(stl_path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise StlReadError(f"Cannot open STL file: {e}", geometry_file=str(stl_path)) from e

        if data[:len(STL_SOLID_KEYWORD)] == STL_SOLID_KEYWORD.encode('ascii'):
            header, triangles = self._read_ascii(data, stl_path)
            grammar = "ASCII"
        else:
            header, triangles = self._read_binary(data, stl_path)
            grammar = "binary"

        self.logger.debug(f"Read {len(triangles)} triangles from {grammar} STL {stl_path.name}")
        return header, triangles

    def _read_ascii(self, data: bytes, stl_path: Path) -> Tuple[str, List[Triangle]]:
        """Decode the line-oriented text grammar."""
        # Lines end at '\n' only
        lines = [line.rstrip('\r') for line in data.decode('utf-8', errors='replace').split('\n')]

        # First line is free-form: "solid <name>"
        header = trim_header(lines[0].strip()[len(STL_SOLID_KEYWORD):].strip())

        triangles = []
        i = 1
        while i < len(lines):
            line = lines[i]
            i += 1
            if STL_FACET_MARKER not in line:
                continue
            normal = _parse_three_floats(line, STL_FACET_MARKER)
            if normal is None:
                continue

            # Skip "outer loop"
            i += 1
            vertices = []
            for _ in range(3):
                if i >= len(lines):
                    raise_format_error("Unexpected end of file inside facet",
                                       geometry_file=str(stl_path), line_number=i + 1)
                vertex = _parse_three_floats(lines[i], STL_VERTEX_MARKER)
                if vertex is None:
                    raise_format_error(f"Malformed vertex line: {lines[i].strip()!r}",
                                       geometry_file=str(stl_path), line_number=i + 1)
                vertices.append(vertex)
                i += 1

            # Skip "endloop" and "endfacet"
            i += 2
            triangles.append(Triangle(normal, *vertices))

        if not triangles:
            raise_format_error("ASCII STL contains no facets", geometry_file=str(stl_path))
        return header, triangles

    def _read_binary(self, data: bytes, stl_path: Path) -> Tuple[str, List[Triangle]]:
        """Decode the fixed-record binary grammar."""
        body_start = STL_BINARY_HEADER_SIZE + STL_BINARY_COUNT_SIZE
        if len(data) < body_start:
            raise_format_error("Binary STL shorter than its header", geometry_file=str(stl_path))

        header = trim_header(data[:STL_BINARY_HEADER_SIZE].decode('latin-1'))
        n_triangles = struct.unpack('<I', data[STL_BINARY_HEADER_SIZE:body_start])[0]
        if n_triangles > STL_MAX_BINARY_TRIANGLES:
            raise_format_error(f"Implausible triangle count {n_triangles}", geometry_file=str(stl_path))

        body_end = body_start + n_triangles * STL_BINARY_RECORD_SIZE
        if len(data) < body_end:
            raise_format_error(
                f"Truncated binary STL: {n_triangles} triangles declared, "
                f"{(len(data) - body_start) // STL_BINARY_RECORD_SIZE} present",
                geometry_file=str(stl_path))

        triangles = []
        # Format: 3 floats (normal), 9 floats (3 vertices), 1 short (attribute)
        for record in struct.iter_unpack(STL_BINARY_RECORD_FORMAT, data[body_start:body_end]):
            triangles.append(Triangle(Vec3(*record[0:3]), Vec3(*record[3:6]),
                                      Vec3(*record[6:9]), Vec3(*record[9:12])))
        return header, triangles
