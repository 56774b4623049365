#!/usr/bin/env python3
"""
INDEXED MESH TESTS
==================

Vertex indexing, triangle lookup, volume and the geometric-quality
diagnostics (watertightness, winding, edge accounting).
"""

import io

import numpy as np
import pytest

from stl_cavity.diagnostics import check_winding
from stl_cavity.geometry_utils import Triangle, Vec3
from stl_cavity.mesh import StlMesh

from conftest import box_triangles, hollow_box_triangles


def quad_triangles():
    """Unit square in z=0 as two triangles sharing the diagonal."""
    up = Vec3(0.0, 0.0, 1.0)
    return [
        Triangle(up, Vec3(0.0, 0.0, 0.0), Vec3(1.0, 0.0, 0.0), Vec3(1.0, 1.0, 0.0)),
        Triangle(up, Vec3(0.0, 0.0, 0.0), Vec3(1.0, 1.0, 0.0), Vec3(0.0, 1.0, 0.0)),
    ]


# =============================================================================
# INDEXING
# =============================================================================

def test_read_triangle_count(simple_stl):
    mesh = StlMesh()
    assert mesh.read(simple_stl)
    mesh.remove_duplicate_vertices()
    assert mesh.triangle_count() == 1


def test_indexing_merges_exact_vertices_in_first_seen_order():
    mesh = StlMesh.from_triangles(quad_triangles())
    assert mesh.vertices.tolist() == [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]]
    assert mesh.indexed_triangles.tolist() == [[0, 1, 2], [0, 2, 3]]
    assert mesh.declared_normals.tolist() == [[0.0, 0.0, 1.0], [0.0, 0.0, 1.0]]


def test_indexing_does_not_weld_nearby_vertices():
    tris = quad_triangles()
    nudged = tris[1]._replace(v1=Vec3(1.0, 1.0 + 1e-12, 0.0))
    mesh = StlMesh.from_triangles([tris[0], nudged])
    assert len(mesh.vertices) == 5


def test_box_has_eight_vertices(box):
    mesh = StlMesh.from_triangles(box)
    assert mesh.triangle_count() == 12
    assert len(mesh.vertices) == 8


def test_second_indexing_call_keeps_mesh(box):
    mesh = StlMesh.from_triangles(box)
    mesh.remove_duplicate_vertices()
    assert mesh.triangle_count() == 12
    assert len(mesh.declared_normals) == 12


def test_get_triangle_recomputes_normal():
    flipped = quad_triangles()[0]._replace(normal=Vec3(0.0, 0.0, -1.0))
    mesh = StlMesh.from_triangles([flipped])
    t = mesh.get_triangle(0)
    assert t.normal == Vec3(0.0, 0.0, 1.0)
    assert (t.v0, t.v1, t.v2) == (flipped.v0, flipped.v1, flipped.v2)


def test_get_triangle_out_of_range(box):
    mesh = StlMesh.from_triangles(box)
    with pytest.raises(IndexError):
        mesh.get_triangle(12)
    with pytest.raises(IndexError):
        mesh.get_triangle(-1)


def test_queries_before_indexing_are_empty(simple_stl):
    mesh = StlMesh()
    assert mesh.read(simple_stl)
    assert mesh.triangle_count() == 0
    assert mesh.volume() == 0.0
    assert mesh.edge_counts() == {}
    assert not mesh.check_watertight(io.StringIO())


# =============================================================================
# VOLUME
# =============================================================================

def test_volume_single_triangle(simple_stl):
    assert StlMesh.volume_from_file(simple_stl) == pytest.approx(1.0 / 6.0, abs=1e-6)


def test_volume_from_missing_file():
    assert StlMesh.volume_from_file("nonexistent_does_not_exist.stl") is None


def test_volume_is_orientation_independent():
    outward = StlMesh.from_triangles(box_triangles(0.0, 2.0))
    inward = StlMesh.from_triangles(box_triangles(0.0, 2.0, inward=True))
    assert outward.volume() == pytest.approx(8.0)
    assert inward.volume() == pytest.approx(8.0)


def test_volume_hollow_box_subtracts_cavity():
    mesh = StlMesh.from_triangles(hollow_box_triangles())
    assert mesh.volume() == pytest.approx(26.0)


# =============================================================================
# WATERTIGHT
# =============================================================================

def test_closed_box_is_watertight(box):
    mesh = StlMesh.from_triangles(box)
    report = mesh.watertight_report()
    assert mesh.check_watertight(io.StringIO())
    assert report.unique_edges == 18
    assert (report.duplicate_triangles, report.boundary_edges,
            report.non_manifold_edges, report.degenerate_triangles) == (0, 0, 0, 0)


def test_open_box_has_boundary_edges(box):
    mesh = StlMesh.from_triangles(box[:10])
    report = mesh.watertight_report()
    assert report.boundary_edges == 4
    assert not report.watertight


def test_duplicate_triangle_detected_regardless_of_winding(box):
    t = box[0]
    mesh = StlMesh.from_triangles(box + [Triangle(t.normal, t.v0, t.v2, t.v1)])
    report = mesh.watertight_report()
    assert report.duplicate_triangles == 1
    assert report.non_manifold_edges == 3
    assert not report.watertight


def test_degenerate_triangle_detected(box):
    sliver = Triangle(Vec3(0.0, 0.0, 1.0), Vec3(0.0, 0.0, 0.0), Vec3(0.5, 0.0, 0.0), Vec3(1.0, 0.0, 0.0))
    report = StlMesh.from_triangles(box + [sliver]).watertight_report()
    assert report.degenerate_triangles == 1


def test_edge_accounting_invariant(box):
    for triangles in (box, box[:7], hollow_box_triangles(), quad_triangles()):
        mesh = StlMesh.from_triangles(triangles)
        assert sum(mesh.edge_counts().values()) == 3 * mesh.triangle_count()


def test_watertight_report_text(simple_stl):
    mesh = StlMesh()
    assert mesh.read(simple_stl)
    mesh.remove_duplicate_vertices()
    out = io.StringIO()
    assert not mesh.check_watertight(out)
    mesh.check_right_hand_winding(out)
    text = out.getvalue()
    assert "Watertight: no" in text
    assert "Edges: 3 unique; 3 boundary (count=1), 0 non-manifold (count>2)" in text
    assert "Vertices: 3 unique (from 1 triangles)" in text
    assert "Right-hand rule: 1 OK, 0 opposite winding" in text


# =============================================================================
# WINDING
# =============================================================================

def test_winding_flags_inverted_triangle(box):
    t = box[3]
    tampered = list(box)
    tampered[3] = Triangle(Vec3(-t.normal.x, -t.normal.y, -t.normal.z), t.v0, t.v1, t.v2)
    mesh = StlMesh.from_triangles(tampered)

    report = mesh.winding_report()
    assert report.consistent == 11
    assert [index for index, _ in report.inverted] == [3]
    assert report.inverted[0][1] == pytest.approx(-1.0)

    out = io.StringIO()
    mesh.check_right_hand_winding(out)
    assert "triangle 3 opposite winding" in out.getvalue()


def test_winding_ignores_ambiguous_normals(box):
    tampered = list(box)
    tampered[0] = box[0]._replace(normal=Vec3(0.0, 0.0, 0.0))
    report = StlMesh.from_triangles(tampered).winding_report()
    assert report.consistent == 11
    assert report.inverted == []


def test_winding_requires_aligned_normals(box):
    mesh = StlMesh.from_triangles(box)
    assert check_winding(mesh.vertices, mesh.indexed_triangles, mesh.declared_normals[:-1]) is None
    assert check_winding(mesh.vertices, mesh.indexed_triangles, np.zeros((0, 3))) is None
