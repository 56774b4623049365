#!/usr/bin/env python3
"""
Tests for the mesh cleaning pass.
"""

import io

from stl_cavity.cleaning import clean_mesh
from stl_cavity.geometry_utils import Triangle, Vec3


A = Vec3(1.0, 0.0, 0.0)
B = Vec3(0.0, 1.0, 0.0)
C = Vec3(0.0, 0.0, 1.0)
UNSET = Vec3(0.0, 0.0, 0.0)


def test_identical_triangles_collapse():
    t = Triangle(UNSET, A, B, C)
    assert len(clean_mesh([t, t])) == 1


def test_duplicates_match_regardless_of_winding():
    out = io.StringIO()
    cleaned = clean_mesh([Triangle(UNSET, A, B, C), Triangle(UNSET, A, C, B)], out)
    assert cleaned == [clean_mesh([Triangle(UNSET, A, B, C)])[0]]
    assert "Duplicate triangles removed: 1" in out.getvalue()


def test_coincident_vertices_are_dropped():
    out = io.StringIO()
    assert clean_mesh([Triangle(UNSET, A, A, B)], out) == []
    assert "Degenerate triangles removed: 1" in out.getvalue()
    assert "Triangles before: 1  after: 0" in out.getvalue()


def test_empty_input_reports_no_triangles():
    out = io.StringIO()
    assert clean_mesh([], out) == []
    assert out.getvalue() == "No triangles.\n"


def test_normals_are_recomputed():
    cleaned = clean_mesh([Triangle(Vec3(0.0, 0.0, -1.0), Vec3(0.0, 0.0, 0.0),
                                   Vec3(1.0, 0.0, 0.0), Vec3(0.0, 1.0, 0.0))])
    assert cleaned[0].normal == Vec3(0.0, 0.0, 1.0)


def test_collinear_triangle_is_dropped():
    sliver = Triangle(UNSET, Vec3(0.0, 0.0, 0.0), Vec3(1.0, 0.0, 0.0), Vec3(2.0, 0.0, 0.0))
    assert clean_mesh([sliver]) == []


def test_non_manifold_edges_reported_not_removed():
    fin = [Triangle(UNSET, Vec3(0.0, 0.0, 0.0), Vec3(1.0, 0.0, 0.0), apex)
           for apex in (Vec3(0.0, 1.0, 0.0), Vec3(0.0, -1.0, 0.0), Vec3(0.0, 0.0, 1.0))]
    out = io.StringIO()
    assert len(clean_mesh(fin, out)) == 3
    assert "Non-manifold edges (shared by >2 triangles): 1" in out.getvalue()


def test_cleaning_is_idempotent(hollow_box):
    once = clean_mesh(hollow_box + hollow_box[:3])
    twice = clean_mesh(once)
    assert len(once) == 24
    assert twice == once


def test_vertex_merge_counts(box):
    out = io.StringIO()
    clean_mesh(box, out)
    assert "Vertices: 36 refs -> 8 unique (merged 28 duplicate positions)" in out.getvalue()
