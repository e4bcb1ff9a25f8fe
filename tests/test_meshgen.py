import numpy as np

from pyfemkit.utils.meshgen import (
    structured_hex,
    structured_quad,
    structured_segments,
    structured_tets,
    structured_triangles,
)


def test_structured_quad_layout():
    vertices, quads = structured_quad(2.0, 1.0, nx=2, ny=1)
    assert vertices.shape == (6, 2)
    assert np.allclose(vertices[:3], [[0, 0], [1, 0], [2, 0]])
    assert np.array_equal(quads, [[0, 1, 3, 4], [1, 2, 4, 5]])


def test_higher_order_and_offset():
    vertices, quads = structured_quad(1.0, 1.0, nx=2, ny=2, poly_order=2, offset=(1.0, -1.0))
    assert vertices.shape == (25, 2)
    assert quads.shape == (4, 9)
    assert np.allclose(vertices.min(axis=0), [1.0, -1.0])
    vertices, segs = structured_segments(3.0, nx=3, offset=1.0)
    assert np.allclose(vertices[:, 0], [1, 2, 3, 4])
    assert np.array_equal(segs, [[0, 1], [1, 2], [2, 3]])
    vertices, hexes = structured_hex(1.0, 1.0, 1.0, nx=1, ny=2, nz=1, poly_order=2)
    assert vertices.shape == (3 * 5 * 3, 3)
    assert hexes.shape == (2, 27)


def test_triangles_counter_clockwise():
    vertices, tris = structured_triangles(1.0, 2.0, nx=3, ny=2)
    assert tris.shape == (12, 3)
    a, b, c = (vertices[tris[:, k]] for k in range(3))
    u, v = b - a, c - a
    areas = 0.5 * (u[:, 0] * v[:, 1] - u[:, 1] * v[:, 0])
    assert np.all(areas > 0)
    assert np.isclose(areas.sum(), 2.0)


def test_tets_positively_oriented():
    vertices, tets = structured_tets(1.0, 2.0, 1.0, nx=2, ny=1, nz=2)
    assert tets.shape == (24, 4)
    X = vertices[tets]
    vols = np.linalg.det(X[:, 1:] - X[:, :1]) / 6.0
    assert np.all(vols > 0)
    assert np.isclose(vols.sum(), 2.0)
