from math import factorial

import numpy as np
import pytest

from pyfemkit.errors import QuadratureError
from pyfemkit.integration import quadrature as q


def test_constant_volume():
    exact = {"segment": 2.0, "tri": 0.5, "quad": 4.0, "tet": 1 / 6, "hex": 8.0, "prism": 1.0,
             "pyramid": 8 / 3}
    for et, vol in exact.items():
        wts, pts = q.element_quadrature(et, 3)
        assert np.isclose(wts.sum(), vol, rtol=1e-12)
        assert pts.shape == (len(wts), {"segment": 1, "tri": 2, "quad": 2}.get(et, 3))


@pytest.mark.parametrize("strength", range(0, 7))
def test_triangle_monomials(strength):
    wts, pts = q.triangle(strength)
    for a in range(strength + 1):
        for b in range(strength + 1 - a):
            exact = factorial(a) * factorial(b) / factorial(a + b + 2)
            assert np.isclose(wts @ (pts[:, 0] ** a * pts[:, 1] ** b), exact, rtol=1e-12)


@pytest.mark.parametrize("strength", range(0, 5))
def test_tetrahedron_monomials(strength):
    wts, pts = q.tetrahedron(strength)
    x, y, z = pts.T
    for a in range(strength + 1):
        for b in range(strength + 1 - a):
            for c in range(strength + 1 - a - b):
                exact = factorial(a) * factorial(b) * factorial(c) / factorial(a + b + c + 3)
                assert np.isclose(wts @ (x ** a * y ** b * z ** c), exact, rtol=1e-12)


def test_pyramid_moments():
    wts, pts = q.pyramid(4)
    x, y, z = pts.T
    assert np.all(z > -1.0) and np.all(z < 1.0)
    assert np.all(np.abs(x) < 1.0 - 0.5 * (z + 1.0))
    assert np.isclose(wts.sum(), 8 / 3, rtol=1e-12)
    assert np.isclose(wts @ x, 0.0, atol=1e-14)
    # centroid sits a quarter of the height above the base
    assert np.isclose(wts @ z, -4 / 3, rtol=1e-12)
    assert np.isclose(wts @ z ** 2, 16 / 15, rtol=1e-12)
    assert np.isclose(wts @ x ** 2, 8 / 15, rtol=1e-12)
    assert np.isclose(wts @ (x ** 2 * y ** 2), 8 / 63, rtol=1e-12)
    assert np.isclose(wts @ (x ** 2 * z ** 2), 88 / 315, rtol=1e-12)


def test_quadrilateral_exact_for_total_degree():
    wts, pts = q.quadrilateral(5)
    # ∫ x^4 y^0 over [-1,1]^2 = 2/5 * 2
    assert np.isclose(wts @ pts[:, 0] ** 4, 0.8)
    assert np.isclose(wts @ (pts[:, 0] ** 2 * pts[:, 1] ** 2), 4 / 9)


def test_gauss_and_lobatto():
    w, x = q.gauss(3)
    assert np.isclose(w @ x ** 4, 2 / 5)
    assert q.try_gauss_lobatto(1) is None
    w, x = q.try_gauss_lobatto(4)
    assert np.isclose(x[0], -1.0) and np.isclose(x[-1], 1.0)
    # exact up to degree 2n - 3
    assert np.isclose(w @ x ** 4, 2 / 5)
    with pytest.raises(QuadratureError):
        q.gauss(0)


def test_rules_are_read_only():
    wts, pts = q.triangle(2)
    with pytest.raises(ValueError):
        wts[0] = 1.0


def test_bad_requests():
    with pytest.raises(QuadratureError):
        q.triangle(-1)
    with pytest.raises(QuadratureError):
        q.quadrilateral(1.5)
    with pytest.raises(KeyError):
        q.element_quadrature("wedge", 2)
