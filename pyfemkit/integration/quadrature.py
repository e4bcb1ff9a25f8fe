"""pyfemkit.integration.quadrature
Quadrature rules for reference elements, parametrised by polynomial strength.

Every rule is returned as ``(weights, points)`` with ``points`` of shape
``(n_points, dim)``. Reference domains match :mod:`pyfemkit.fem.reference`:
``[-1,1]^d`` for segments, quads and hexes, the unit simplex for triangles and
tetrahedra, (triangle x [-1,1]) for prisms, and for pyramids the square
base [-1,1]^2 at z = -1 with the apex at (0, 0, 1).
"""
import logging
from functools import lru_cache
from numbers import Integral

import numpy as np
from numpy.polynomial.legendre import Legendre, leggauss

from pyfemkit.errors import QuadratureError

logger = logging.getLogger(__name__)

__all__ = [
    "gauss", "try_gauss_lobatto",
    "segment", "triangle", "quadrilateral", "tetrahedron", "hexahedron", "prism",
    "pyramid",
    "element_quadrature",
]


def _frozen(weights, points):
    weights = np.ascontiguousarray(weights, dtype=float)
    points = np.ascontiguousarray(points, dtype=float)
    weights.setflags(write=False)
    points.setflags(write=False)
    return weights, points


def _check_strength(strength) -> int:
    if isinstance(strength, bool) or not isinstance(strength, Integral) or strength < 0:
        raise QuadratureError(f"Unsupported quadrature strength {strength!r}; expected a non-negative integer.")
    return int(strength)


# -------------------------------------------------------------------------
# 1‑D rules
# -------------------------------------------------------------------------
@lru_cache(maxsize=None)
def gauss(num_points: int):
    """Gauss–Legendre rule on [-1,1], exact for degree 2*num_points - 1."""
    if num_points < 1:
        raise QuadratureError(f"Gauss rule needs at least one point, got {num_points}.")
    x, w = leggauss(num_points)
    return _frozen(w, x)


@lru_cache(maxsize=None)
def try_gauss_lobatto(num_points: int):
    """Gauss–Lobatto rule on [-1,1], or ``None`` if fewer than two points are requested."""
    if num_points < 2:
        return None
    n = num_points - 1
    interior = Legendre.basis(n).deriv().roots() if n > 1 else np.array([])
    x = np.concatenate(([-1.0], np.sort(np.real(interior)), [1.0]))
    Pn = Legendre.basis(n)(x)
    w = 2.0 / (n * (n + 1) * Pn ** 2)
    return _frozen(w, x)


def _num_gauss_points(degree: int) -> int:
    return degree // 2 + 1


def _tensor(weights_1d, points_1d, dim):
    grids = np.meshgrid(*([points_1d] * dim), indexing="ij")
    wgrids = np.meshgrid(*([weights_1d] * dim), indexing="ij")
    # first coordinate fastest
    pts = np.column_stack([g.transpose().ravel() for g in grids])
    wts = np.prod(np.column_stack([g.transpose().ravel() for g in wgrids]), axis=1)
    return wts, pts


def _gauss01(num_points: int):
    w, x = gauss(num_points)
    return 0.5 * w, 0.5 * (x + 1.0)


# -------------------------------------------------------------------------
# Total-order rules
# -------------------------------------------------------------------------
@lru_cache(maxsize=None)
def segment(strength: int):
    s = _check_strength(strength)
    w, x = gauss(_num_gauss_points(s))
    return _frozen(w, x[:, None])


@lru_cache(maxsize=None)
def quadrilateral(strength: int):
    s = _check_strength(strength)
    w, x = gauss(_num_gauss_points(s))
    return _frozen(*_tensor(w, x, 2))


@lru_cache(maxsize=None)
def hexahedron(strength: int):
    s = _check_strength(strength)
    w, x = gauss(_num_gauss_points(s))
    return _frozen(*_tensor(w, x, 3))


@lru_cache(maxsize=None)
def triangle(strength: int):
    """Collapsed (Duffy) rule: (u, v) ∈ [0,1]² → (u, v(1-u)), weight factor (1-u)."""
    s = _check_strength(strength)
    wu, u = _gauss01(_num_gauss_points(s + 1))
    pts, wts = [], []
    for i, ui in enumerate(u):
        for j, vj in enumerate(u):
            pts.append([ui, vj * (1.0 - ui)])
            wts.append(wu[i] * wu[j] * (1.0 - ui))
    return _frozen(wts, pts)


@lru_cache(maxsize=None)
def tetrahedron(strength: int):
    """Collapsed rule: (u,v,w) → (u, v(1-u), w(1-u)(1-v)), weight factor (1-u)²(1-v)."""
    s = _check_strength(strength)
    wu, u = _gauss01(_num_gauss_points(s + 2))
    pts, wts = [], []
    for i, ui in enumerate(u):
        for j, vj in enumerate(u):
            for k, wk in enumerate(u):
                pts.append([ui, vj * (1.0 - ui), wk * (1.0 - ui) * (1.0 - vj)])
                wts.append(wu[i] * wu[j] * wu[k] * (1.0 - ui) ** 2 * (1.0 - vj))
    return _frozen(wts, pts)


@lru_cache(maxsize=None)
def prism(strength: int):
    s = _check_strength(strength)
    wt, pt = triangle(s)
    wz, z = gauss(_num_gauss_points(s))
    pts = [[p[0], p[1], zk] for zk in z for p in pt]
    wts = [wq * wk for wk in wz for wq in wt]
    return _frozen(wts, pts)


@lru_cache(maxsize=None)
def pyramid(strength: int):
    """Collapsed rule: (a, b, t) → ((1-t)a, (1-t)b, 2t - 1), weight factor 2(1-t)²."""
    s = _check_strength(strength)
    wa, a = gauss(_num_gauss_points(s))
    wt, t = _gauss01(_num_gauss_points(s + 2))
    pts, wts = [], []
    for k, tk in enumerate(t):
        for j, bj in enumerate(a):
            for i, ai in enumerate(a):
                pts.append([(1.0 - tk) * ai, (1.0 - tk) * bj, 2.0 * tk - 1.0])
                wts.append(2.0 * wa[i] * wa[j] * wt[k] * (1.0 - tk) ** 2)
    return _frozen(wts, pts)


_RULES = {
    "segment": segment,
    "tri": triangle,
    "quad": quadrilateral,
    "tet": tetrahedron,
    "hex": hexahedron,
    "prism": prism,
    "pyramid": pyramid,
}


def element_quadrature(element_type: str, strength: int):
    if element_type not in _RULES:
        raise KeyError(element_type)
    weights, points = _RULES[element_type](strength)
    logger.debug(f"{element_type} rule of strength {strength}: {len(weights)} points")
    return weights, points
