# pyfemkit.fem.reference
"""
Order-agnostic reference-element factory.
"""
from functools import lru_cache

import numpy as np

from pyfemkit.fem.reference.simplex_pn import simplex_pn
from pyfemkit.fem.reference.tensor_qn import tensor_qn

__all__ = ["Ref", "get_reference", "ELEMENT_DIMS", "SIMPLEX_TYPES", "TENSOR_TYPES"]

SIMPLEX_TYPES = {"tri": 2, "tet": 3}
TENSOR_TYPES = {"segment": 1, "quad": 2, "hex": 3}
ELEMENT_DIMS = {**SIMPLEX_TYPES, **TENSOR_TYPES}


def _project_simplex(xi):
    """Euclidean projection onto {xi >= 0, sum(xi) <= 1}."""
    x = np.maximum(xi, 0.0)
    if x.sum() <= 1.0:
        return x
    # onto the face sum(xi) == 1
    u = np.sort(xi)[::-1]
    css = np.cumsum(u) - 1.0
    k = np.arange(1, len(u) + 1)
    rho = np.nonzero(u - css / k > 0)[0][-1]
    theta = css[rho] / (rho + 1.0)
    return np.maximum(xi - theta, 0.0)


class Ref:
    def __init__(self, element_type, dim, nodes, shape_lambda, deriv_lambdas):
        self.element_type = element_type
        self.dim = dim
        self.nodes = np.array(nodes, dtype=float)
        self.num_nodes = len(nodes)
        self.shape_lambda = shape_lambda
        self.deriv_lambdas = deriv_lambdas
        self.is_simplex = element_type in SIMPLEX_TYPES

    @staticmethod
    def _key(xi):
        return tuple(float(c) for c in np.ravel(xi))

    def shape(self, xi):
        return self._shape(self._key(xi))

    def derivative(self, xi, alpha):
        return self._derivative(self._key(xi), tuple(alpha))

    def grad(self, xi):
        """Reference gradients, shape (n_loc, dim)."""
        return self._grad(self._key(xi))

    @lru_cache(maxsize=None)
    def _shape(self, xi):
        vals = np.asarray(self.shape_lambda(*xi), dtype=float).ravel()
        vals.setflags(write=False)
        return vals

    @lru_cache(maxsize=None)
    def _derivative(self, xi, alpha):
        if alpha not in self.deriv_lambdas:
            raise ValueError(f"Derivative order {alpha} not computed for {self.element_type}.")
        vals = np.broadcast_to(
            np.asarray(self.deriv_lambdas[alpha](*xi), dtype=float).ravel(), (self.num_nodes,)
        ).copy()
        vals.setflags(write=False)
        return vals

    @lru_cache(maxsize=None)
    def _grad(self, xi):
        cols = []
        for k in range(self.dim):
            alpha = tuple(1 if i == k else 0 for i in range(self.dim))
            cols.append(self._derivative(xi, alpha))
        G = np.column_stack(cols)
        G.setflags(write=False)
        return G

    def centroid(self) -> np.ndarray:
        if self.is_simplex:
            return np.full(self.dim, 1.0 / (self.dim + 1))
        return np.zeros(self.dim)

    def contains(self, xi, tol: float = 1e-12) -> bool:
        x = np.asarray(xi, dtype=float)
        if self.is_simplex:
            return bool(np.all(x >= -tol) and x.sum() <= 1.0 + tol)
        return bool(np.all(np.abs(x) <= 1.0 + tol))

    def project(self, xi) -> np.ndarray:
        """Closest point of the reference domain to ``xi`` (in reference metric)."""
        x = np.asarray(xi, dtype=float)
        if self.is_simplex:
            return _project_simplex(x)
        return np.clip(x, -1.0, 1.0)

    def __repr__(self):
        return f"<Ref {self.element_type} dim={self.dim} n_loc={self.num_nodes}>"


@lru_cache(maxsize=None)
def get_reference(element_type: str, poly_order: int = 1):
    if element_type in SIMPLEX_TYPES:
        dim = SIMPLEX_TYPES[element_type]
        nodes, shape_l, deriv_lambdas = simplex_pn(dim, poly_order)
    elif element_type in TENSOR_TYPES:
        dim = TENSOR_TYPES[element_type]
        nodes, shape_l, deriv_lambdas = tensor_qn(dim, poly_order)
    else:
        raise KeyError(element_type)
    return Ref(element_type, dim, nodes, shape_l, deriv_lambdas)
