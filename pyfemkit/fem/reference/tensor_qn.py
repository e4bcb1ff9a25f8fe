from functools import lru_cache
from itertools import product

import numpy as np
import sympy as sp


@lru_cache(maxsize=None)
def _lagrange_basis_1d(n: int, max_deriv_order: int):
    """Return 1D Lagrange basis + derivatives as NUMPY-callable lambdas."""
    x = sp.symbols('x')
    nodes = np.linspace(-1.0, 1.0, n + 1)
    dL = {k: [] for k in range(max_deriv_order + 1)}
    for i, xi in enumerate(nodes):
        num = 1
        den = 1.0
        for j, xj in enumerate(nodes):
            if i == j:
                continue
            num *= (x - xj)
            den *= (xi - xj)
        Li = sp.expand(num / den)
        for k in range(max_deriv_order + 1):
            dL[k].append(sp.lambdify(x, sp.diff(Li, x, k), 'numpy'))
    return nodes, dL


def _eval_1d(fns, z):
    return np.array([f(z) for f in fns], dtype=float)


@lru_cache(maxsize=None)
def tensor_qn(dim: int, n: int, max_deriv_order: int = 1):
    """
    Tensor-product Q_n on [-1,1]^dim.

    Stacking order is lexicographic with the first coordinate innermost, so
    for Q1 quads the nodes are (-1,-1), (1,-1), (-1,1), (1,1).

    Returns: (nodes, shape_fn, deriv_fns) where
      shape_fn(*xi) -> ((n+1)^dim,)
      deriv_fns[alpha](*xi) -> ((n+1)^dim,), 0 < sum(alpha) <= max_deriv_order
    """
    if n < 1:
        raise ValueError("Polynomial order n must be positive.")
    nodes1d, dL = _lagrange_basis_1d(n, max_deriv_order)

    def _combine(factors):
        # factors[k] are the 1D values along axis k; last axis is outermost
        out = factors[-1]
        for f in reversed(factors[:-1]):
            out = np.outer(out, f).reshape(-1)
        return out

    def shape(*xi):
        return _combine([_eval_1d(dL[0], z) for z in xi])

    derivs = {}
    for alpha in product(range(max_deriv_order + 1), repeat=dim):
        if not 0 < sum(alpha) <= max_deriv_order:
            continue
        def make(alpha=alpha):
            def d(*xi):
                return _combine([_eval_1d(dL[a], z) for a, z in zip(alpha, xi)])
            return d
        derivs[alpha] = make()

    nodes = [tuple(float(nodes1d[i]) for i in reversed(idx))
             for idx in product(range(n + 1), repeat=dim)]
    return nodes, shape, derivs
