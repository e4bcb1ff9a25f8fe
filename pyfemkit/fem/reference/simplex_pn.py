from functools import lru_cache
from itertools import product

import sympy as sp


def _lattice(dim: int, n: int):
    """Multi-indices with total degree <= n, first coordinate varying fastest."""
    out = []
    for rev in product(range(n + 1), repeat=dim):
        if sum(rev) <= n:
            out.append(tuple(reversed(rev)))
    return out


@lru_cache(maxsize=None)
def simplex_pn(dim: int, n: int, max_deriv_order: int = 1):
    """
    Return lambdified Lagrange P_n shape functions on the reference simplex.

    The reference simplex is spanned by the origin and the unit vectors, so for
    ``dim == 2`` this is the triangle (0,0)-(1,0)-(0,1) and for ``dim == 3`` the
    tetrahedron with vertices (0,0,0), (1,0,0), (0,1,0), (0,0,1). For ``n == 1``
    the basis is ordered like those vertices.

    Returns:
        tuple: (nodes, shape_lambda, deriv_lambdas)
            - nodes: list of reference node coordinates (floats).
            - shape_lambda: callable ``f(*xi)`` -> column of basis values.
            - deriv_lambdas: dict keyed by multi-index ``alpha`` (len ``dim``).
    """
    if n < 1:
        raise ValueError("Polynomial order n must be positive.")
    if dim < 1:
        raise ValueError("Simplex dimension must be positive.")
    syms = sp.symbols(f"x0:{dim}")

    lattice = _lattice(dim, n)
    nodes_sym = [tuple(sp.Rational(i, n) for i in idx) for idx in lattice]
    # Same exponent set spans P_n
    monomials = [sp.Mul(*[s ** p for s, p in zip(syms, idx)]) for idx in lattice]

    num_nodes = len(nodes_sym)
    V = sp.zeros(num_nodes, num_nodes)
    for i, node in enumerate(nodes_sym):
        subs = dict(zip(syms, node))
        for j, m in enumerate(monomials):
            V[i, j] = m.subs(subs)

    try:
        coeffs = V.T.inv()
    except ValueError as err:
        raise RuntimeError(f"Vandermonde matrix is singular for simplex P{n} in {dim}D.") from err

    mono_col = sp.Matrix(monomials)
    basis = [sp.expand((coeffs.row(k) * mono_col)[0, 0]) for k in range(num_nodes)]

    multi_indices = [a for a in product(range(max_deriv_order + 1), repeat=dim)
                     if 0 < sum(a) <= max_deriv_order]
    deriv_lambdas = {}
    for alpha in multi_indices:
        exprs = []
        for phi in basis:
            d = phi
            for s, order in zip(syms, alpha):
                if order:
                    d = sp.diff(d, s, order)
            exprs.append(d)
        deriv_lambdas[alpha] = sp.lambdify(syms, sp.Matrix(exprs), "numpy")

    shape_lambda = sp.lambdify(syms, sp.Matrix(basis), "numpy")
    nodes = [tuple(float(c) for c in node) for node in nodes_sym]
    return nodes, shape_lambda, deriv_lambdas
