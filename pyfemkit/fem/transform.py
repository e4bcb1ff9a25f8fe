"""pyfemkit.fem.transform
Reference → physical mapping for isoparametric elements.
"""
from itertools import combinations

import numpy as np
from scipy.optimize import minimize

INVERSE_MAP_TOL = 1e-10
INVERSE_MAP_MAXITER = 50
_FACE_TOL = 1e-12


def _element_coords(mesh, elem_id):
    return mesh.element_vertices(elem_id)


def x_mapping(mesh, elem_id, xi):
    """Physical point of reference coordinates ``xi``, shape (D,)."""
    N = mesh.reference.shape(xi)
    return N @ _element_coords(mesh, elem_id)


def jacobian(mesh, elem_id, xi):
    """dx/dxi, shape (D, d)."""
    dN = mesh.reference.grad(xi)              # (n_loc, d)
    return _element_coords(mesh, elem_id).T @ dN


def det_jacobian(mesh, elem_id, xi):
    """Determinant of the Jacobian (generalised to sqrt(det(J^T J)) for embedded elements)."""
    J = jacobian(mesh, elem_id, xi)
    if J.shape[0] == J.shape[1]:
        return float(np.linalg.det(J))
    return float(np.sqrt(np.linalg.det(J.T @ J)))


def map_grad_scalar(mesh, elem_id, grad_ref, xi):
    """Push reference gradients (n_loc, d) forward to physical gradients (n_loc, D)."""
    J = jacobian(mesh, elem_id, xi)
    return grad_ref @ np.linalg.pinv(J)


def inverse_mapping(mesh, elem_id, x, tol=INVERSE_MAP_TOL, maxiter=INVERSE_MAP_MAXITER):
    """Newton iteration for the reference coordinates of physical point ``x``."""
    x = np.asarray(x, dtype=float)
    xi = mesh.reference.centroid()
    for it in range(maxiter):
        X = x_mapping(mesh, elem_id, xi)
        J = jacobian(mesh, elem_id, xi)
        try:
            delta = np.linalg.solve(J, x - X)
        except np.linalg.LinAlgError:
            raise ValueError(f"Jacobian singular at iteration {it} for elem {elem_id}, x={x}")
        xi = xi + delta
        if np.linalg.norm(delta) < tol:
            break
    else:
        raise ValueError(f"Inverse mapping did not converge after {maxiter} iterations for elem {elem_id}, "
                         f"x={x}, residual={np.linalg.norm(x - X)}")
    return xi


def _closest_on_affine_simplex(X, x):
    """
    Exact closest point of the simplex with vertices ``X`` (n, D) to ``x``.

    The minimiser lies in the relative interior of exactly one face, so every
    face is tried and the feasible candidate nearest to ``x`` is kept. Returns
    barycentric coordinates and the distance.
    """
    n = X.shape[0]
    best_lam, best_dist = None, np.inf
    for size in range(1, n + 1):
        for face in combinations(range(n), size):
            base = X[face[0]]
            lam = np.zeros(n)
            if size == 1:
                lam[face[0]] = 1.0
            else:
                A = (X[list(face[1:])] - base).T
                mu, *_ = np.linalg.lstsq(A, x - base, rcond=None)
                if np.any(mu < -_FACE_TOL) or mu.sum() > 1.0 + _FACE_TOL:
                    continue
                lam[face[0]] = 1.0 - mu.sum()
                lam[list(face[1:])] = mu
            dist = float(np.linalg.norm(x - lam @ X))
            if dist < best_dist:
                best_lam, best_dist = lam, dist
    return best_lam, best_dist


def closest_reference_point(mesh, elem_id, x, tol=INVERSE_MAP_TOL, maxiter=INVERSE_MAP_MAXITER):
    """
    Reference point of the element closest to ``x`` and its physical distance.

    Linear simplices are solved exactly by face enumeration. Other elements use
    projected Gauss-Newton (a least-squares step followed by a projection onto
    the reference domain), which is the usual inverse mapping for points inside
    the element. When the point lies outside, that estimate is refined by a
    bound-constrained minimisation of the physical distance.
    """
    ref = mesh.reference
    x = np.asarray(x, dtype=float)
    if ref.is_simplex and mesh.poly_order == 1:
        lam, dist = _closest_on_affine_simplex(_element_coords(mesh, elem_id), x)
        # P1 vertex k > 0 sits at the k-th reference unit vector
        return ref.project(lam[1:]), dist

    xi = ref.centroid()
    for _ in range(maxiter):
        r = x - x_mapping(mesh, elem_id, xi)
        J = jacobian(mesh, elem_id, xi)
        delta, *_ = np.linalg.lstsq(J, r, rcond=None)
        xi_new = ref.project(xi + delta)
        step = np.linalg.norm(xi_new - xi)
        xi = xi_new
        if step < tol:
            break
    dist = float(np.linalg.norm(x - x_mapping(mesh, elem_id, xi)))
    if dist > tol and not ref.is_simplex:
        xi, dist = _refine_outside(mesh, elem_id, x, xi, dist)
    return xi, dist


def _refine_outside(mesh, elem_id, x, xi0, dist0):
    def objective(xi):
        r = x_mapping(mesh, elem_id, xi) - x
        return 0.5 * float(r @ r), jacobian(mesh, elem_id, xi).T @ r

    res = minimize(objective, xi0, jac=True, method="L-BFGS-B",
                   bounds=[(-1.0, 1.0)] * mesh.reference.dim,
                   options={"ftol": 1e-15, "gtol": 1e-12})
    xi = mesh.reference.project(res.x)
    dist = float(np.linalg.norm(x - x_mapping(mesh, elem_id, xi)))
    if dist < dist0:
        return xi, dist
    return xi0, dist0
