"""pyfemkit.utils.meshgen
Structured mesh generators for quick tests.

Every generator returns ``(vertices, connectivity)``. Grid nodes are numbered
lexicographically with the x index running fastest, and element node order
matches the reference elements in :mod:`pyfemkit.fem.reference`.
"""
from typing import Optional, Sequence, Tuple

import numba
import numpy as np

__all__ = [
    "structured_segments",
    "structured_quad",
    "structured_triangles",
    "structured_hex",
    "structured_tets",
]

# Kuhn subdivision of the unit cube into six tetrahedra. Corner ``c`` of the
# cube sits at (c & 1, (c >> 1) & 1, (c >> 2) & 1). Each row walks from corner
# 0 to corner 7 along the axes of one permutation; rows of odd permutations
# have their middle vertices swapped so that all six are positively oriented.
_KUHN_TETS = np.array([
    [0, 1, 3, 7],   # x, y, z
    [0, 3, 2, 7],   # y, x, z  (odd)
    [0, 5, 1, 7],   # x, z, y  (odd)
    [0, 4, 5, 7],   # z, x, y
    [0, 2, 6, 7],   # y, z, x
    [0, 6, 4, 7],   # z, y, x  (odd)
], dtype=np.int64)


def _grid_axes(lengths, counts, poly_order, offset):
    if poly_order < 1:
        raise ValueError(f"Polynomial order must be a positive integer, got {poly_order}.")
    for n in counts:
        if n < 1:
            raise ValueError(f"Element counts must be positive, got {tuple(counts)}.")
    if offset is None:
        offset = np.zeros(len(lengths))
    offset = np.asarray(offset, dtype=float)
    if offset.shape != (len(lengths),):
        raise ValueError(f"Offset must have {len(lengths)} components, got {offset.shape}.")
    return [np.linspace(o, o + L, poly_order * n + 1) for L, n, o in zip(lengths, counts, offset)]


def _grid_vertices(axes) -> np.ndarray:
    # indexing="ij" on the reversed axes keeps the first coordinate fastest
    mesh = np.meshgrid(*axes[::-1], indexing="ij")
    return np.column_stack([m.ravel() for m in mesh[::-1]])


@numba.jit(nopython=True, cache=True)
def _tensor_connectivity(counts, order):
    dim = counts.shape[0]
    n_glob = counts * order + 1
    n_elem = 1
    for d in range(dim):
        n_elem *= counts[d]
    n_loc_1d = order + 1
    n_loc = n_loc_1d ** dim
    elements = np.empty((n_elem, n_loc), dtype=np.int64)
    start = np.empty(dim, dtype=np.int64)
    local = np.empty(dim, dtype=np.int64)
    for e in range(n_elem):
        rem = e
        for d in range(dim):
            start[d] = (rem % counts[d]) * order
            rem //= counts[d]
        for a in range(n_loc):
            rem = a
            for d in range(dim):
                local[d] = rem % n_loc_1d
                rem //= n_loc_1d
            gid = 0
            stride = 1
            for d in range(dim):
                gid += (start[d] + local[d]) * stride
                stride *= n_glob[d]
            elements[e, a] = gid
    return elements


def _structured_tensor(lengths, counts, poly_order, offset):
    axes = _grid_axes(lengths, counts, poly_order, offset)
    vertices = _grid_vertices(axes)
    elements = _tensor_connectivity(np.asarray(counts, dtype=np.int64), int(poly_order))
    return vertices, elements


def structured_segments(L: float, *, nx: int, poly_order: int = 1,
                        offset: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Uniform partition of ``[offset, offset + L]`` into ``nx`` segments."""
    return _structured_tensor((L,), (nx,), poly_order, None if offset is None else (offset,))


def structured_quad(Lx: float, Ly: float, *, nx: int, ny: int, poly_order: int = 1,
                    offset: Optional[Sequence[float]] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    ``nx`` by ``ny`` grid of Qn quadrilaterals on the rectangle ``[0, Lx] x [0, Ly]``.

    Element nodes are lexicographic, so for Q1 the order is bottom-left,
    bottom-right, top-left, top-right.
    """
    return _structured_tensor((Lx, Ly), (nx, ny), poly_order, offset)


def structured_hex(Lx: float, Ly: float, Lz: float, *, nx: int, ny: int, nz: int,
                   poly_order: int = 1,
                   offset: Optional[Sequence[float]] = None) -> Tuple[np.ndarray, np.ndarray]:
    return _structured_tensor((Lx, Ly, Lz), (nx, ny, nz), poly_order, offset)


def structured_triangles(Lx: float, Ly: float, *, nx: int, ny: int,
                         offset: Optional[Sequence[float]] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    P1 triangles, two per grid cell, all counter-clockwise.

    Each cell (bl, br, tl, tr) is split along the diagonal bl-tr into
    (bl, br, tr) and (bl, tr, tl).
    """
    vertices, quads = structured_quad(Lx, Ly, nx=nx, ny=ny, poly_order=1, offset=offset)
    bl, br, tl, tr = quads.T
    lower = np.column_stack([bl, br, tr])
    upper = np.column_stack([bl, tr, tl])
    triangles = np.empty((2 * len(quads), 3), dtype=np.int64)
    triangles[0::2] = lower
    triangles[1::2] = upper
    return vertices, triangles


def structured_tets(Lx: float, Ly: float, Lz: float, *, nx: int, ny: int, nz: int,
                    offset: Optional[Sequence[float]] = None) -> Tuple[np.ndarray, np.ndarray]:
    """P1 tetrahedra, six per grid cell (Kuhn subdivision), all positively oriented."""
    vertices, hexes = structured_hex(Lx, Ly, Lz, nx=nx, ny=ny, nz=nz, poly_order=1, offset=offset)
    tets = hexes[:, _KUHN_TETS].reshape(-1, 4)
    return vertices, tets
