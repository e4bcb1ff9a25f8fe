"""pyfemkit.interpolation.interpolator
Point location and field evaluation on a finite element space.
"""
import logging
import threading
from dataclasses import dataclass
from typing import MutableSequence, Optional

import numpy as np

from pyfemkit.core.dims import SpatialDim
from pyfemkit.errors import ConstructionError
from pyfemkit.fem.space import FiniteElementSpace
from pyfemkit.interpolation.spatial_index import SUPPORTED_INDEX_DIMS, BoundingBoxIndex

logger = logging.getLogger(__name__)

__all__ = ["Interpolator", "TIE_TOL"]

TIE_TOL = 1e-12


@dataclass
class _IndexSlot:
    dim: SpatialDim
    index: Optional[BoundingBoxIndex] = None


class Interpolator(FiniteElementSpace):
    """
    Wraps a finite element space and answers "which element, and where in it?"
    queries for arbitrary points.

    All connectivity and basis queries are forwarded to the wrapped space. The
    bounding-box index is built on the first point query and kept for the
    lifetime of the interpolator.

    The wrapped space must not change after the interpolator is created: the
    index is never rebuilt, so a modified mesh gives stale results.
    """

    def __init__(self, space):
        self.space = space
        dim = SpatialDim.from_value(space.geometry_dim, supported=SUPPORTED_INDEX_DIMS)
        if space.num_geometries() == 0:
            raise ConstructionError("Cannot interpolate on a space without elements")
        self._slot = _IndexSlot(dim)
        self._lock = threading.Lock()

    @classmethod
    def from_space(cls, space) -> "Interpolator":
        return cls(space)

    # --- lazy index -----------------------------------------------------------
    @property
    def is_indexed(self) -> bool:
        return self._slot.index is not None

    def _index(self) -> BoundingBoxIndex:
        slot = self._slot
        if slot.index is None:
            with self._lock:
                if slot.index is None:
                    boxes = [self.space.element_bounding_box(i) for i in range(self.space.num_geometries())]
                    index = BoundingBoxIndex(boxes)
                    if index.dim != slot.dim:
                        raise ConstructionError(f"Index dimension {int(index.dim)} differs from space dimension {int(slot.dim)}")
                    slot.index = index
        return slot.index

    # --- delegation -----------------------------------------------------------
    def solution_dim(self) -> int:
        return self.space.solution_dim()

    @property
    def geometry_dim(self) -> int:
        return self.space.geometry_dim

    @property
    def reference_dim(self) -> int:
        return self.space.reference_dim

    def num_elements(self) -> int:
        return self.space.num_elements()

    def num_nodes(self) -> int:
        return self.space.num_nodes()

    def element_node_count(self, element_index: int) -> int:
        return self.space.element_node_count(element_index)

    def populate_element_nodes(self, output, element_index: int):
        self.space.populate_element_nodes(output, element_index)

    def populate_element_basis(self, element_index, basis_values, reference_coords):
        self.space.populate_element_basis(element_index, basis_values, reference_coords)

    def populate_element_gradients(self, element_index, gradients, reference_coords):
        self.space.populate_element_gradients(element_index, gradients, reference_coords)

    def element_reference_jacobian(self, element_index, reference_coords):
        return self.space.element_reference_jacobian(element_index, reference_coords)

    def map_element_reference_coords(self, element_index, reference_coords):
        return self.space.map_element_reference_coords(element_index, reference_coords)

    def diameter(self, element_index):
        return self.space.diameter(element_index)

    def element_bounding_box(self, element_index):
        return self.space.element_bounding_box(element_index)

    def closest_reference_point(self, element_index, point):
        return self.space.closest_reference_point(element_index, point)

    def num_geometries(self) -> int:
        return self.space.num_geometries()

    # --- point location -------------------------------------------------------
    def find_closest_element_and_reference_coords(self, point):
        """
        Closest element to ``point`` and the matching reference coordinates.

        Same as :meth:`populate_closest_element_and_reference_coords` applied to
        a single point.
        """
        result = [None]
        self.populate_closest_element_and_reference_coords([point], result)
        return result[0]

    def populate_closest_element_and_reference_coords(self, points, result: MutableSequence):
        """
        For every point, store ``(element_index, reference_coords)`` in ``result``.

        Elements are visited in order of bounding-box distance. The element
        whose geometry is closest to the point wins, ties within ``TIE_TOL``
        go to the lowest element index. Points outside the mesh resolve to
        the nearest element rather than failing.

        Raises ConstructionError if ``points`` and ``result`` differ in length.
        An empty batch is a no-op.
        """
        if len(points) != len(result):
            raise ConstructionError(f"Got {len(points)} points but an output of length {len(result)}")
        if len(points) == 0:
            return
        pts = np.asarray(points, dtype=float).reshape(len(points), -1)
        if pts.shape[1] != self.geometry_dim:
            raise ValueError(f"Points have dimension {pts.shape[1]}, space has dimension {self.geometry_dim}")

        index = self._index()
        for i, p in enumerate(pts):
            result[i] = self._locate(index, p)
        logger.debug(f"Located {len(pts)} points")

    def _locate(self, index: BoundingBoxIndex, p):
        best = None  # (distance, element, xi)
        visited = set()
        _, radius = index.nearest(p)
        while True:
            dists, elems = index.within_distance(p, radius)
            for box_dist, e in zip(dists, elems):
                e = int(e)
                if e in visited:
                    continue
                if best is not None and box_dist > best[0] + TIE_TOL:
                    break
                visited.add(e)
                xi, dist = self.space.closest_reference_point(e, p)
                if (best is None or dist < best[0] - TIE_TOL
                        or (abs(dist - best[0]) <= TIE_TOL and e < best[1])):
                    best = (dist, e, xi)
            # every box within tie range of the best geometry has been visited
            limit = best[0] + TIE_TOL
            if limit <= radius:
                break
            radius = limit
        return best[1], np.asarray(best[2], dtype=float)

    # --- field evaluation -----------------------------------------------------
    def _element_values(self, u, element_index):
        u = np.asarray(u, dtype=float).ravel()
        s = u.shape[0] // self.num_nodes()
        if s * self.num_nodes() != u.shape[0] or s == 0:
            raise ValueError(f"DOF vector of length {u.shape[0]} does not match {self.num_nodes()} nodes")
        return u.reshape(-1, s)[self.element_nodes(element_index)]

    def interpolate(self, points, u) -> np.ndarray:
        """Values of the field with global DOF vector ``u`` at ``points``, shape (N, s)."""
        located = [None] * len(points)
        self.populate_closest_element_and_reference_coords(points, located)
        values = []
        for e, xi in located:
            N = np.empty(self.element_node_count(e))
            self.populate_element_basis(e, N, xi)
            values.append(N @ self._element_values(u, e))
        s = np.asarray(u).size // self.num_nodes()
        return np.array(values).reshape(len(located), s)

    def interpolate_gradient(self, points, u) -> np.ndarray:
        """Physical gradients of the field at ``points``, shape (N, geometry_dim, s)."""
        located = [None] * len(points)
        self.populate_closest_element_and_reference_coords(points, located)
        grads = []
        for e, xi in located:
            G = np.empty((self.geometry_dim, self.element_node_count(e)))
            self.populate_element_gradients(e, G, xi)
            grads.append(G @ self._element_values(u, e))
        s = np.asarray(u).size // self.num_nodes()
        return np.array(grads).reshape(len(located), self.geometry_dim, s)

    def __repr__(self):
        state = f"Indexed({int(self._slot.dim)})" if self.is_indexed else "Unbuilt"
        return f"<Interpolator {state} space={self.space!r}>"
