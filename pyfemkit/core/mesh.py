import logging
from typing import List

import numpy as np

from pyfemkit.assembly.local_assembler import ElementConnectivityAssembler
from pyfemkit.core.dims import check_small_dim
from pyfemkit.core.geometry import AxisAlignedBoundingBox
from pyfemkit.errors import ConstructionError
from pyfemkit.fem.reference import ELEMENT_DIMS, get_reference

logger = logging.getLogger(__name__)


class Mesh(ElementConnectivityAssembler):
    """
    Vertex coordinates plus element connectivity for a single element type.

    The mesh is itself a scalar connectivity assembler (``solution_dim() == 1``)
    whose node indices are its vertex indices, so it can be fed directly to
    :meth:`map_element_nodes` or to an aggregate.

    Node ordering inside an element follows the reference element of
    ``element_type`` (see :mod:`pyfemkit.fem.reference`): vertex order of the
    reference simplex for ``tri``/``tet``, lexicographic corner order for
    ``segment``/``quad``/``hex``.
    """

    def __init__(self,
                 vertices: np.ndarray,
                 connectivity: np.ndarray,
                 *,
                 element_type: str,
                 poly_order: int = 1):
        if element_type not in ELEMENT_DIMS:
            raise ConstructionError(f"Unknown element type '{element_type}'.")
        vertices = np.asarray(vertices, dtype=float)
        if vertices.ndim == 1:
            vertices = vertices[:, None]
        connectivity = np.asarray(connectivity, dtype=np.int64)
        if connectivity.ndim != 2:
            raise ConstructionError(f"Connectivity must be 2D, got shape {connectivity.shape}.")

        self.element_type = element_type
        self.poly_order = poly_order
        self.vertices = vertices
        self.connectivity = connectivity
        self.reference = get_reference(element_type, poly_order)

        if connectivity.shape[0] and connectivity.shape[1] != self.reference.num_nodes:
            raise ConstructionError(
                f"{element_type} P{poly_order} elements need {self.reference.num_nodes} nodes, "
                f"connectivity has {connectivity.shape[1]}."
            )
        check_small_dim(vertices.shape[1])
        if vertices.shape[1] < self.reference.dim:
            raise ConstructionError(
                f"Geometry dimension {vertices.shape[1]} is below reference dimension {self.reference.dim}."
            )
        if connectivity.size and (connectivity.min() < 0 or connectivity.max() >= len(vertices)):
            raise ConstructionError("Connectivity references nodes outside the vertex array.")
        logger.debug(f"Created {self!r}")

    # --- connectivity -------------------------------------------------------
    def solution_dim(self) -> int:
        return 1

    def num_elements(self) -> int:
        return self.connectivity.shape[0]

    def num_nodes(self) -> int:
        return self.vertices.shape[0]

    def element_node_count(self, element_index: int) -> int:
        self._check_element(element_index)
        return self.connectivity.shape[1]

    def populate_element_nodes(self, output, element_index: int):
        self._check_element(element_index)
        nodes = self.connectivity[element_index]
        if len(output) != len(nodes):
            raise ValueError(f"Output buffer has length {len(output)}, element {element_index} has {len(nodes)} nodes.")
        output[:] = nodes

    def _check_element(self, element_index: int):
        if not 0 <= element_index < self.num_elements():
            raise IndexError(f"Element index {element_index} out of range [0, {self.num_elements()}).")

    # --- geometry -----------------------------------------------------------
    @property
    def geometry_dim(self) -> int:
        return self.vertices.shape[1]

    @property
    def reference_dim(self) -> int:
        return self.reference.dim

    def element_vertices(self, element_index: int) -> np.ndarray:
        self._check_element(element_index)
        return self.vertices[self.connectivity[element_index]]

    def element_bounding_box(self, element_index: int) -> AxisAlignedBoundingBox:
        return AxisAlignedBoundingBox.from_points(self.element_vertices(element_index))

    def bounding_boxes(self) -> List[AxisAlignedBoundingBox]:
        return [self.element_bounding_box(e) for e in range(self.num_elements())]

    def diameter(self, element_index: int) -> float:
        """Largest distance between two nodes of the element."""
        X = self.element_vertices(element_index)
        diff = X[:, None, :] - X[None, :, :]
        return float(np.sqrt((diff ** 2).sum(axis=-1)).max())

    def __repr__(self):
        return (f"<Mesh n_nodes={self.num_nodes()}, "
                f"n_elems={self.num_elements()}, "
                f"elem_type='{self.element_type}', "
                f"poly_order={self.poly_order}, "
                f"geometry_dim={self.geometry_dim}>")
