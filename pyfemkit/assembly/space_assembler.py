"""pyfemkit.assembly.space_assembler
Shared plumbing for assemblers that integrate over the elements of a space.
"""
import numpy as np

from pyfemkit.assembly.local_assembler import ElementConnectivityAssembler, check_output_shape
from pyfemkit.errors import AssemblyError

__all__ = ["SpaceElementAssembler"]


class SpaceElementAssembler(ElementConnectivityAssembler):
    """Connectivity of a :class:`~pyfemkit.fem.space.FiniteElementSpace` with a vector-valued field of size ``solution_dim``."""

    def __init__(self, space, quadrature_table, solution_dim: int = 1):
        self.space = space
        self.quadrature_table = quadrature_table
        self._solution_dim = int(solution_dim)

    def solution_dim(self) -> int:
        return self._solution_dim

    def num_elements(self) -> int:
        return self.space.num_elements()

    def num_nodes(self) -> int:
        return self.space.num_nodes()

    def element_node_count(self, element_index: int) -> int:
        return self.space.element_node_count(element_index)

    def populate_element_nodes(self, output, element_index: int):
        self.space.populate_element_nodes(output, element_index)

    def _local_size(self, element_index: int) -> int:
        return self.element_node_count(element_index) * self._solution_dim

    def check_matrix_output(self, element_index, output):
        n = self._local_size(element_index)
        check_output_shape(output, (n, n), element_index)

    def check_vector_output(self, element_index, output):
        check_output_shape(output, (self._local_size(element_index),), element_index)

    def quadrature_points(self, element_index: int, operation: str):
        """
        Yield ``(weight * |det J|, N, grad N, x, data)`` per quadrature point.

        ``N`` has shape (n_loc,), ``grad N`` (geometry_dim, n_loc). A vanishing
        or negative Jacobian determinant raises :class:`AssemblyError`.
        """
        weights, points = self.quadrature_table.element_quadrature(element_index)
        data = self.quadrature_table.element_data(element_index)
        n_loc = self.space.element_node_count(element_index)
        D = self.space.geometry_dim
        for w, xi, d in zip(weights, points, data):
            J = self.space.element_reference_jacobian(element_index, xi)
            if J.shape[0] == J.shape[1]:
                det_J = float(np.linalg.det(J))
            else:
                det_J = float(np.sqrt(max(np.linalg.det(J.T @ J), 0.0)))
            if not det_J > 0.0:
                raise AssemblyError(element_index, operation,
                                    f"non-positive Jacobian determinant {det_J:.3e} at reference point {tuple(xi)}")
            N = np.empty(n_loc)
            self.space.populate_element_basis(element_index, N, xi)
            G = np.empty((D, n_loc))
            self.space.populate_element_gradients(element_index, G, xi)
            x = self.space.map_element_reference_coords(element_index, xi)
            yield w * det_J, N, G, x, d
