"""pyfemkit.fem.space
Finite element spaces: connectivity plus basis evaluation and geometry.
"""
from abc import abstractmethod

import numpy as np

from pyfemkit.assembly.local_assembler import ElementConnectivityAssembler
from pyfemkit.fem import transform

__all__ = ["FiniteElementSpace", "LagrangeSpace"]


class FiniteElementSpace(ElementConnectivityAssembler):
    """
    Contract consumed by the element assemblers and the interpolator.

    Basis gradients are physical gradients stored column-wise, shape
    ``(geometry_dim, n_loc)``.
    """

    def solution_dim(self) -> int:
        return 1

    @property
    @abstractmethod
    def geometry_dim(self) -> int:
        ...

    @property
    @abstractmethod
    def reference_dim(self) -> int:
        ...

    @abstractmethod
    def populate_element_basis(self, element_index: int, basis_values: np.ndarray, reference_coords):
        ...

    @abstractmethod
    def populate_element_gradients(self, element_index: int, gradients: np.ndarray, reference_coords):
        ...

    @abstractmethod
    def element_reference_jacobian(self, element_index: int, reference_coords) -> np.ndarray:
        ...

    @abstractmethod
    def map_element_reference_coords(self, element_index: int, reference_coords) -> np.ndarray:
        ...

    @abstractmethod
    def diameter(self, element_index: int) -> float:
        ...

    @abstractmethod
    def element_bounding_box(self, element_index: int):
        ...

    @abstractmethod
    def closest_reference_point(self, element_index: int, point):
        """Return ``(reference_coords, distance)`` of the element point closest to ``point``."""

    def num_geometries(self) -> int:
        return self.num_elements()


class LagrangeSpace(FiniteElementSpace):
    """Lagrange space whose degrees of freedom are the mesh nodes."""

    def __init__(self, mesh):
        self.mesh = mesh

    @property
    def geometry_dim(self) -> int:
        return self.mesh.geometry_dim

    @property
    def reference_dim(self) -> int:
        return self.mesh.reference_dim

    def num_elements(self) -> int:
        return self.mesh.num_elements()

    def num_nodes(self) -> int:
        return self.mesh.num_nodes()

    def element_node_count(self, element_index: int) -> int:
        return self.mesh.element_node_count(element_index)

    def populate_element_nodes(self, output, element_index: int):
        self.mesh.populate_element_nodes(output, element_index)

    def populate_element_basis(self, element_index, basis_values, reference_coords):
        self.mesh._check_element(element_index)
        basis_values[:] = self.mesh.reference.shape(reference_coords)

    def populate_element_gradients(self, element_index, gradients, reference_coords):
        grad_ref = self.mesh.reference.grad(reference_coords)
        gradients[:] = transform.map_grad_scalar(self.mesh, element_index, grad_ref, reference_coords).T

    def element_reference_jacobian(self, element_index, reference_coords):
        return transform.jacobian(self.mesh, element_index, reference_coords)

    def map_element_reference_coords(self, element_index, reference_coords):
        return transform.x_mapping(self.mesh, element_index, reference_coords)

    def diameter(self, element_index):
        return self.mesh.diameter(element_index)

    def element_bounding_box(self, element_index):
        return self.mesh.element_bounding_box(element_index)

    def closest_reference_point(self, element_index, point):
        return transform.closest_reference_point(self.mesh, element_index, point)

    def __repr__(self):
        return f"<LagrangeSpace mesh={self.mesh!r}>"
