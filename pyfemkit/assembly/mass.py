"""pyfemkit.assembly.mass"""
import numpy as np

from pyfemkit.assembly.local_assembler import ElementMatrixAssembler
from pyfemkit.assembly.space_assembler import SpaceElementAssembler

__all__ = ["ElementMassAssembler"]


class ElementMassAssembler(SpaceElementAssembler, ElementMatrixAssembler):
    """M_IJ = ∫ rho N_I N_J dx, repeated on the diagonal of every solution component.

    ``density`` is the default rho; a number stored as quadrature-point data
    overrides it at that point.
    """

    def __init__(self, space, quadrature_table, solution_dim: int = 1, density: float = 1.0):
        super().__init__(space, quadrature_table, solution_dim)
        self.density = density

    def assemble_element_matrix_into(self, element_index, output):
        self.check_matrix_output(element_index, output)
        n_loc = self.element_node_count(element_index)
        M = np.zeros((n_loc, n_loc))
        for wdet, N, _, _, data in self.quadrature_points(element_index, "mass matrix"):
            rho = self.density if data is None else float(data)
            M += wdet * rho * np.outer(N, N)
        output[...] = np.kron(M, np.eye(self.solution_dim()))
