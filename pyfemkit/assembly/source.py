"""pyfemkit.assembly.source"""
import numpy as np

from pyfemkit.assembly.local_assembler import ElementVectorAssembler
from pyfemkit.assembly.space_assembler import SpaceElementAssembler
from pyfemkit.errors import AssemblyError

__all__ = ["ElementSourceAssembler"]


class ElementSourceAssembler(SpaceElementAssembler, ElementVectorAssembler):
    """Load vector f_I = ∫ N_I f(x) dx for a source ``f(x) -> (solution_dim,)``.

    ``source`` receives the physical point and the quadrature-point data.
    """

    def __init__(self, space, quadrature_table, source, solution_dim: int = 1):
        super().__init__(space, quadrature_table, solution_dim)
        self.source = source

    def assemble_element_vector_into(self, element_index, output):
        self.check_vector_output(element_index, output)
        s = self.solution_dim()
        f = np.zeros((self.element_node_count(element_index), s))
        for wdet, N, _, x, data in self.quadrature_points(element_index, "source vector"):
            value = np.atleast_1d(np.asarray(self.source(x, data), dtype=float))
            if value.shape != (s,):
                raise AssemblyError(element_index, "source vector",
                                    f"source returned shape {value.shape}, expected ({s},)")
            f += wdet * np.outer(N, value)
        output[...] = f.ravel()
