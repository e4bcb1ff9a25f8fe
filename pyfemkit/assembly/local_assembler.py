"""pyfemkit.assembly.local_assembler
Element assembler contract and its composition combinators.

An element assembler describes, for every element of some discretization,
which global nodes the element touches and how to compute the element's local
contribution (a dense matrix, vector or scalar). Global assembly
(:mod:`pyfemkit.assembly.global_matrix`) only talks to this interface, so
assemblers can be decorated (:class:`MapElementNodes`) or concatenated
(:class:`AggregateElementAssembler`) without touching the element kernels.

Per-element calls never keep references to the output buffers they are handed
and hold no shared mutable state, so different elements may be assembled
concurrently as long as they write to disjoint outputs.
"""
import logging
from abc import ABC, abstractmethod
from bisect import bisect_right
from typing import Callable, Sequence, Tuple

import numpy as np

from pyfemkit.errors import AssemblyError, ConstructionError

logger = logging.getLogger(__name__)

__all__ = [
    "ElementConnectivityAssembler",
    "ElementMatrixAssembler",
    "ElementVectorAssembler",
    "ElementScalarAssembler",
    "MapElementNodes",
    "AggregateElementAssembler",
]


class ElementConnectivityAssembler(ABC):
    @abstractmethod
    def solution_dim(self) -> int:
        """Number of scalar unknowns per node."""

    @abstractmethod
    def num_elements(self) -> int:
        ...

    @abstractmethod
    def num_nodes(self) -> int:
        ...

    @abstractmethod
    def element_node_count(self, element_index: int) -> int:
        ...

    @abstractmethod
    def populate_element_nodes(self, output, element_index: int):
        """Write the global node indices of ``element_index`` into ``output``.

        ``len(output)`` must equal ``element_node_count(element_index)``.
        """

    def element_nodes(self, element_index: int) -> np.ndarray:
        """Convenience wrapper allocating the node buffer."""
        nodes = np.empty(self.element_node_count(element_index), dtype=np.int64)
        self.populate_element_nodes(nodes, element_index)
        return nodes

    def map_element_nodes(self, new_num_nodes: int, f: Callable[[int], int]) -> "MapElementNodes":
        """
        Returns an adapter that modifies element node indices according to ``f``.

        Changing node indices usually comes with a change in the total number of
        nodes, so the new total has to be provided. A typical use is offsetting
        the indices of a single body so that it assembles directly into a
        larger system holding several bodies.
        """
        return MapElementNodes(self, f, new_num_nodes)


class ElementMatrixAssembler(ElementConnectivityAssembler):
    @abstractmethod
    def assemble_element_matrix_into(self, element_index: int, output: np.ndarray):
        """Fill the square ``(n*s, n*s)`` local matrix. Raises AssemblyError."""

    def assemble_element_matrix(self, element_index: int) -> np.ndarray:
        n = self.element_node_count(element_index) * self.solution_dim()
        out = np.zeros((n, n))
        self.assemble_element_matrix_into(element_index, out)
        return out


class ElementVectorAssembler(ElementConnectivityAssembler):
    @abstractmethod
    def assemble_element_vector_into(self, element_index: int, output: np.ndarray):
        """Fill the ``(n*s,)`` local vector. Raises AssemblyError."""

    def assemble_element_vector(self, element_index: int) -> np.ndarray:
        out = np.zeros(self.element_node_count(element_index) * self.solution_dim())
        self.assemble_element_vector_into(element_index, out)
        return out


class ElementScalarAssembler(ElementConnectivityAssembler):
    @abstractmethod
    def assemble_element_scalar(self, element_index: int) -> float:
        """Scalar contribution of one element. Raises AssemblyError."""


def _require(assembler, capability, what: str):
    if not isinstance(assembler, capability):
        raise TypeError(f"{type(assembler).__name__} does not implement {what}.")
    return assembler


def check_output_shape(output: np.ndarray, expected: tuple, element_index: int):
    if tuple(np.shape(output)) != expected:
        raise ValueError(f"Output for element {element_index} has shape {np.shape(output)}, expected {expected}.")


class MapElementNodes(ElementMatrixAssembler, ElementVectorAssembler, ElementScalarAssembler):
    """Wraps an assembler and passes every populated node index through ``function``.

    Everything except :meth:`num_nodes` and :meth:`populate_element_nodes` is
    forwarded to the wrapped assembler. The mapping is not validated; it must
    send indices into ``[0, num_nodes)``.
    """

    def __init__(self, mapped: ElementConnectivityAssembler, function: Callable[[int], int], num_nodes: int):
        self.mapped = mapped
        self.function = function
        self._num_nodes = int(num_nodes)

    def solution_dim(self) -> int:
        return self.mapped.solution_dim()

    def num_elements(self) -> int:
        return self.mapped.num_elements()

    def num_nodes(self) -> int:
        return self._num_nodes

    def element_node_count(self, element_index: int) -> int:
        return self.mapped.element_node_count(element_index)

    def populate_element_nodes(self, output, element_index: int):
        self.mapped.populate_element_nodes(output, element_index)
        for i, idx in enumerate(output):
            output[i] = self.function(int(idx))

    def assemble_element_matrix_into(self, element_index: int, output: np.ndarray):
        _require(self.mapped, ElementMatrixAssembler, "element matrix assembly")
        self.mapped.assemble_element_matrix_into(element_index, output)

    def assemble_element_vector_into(self, element_index: int, output: np.ndarray):
        _require(self.mapped, ElementVectorAssembler, "element vector assembly")
        self.mapped.assemble_element_vector_into(element_index, output)

    def assemble_element_scalar(self, element_index: int) -> float:
        _require(self.mapped, ElementScalarAssembler, "element scalar assembly")
        return self.mapped.assemble_element_scalar(element_index)

    def __repr__(self):
        return f"<MapElementNodes num_nodes={self._num_nodes} mapped={self.mapped!r}>"


class AggregateElementAssembler(ElementMatrixAssembler, ElementVectorAssembler, ElementScalarAssembler):
    """
    Presents an ordered sequence of assemblers as one contiguous set of elements.

    Aggregate element ``i`` belongs to the constituent ``k`` with the largest
    offset ``offsets[k] <= i`` and maps to its local element ``i - offsets[k]``,
    where ``offsets[0] = 0`` and ``offsets[k] = offsets[k-1] + num_elements[k-1]``.
    All constituents must share the solution dimension and the node index space.
    """

    def __init__(self, assemblers: Sequence[ElementConnectivityAssembler]):
        assemblers = tuple(assemblers)
        if not assemblers:
            raise ConstructionError("Must have at least one assembler in aggregate")
        solution_dim = assemblers[0].solution_dim()
        num_nodes = assemblers[0].num_nodes()
        if not all(a.solution_dim() == solution_dim for a in assemblers):
            raise ConstructionError(
                "All assemblers must have the same solution dimension, got "
                f"{[a.solution_dim() for a in assemblers]}"
            )
        if not all(a.num_nodes() == num_nodes for a in assemblers):
            raise ConstructionError(
                "All assemblers must share the same node index space (same num_nodes), got "
                f"{[a.num_nodes() for a in assemblers]}"
            )

        offsets = []
        total = 0
        for assembler in assemblers:
            offsets.append(total)
            total += assembler.num_elements()

        self.assemblers = assemblers
        self.element_offsets = tuple(offsets)
        self._solution_dim = solution_dim
        self._num_nodes = num_nodes
        self._num_elements = total
        logger.debug(f"Aggregated {len(assemblers)} assemblers, {total} elements, offsets={offsets}")

    @classmethod
    def from_assemblers(cls, assemblers: Sequence[ElementConnectivityAssembler]) -> "AggregateElementAssembler":
        return cls(assemblers)

    def find_assembler_and_offset(self, element_index: int) -> Tuple[int, int]:
        """Return ``(constituent index, element offset)`` owning ``element_index``."""
        if not 0 <= element_index < self._num_elements:
            raise IndexError(f"Aggregate element index {element_index} out of range [0, {self._num_elements}).")
        # largest offset <= element_index; skips empty constituents sharing that offset
        k = bisect_right(self.element_offsets, element_index) - 1
        return k, self.element_offsets[k]

    def _locate(self, element_index: int):
        k, offset = self.find_assembler_and_offset(element_index)
        return k, self.assemblers[k], element_index - offset

    def solution_dim(self) -> int:
        return self._solution_dim

    def num_elements(self) -> int:
        return self._num_elements

    def num_nodes(self) -> int:
        return self._num_nodes

    def element_node_count(self, element_index: int) -> int:
        _, assembler, local = self._locate(element_index)
        return assembler.element_node_count(local)

    def populate_element_nodes(self, output, element_index: int):
        _, assembler, local = self._locate(element_index)
        assembler.populate_element_nodes(output, local)

    def _delegate(self, element_index, capability, what, call):
        k, assembler, local = self._locate(element_index)
        _require(assembler, capability, what)
        try:
            return call(assembler, local)
        except AssemblyError as err:
            raise AssemblyError(
                element_index, err.operation, f"{err.reason} (constituent {k}, local element {local})"
            ) from err

    def assemble_element_matrix_into(self, element_index: int, output: np.ndarray):
        self._delegate(element_index, ElementMatrixAssembler, "element matrix assembly",
                       lambda a, local: a.assemble_element_matrix_into(local, output))

    def assemble_element_vector_into(self, element_index: int, output: np.ndarray):
        self._delegate(element_index, ElementVectorAssembler, "element vector assembly",
                       lambda a, local: a.assemble_element_vector_into(local, output))

    def assemble_element_scalar(self, element_index: int) -> float:
        return self._delegate(element_index, ElementScalarAssembler, "element scalar assembly",
                              lambda a, local: a.assemble_element_scalar(local))

    def __repr__(self):
        return (f"<AggregateElementAssembler n_assemblers={len(self.assemblers)}, "
                f"n_elems={self._num_elements}, n_nodes={self._num_nodes}>")
