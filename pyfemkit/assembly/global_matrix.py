"""pyfemkit.assembly.global_matrix
Sum element contributions into global sparse matrices, vectors and scalars.

The DOF of node ``A`` and solution component ``i`` is ``A * s + i`` where
``s = assembler.solution_dim()``.
"""
import logging

import numpy as np
import scipy.sparse as sp

from pyfemkit.core.dims import Symmetry
from pyfemkit.errors import AssemblyError

logger = logging.getLogger(__name__)

__all__ = ["assemble_matrix", "assemble_vector", "assemble_scalar", "element_dofs"]

_ON_ERROR = ("raise", "skip")


def element_dofs(assembler, element_index: int) -> np.ndarray:
    s = assembler.solution_dim()
    nodes = assembler.element_nodes(element_index)
    return (nodes[:, None] * s + np.arange(s)[None, :]).ravel()


def _check_on_error(on_error):
    if on_error not in _ON_ERROR:
        raise ValueError(f"on_error must be one of {_ON_ERROR}, got {on_error!r}")


def _handle(err: AssemblyError, on_error: str):
    if on_error == "raise":
        raise err
    logger.warning(f"Skipping element {err.element_index}: {err}")


def assemble_matrix(assembler, *, symmetry: Symmetry = Symmetry.NON_SYMMETRIC, on_error: str = "raise"):
    """
    Global CSR matrix of shape ``(num_nodes*s, num_nodes*s)``.

    With ``Symmetry.SYMMETRIC`` only the upper triangle of each element matrix
    is stored; the result is an upper-triangular CSR matrix.
    """
    _check_on_error(on_error)
    n_dofs = assembler.num_nodes() * assembler.solution_dim()
    rows, cols, data = [], [], []
    skipped = 0
    for eid in range(assembler.num_elements()):
        dofs = element_dofs(assembler, eid)
        Ke = np.zeros((len(dofs), len(dofs)))
        try:
            assembler.assemble_element_matrix_into(eid, Ke)
        except AssemblyError as err:
            _handle(err, on_error)
            skipped += 1
            continue
        R, C = np.meshgrid(dofs, dofs, indexing="ij")
        if symmetry is Symmetry.SYMMETRIC:
            mask = R <= C
            R, C, Ke = R[mask], C[mask], Ke[mask]
        rows.append(R.ravel()); cols.append(C.ravel()); data.append(Ke.ravel())
    logger.info(f"Assembled {assembler.num_elements() - skipped} element matrices into {n_dofs}x{n_dofs} system")
    if not data:
        return sp.csr_matrix((n_dofs, n_dofs))
    K = sp.coo_matrix((np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
                      shape=(n_dofs, n_dofs))
    return K.tocsr()


def assemble_vector(assembler, *, on_error: str = "raise") -> np.ndarray:
    _check_on_error(on_error)
    F = np.zeros(assembler.num_nodes() * assembler.solution_dim())
    for eid in range(assembler.num_elements()):
        dofs = element_dofs(assembler, eid)
        fe = np.zeros(len(dofs))
        try:
            assembler.assemble_element_vector_into(eid, fe)
        except AssemblyError as err:
            _handle(err, on_error)
            continue
        np.add.at(F, dofs, fe)
    return F


def assemble_scalar(assembler, *, on_error: str = "raise") -> float:
    _check_on_error(on_error)
    total = 0.0
    for eid in range(assembler.num_elements()):
        try:
            total += assembler.assemble_element_scalar(eid)
        except AssemblyError as err:
            _handle(err, on_error)
    return total
