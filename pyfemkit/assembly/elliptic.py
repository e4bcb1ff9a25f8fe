"""pyfemkit.assembly.elliptic
Energy, residual and tangent assembly for elliptic operators.

An elliptic operator works on the field gradient ``G`` of shape
``(geometry_dim, solution_dim)``, ``G[j, i] = du_i/dx_j``, and supplies

* an energy density ``psi(G)``,
* the flux ``g(G) = dpsi/dG`` with the same shape as ``G``,
* the contraction ``C(G, a, b)_ik = sum_jl a_j (dg_ji / dG_lk) b_l``.

The element contributions are then

    E   = ∫ psi(G) dx
    f_I = ∫ g(G)^T grad N_I dx
    K_IJ = ∫ C(G, grad N_I, grad N_J) dx
"""
import logging
from abc import ABC, abstractmethod

import numpy as np

from pyfemkit.assembly.local_assembler import (
    ElementMatrixAssembler,
    ElementScalarAssembler,
    ElementVectorAssembler,
)
from pyfemkit.assembly.space_assembler import SpaceElementAssembler
from pyfemkit.errors import AssemblyError, ConstructionError, MaterialDomainError

logger = logging.getLogger(__name__)

__all__ = ["EllipticOperator", "LaplaceOperator", "MaterialEllipticOperator", "ElementEllipticAssembler"]


class EllipticOperator(ABC):
    @abstractmethod
    def solution_dim(self, geometry_dim: int) -> int:
        ...

    @abstractmethod
    def compute_energy(self, gradient, data) -> float:
        ...

    @abstractmethod
    def compute_elliptic_operator(self, gradient, data) -> np.ndarray:
        ...

    @abstractmethod
    def contract(self, gradient, data, a, b) -> np.ndarray:
        ...


class LaplaceOperator(EllipticOperator):
    """Scalar diffusion; quadrature-point data, when given, is the diffusion coefficient."""

    @staticmethod
    def _coefficient(data):
        return 1.0 if data is None else float(data)

    def solution_dim(self, geometry_dim):
        return 1

    def compute_energy(self, gradient, data):
        return 0.5 * self._coefficient(data) * float(np.sum(gradient * gradient))

    def compute_elliptic_operator(self, gradient, data):
        return self._coefficient(data) * np.asarray(gradient, dtype=float)

    def contract(self, gradient, data, a, b):
        return np.array([[self._coefficient(data) * float(np.dot(a, b))]])


class MaterialEllipticOperator(EllipticOperator):
    """
    Hyperelastic solid: the field is the displacement and ``F = I + G^T``.

    Material parameters come from the quadrature-point data when present,
    otherwise from ``parameters``.
    """

    def __init__(self, material, parameters=None):
        self.material = material
        self.parameters = parameters

    def _params(self, data):
        params = self.parameters if data is None else data
        if params is None:
            raise MaterialDomainError("No material parameters given for quadrature point")
        return params

    @staticmethod
    def _deformation_gradient(gradient):
        G = np.asarray(gradient, dtype=float)
        return np.eye(G.shape[0]) + G.T

    def solution_dim(self, geometry_dim):
        return geometry_dim

    def compute_energy(self, gradient, data):
        return self.material.compute_energy_density(self._deformation_gradient(gradient), self._params(data))

    def compute_elliptic_operator(self, gradient, data):
        P = self.material.compute_stress_tensor(self._deformation_gradient(gradient), self._params(data))
        return np.asarray(P).T

    def contract(self, gradient, data, a, b):
        return self.material.compute_stress_contraction(
            self._deformation_gradient(gradient), a, b, self._params(data))

    def __repr__(self):
        return f"<MaterialEllipticOperator material={self.material!r} parameters={self.parameters!r}>"


class ElementEllipticAssembler(SpaceElementAssembler,
                               ElementMatrixAssembler,
                               ElementVectorAssembler,
                               ElementScalarAssembler):
    """
    Element energy, residual and tangent of ``operator`` around the state ``u``.

    ``u`` is a global DOF vector of length ``num_nodes * solution_dim`` (node
    major); ``None`` means the zero state.
    """

    def __init__(self, space, operator: EllipticOperator, quadrature_table, u=None):
        super().__init__(space, quadrature_table, operator.solution_dim(space.geometry_dim))
        self.operator = operator
        n_dofs = space.num_nodes() * self.solution_dim()
        if u is None:
            u = np.zeros(n_dofs)
        u = np.asarray(u, dtype=float).ravel()
        if u.shape[0] != n_dofs:
            raise ConstructionError(f"State vector has {u.shape[0]} entries, expected {n_dofs}.")
        self.u = u

    def _element_state(self, element_index):
        nodes = self.element_nodes(element_index)
        return self.u.reshape(-1, self.solution_dim())[nodes]          # (n_loc, s)

    def _points(self, element_index, operation):
        u_loc = self._element_state(element_index)
        for wdet, _, grads, _, data in self.quadrature_points(element_index, operation):
            yield wdet, grads, grads @ u_loc, data

    def _run(self, element_index, operation, body):
        try:
            return body()
        except (MaterialDomainError, np.linalg.LinAlgError, FloatingPointError) as err:
            raise AssemblyError(element_index, operation, str(err)) from err

    def assemble_element_scalar(self, element_index):
        operation = "elliptic energy"

        def body():
            energy = 0.0
            for wdet, _, G, data in self._points(element_index, operation):
                energy += wdet * self.operator.compute_energy(G, data)
            return float(energy)

        return self._run(element_index, operation, body)

    def assemble_element_vector_into(self, element_index, output):
        self.check_vector_output(element_index, output)
        operation = "elliptic vector"

        def body():
            f = np.zeros((self.element_node_count(element_index), self.solution_dim()))
            for wdet, grads, G, data in self._points(element_index, operation):
                g = self.operator.compute_elliptic_operator(G, data)    # (d, s)
                f += wdet * (grads.T @ g)
            output[...] = f.ravel()

        self._run(element_index, operation, body)

    def assemble_element_matrix_into(self, element_index, output):
        self.check_matrix_output(element_index, output)
        operation = "elliptic matrix"
        s = self.solution_dim()

        def body():
            n_loc = self.element_node_count(element_index)
            K = np.zeros((n_loc * s, n_loc * s))
            for wdet, grads, G, data in self._points(element_index, operation):
                for I in range(n_loc):
                    for J in range(n_loc):
                        C = self.operator.contract(G, data, grads[:, I], grads[:, J])
                        K[I * s:(I + 1) * s, J * s:(J + 1) * s] += wdet * C
            output[...] = K

        self._run(element_index, operation, body)
