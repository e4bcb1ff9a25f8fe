"""pyfemkit.solid.materials
Hyperelastic material models evaluated at a single deformation gradient.

Each model provides the strain energy density psi(F), the first Piola-Kirchhoff
stress P(F) = dpsi/dF and the stress contraction

    C_P(F, a, b)_ik = sum_jl a_j (dP_ij / dF_kl) b_l,

which is the block that the pair of basis gradients (a, b) contributes to the
tangent stiffness matrix.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from pyfemkit.errors import MaterialDomainError
from pyfemkit.solid.logdet import log_det_F

__all__ = [
    "LameParameters",
    "YoungPoisson",
    "HyperelasticMaterial",
    "LinearElasticMaterial",
    "NeoHookeanMaterial",
]


@dataclass(frozen=True)
class YoungPoisson:
    young: float
    poisson: float

    def to_lame(self) -> "LameParameters":
        return LameParameters.from_young_poisson(self)


@dataclass(frozen=True)
class LameParameters:
    mu: float = 0.0
    lambda_: float = 0.0

    @classmethod
    def from_young_poisson(cls, params: YoungPoisson) -> "LameParameters":
        young, poisson = params.young, params.poisson
        mu = 0.5 * young / (1.0 + poisson)
        lambda_ = 2.0 * mu * poisson / (1.0 - 2.0 * poisson)
        return cls(mu=mu, lambda_=lambda_)


class HyperelasticMaterial(ABC):
    @abstractmethod
    def compute_energy_density(self, deformation_gradient, parameters: LameParameters) -> float:
        ...

    @abstractmethod
    def compute_stress_tensor(self, deformation_gradient, parameters: LameParameters) -> np.ndarray:
        ...

    @abstractmethod
    def compute_stress_contraction(self, deformation_gradient, a, b, parameters: LameParameters) -> np.ndarray:
        ...

    def __repr__(self):
        return f"{type(self).__name__}()"


def infinitesimal_strain_tensor(F):
    F = np.asarray(F, dtype=float)
    return 0.5 * (F + F.T) - np.eye(F.shape[0])


class LinearElasticMaterial(HyperelasticMaterial):
    """
    Linear elasticity written in terms of F.

    psi = mu eps:eps + lambda/2 tr(eps)^2,  eps = (F + F^T)/2 - I
    P   = 2 mu eps + lambda tr(eps) I
    C   = mu [(a.b) I + b a^T] + lambda a b^T
    """

    def compute_energy_density(self, deformation_gradient, parameters):
        eps = infinitesimal_strain_tensor(deformation_gradient)
        return float(parameters.mu * np.sum(eps * eps) + 0.5 * parameters.lambda_ * np.trace(eps) ** 2)

    def compute_stress_tensor(self, deformation_gradient, parameters):
        eps = infinitesimal_strain_tensor(deformation_gradient)
        return 2.0 * parameters.mu * eps + parameters.lambda_ * np.trace(eps) * np.eye(eps.shape[0])

    def compute_stress_contraction(self, deformation_gradient, a, b, parameters):
        a = np.asarray(a, dtype=float)
        b = np.asarray(b, dtype=float)
        I = np.eye(a.shape[0])
        return parameters.mu * (np.dot(a, b) * I + np.outer(b, a)) + parameters.lambda_ * np.outer(a, b)


class NeoHookeanMaterial(HyperelasticMaterial):
    """
    Compressible Neo-Hookean model.

    psi = mu/2 (tr(F^T F) - d) - mu log J + lambda/2 (log J)^2,  J = det F

    In 2D and 3D log J is evaluated with :func:`log_det_F` from F - I, so small
    deformations keep their precision. Evaluating at det F <= 0 raises
    :class:`MaterialDomainError`.
    """

    @staticmethod
    def _log_J(F):
        # a 1x1 input to log_det_F is already the determinant
        U = F if F.shape[0] == 1 else F - np.eye(F.shape[0])
        log_J = log_det_F(U)
        if log_J is None:
            raise MaterialDomainError("Neo-Hookean material requires det F > 0")
        return log_J

    def compute_energy_density(self, deformation_gradient, parameters):
        F = np.asarray(deformation_gradient, dtype=float)
        d = F.shape[0]
        log_J = self._log_J(F)
        I_C = float(np.sum(F * F))
        mu, lam = parameters.mu, parameters.lambda_
        return 0.5 * mu * (I_C - d) - mu * log_J + 0.5 * lam * log_J ** 2

    def compute_stress_tensor(self, deformation_gradient, parameters):
        F = np.asarray(deformation_gradient, dtype=float)
        log_J = self._log_J(F)
        F_inv_T = np.linalg.inv(F).T
        return parameters.mu * (F - F_inv_T) + parameters.lambda_ * log_J * F_inv_T

    def compute_stress_contraction(self, deformation_gradient, a, b, parameters):
        F = np.asarray(deformation_gradient, dtype=float)
        a = np.asarray(a, dtype=float)
        b = np.asarray(b, dtype=float)
        log_J = self._log_J(F)
        G = np.linalg.inv(F).T
        Ga, Gb = G @ a, G @ b
        mu, lam = parameters.mu, parameters.lambda_
        return (mu * np.dot(a, b) * np.eye(F.shape[0])
                + (mu - lam * log_J) * np.outer(Gb, Ga)
                + lam * np.outer(Ga, Gb))
