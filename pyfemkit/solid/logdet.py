"""pyfemkit.solid.logdet
Accurate log(det F) for small deformations.
"""
import math
from typing import Optional

import numpy as np

from pyfemkit.core.dims import SpatialDim
from pyfemkit.errors import UnsupportedDimensionError

__all__ = ["log_det_F"]


def log_det_F(du_dX) -> Optional[float]:
    """
    Compute log(det F) for F = I + du/dX, given the displacement Jacobian du/dX.

    Forming F first throws away the information carried by small entries of
    du/dX. Instead det(I + U) is expanded as 1 + γ, with γ collecting every
    term that is not the leading 1, and log1p(γ) is returned. This follows the
    approach described in the libCEED documentation (examples/solids).

    Returns ``None`` when det F <= 0.

    For a 1x1 input the single entry is taken as the determinant itself.
    """
    U = np.asarray(du_dX, dtype=float)
    if U.ndim != 2 or U.shape[0] != U.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {U.shape}")
    dim = SpatialDim.from_value(U.shape[0])
    if dim == SpatialDim.ONE:
        det = float(U[0, 0])
        return math.log(det) if det > 0.0 else None
    if dim == SpatialDim.TWO:
        return _log_det_F_2d(np.array(U[:2, :2]))
    if dim == SpatialDim.THREE:
        return _log_det_F_3d(np.array(U[:3, :3]))
    raise UnsupportedDimensionError(U.shape[0], [1, 2, 3])


def _log_det_F_2d(U) -> Optional[float]:
    # det(I + U) = (1+u11)(1+u22) - u12*u21
    #            = 1 + u11*u22 + u11 + u22 - u12*u21
    #            = 1 + γ
    u11, u12 = float(U[0, 0]), float(U[0, 1])
    u21, u22 = float(U[1, 0]), float(U[1, 1])
    gamma = u11 * u22 + u11 + u22 - u12 * u21
    return math.log1p(gamma) if gamma > -1.0 else None


def _log_det_F_3d(U) -> Optional[float]:
    # For A = [a, b, c; d, e, f; g, h, i],
    #   det(A) = aei + bfg + cdh - ceg - bdi - afh.
    # With a = 1+u11, e = 1+u22, i = 1+u33 the product of the diagonal is
    #   1 + u11*u22*u33 + u11*u22 + u11*u33 + u22*u33 + u11 + u22 + u33,
    # so everything except the leading 1 goes into γ.
    u11, u22, u33 = float(U[0, 0]), float(U[1, 1]), float(U[2, 2])
    a, e, i = 1.0 + u11, 1.0 + u22, 1.0 + u33
    b, c = float(U[0, 1]), float(U[0, 2])
    d, f = float(U[1, 0]), float(U[1, 2])
    g, h = float(U[2, 0]), float(U[2, 1])
    gamma = (u11 * u22 * u33 + u11 * u22 + u11 * u33 + u22 * u33 + u11 + u22 + u33
             + b * f * g + c * d * h
             - c * e * g
             - b * d * i
             - a * f * h)
    return math.log1p(gamma) if gamma > -1.0 else None
