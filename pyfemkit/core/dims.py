"""pyfemkit.core.dims
Closed sets of supported dimensions.

Dimension-generic routines (log-determinant, spatial indexing) are only valid
for a handful of small dimensions. Instead of trusting arbitrary integers, the
routines specialise through :class:`SpatialDim`, which fails loudly for
anything outside the set.
"""
from enum import Enum, IntEnum

from pyfemkit.errors import UnsupportedDimensionError

__all__ = ["SpatialDim", "Symmetry", "check_small_dim", "MAX_SMALL_DIM"]

MAX_SMALL_DIM = 12


class SpatialDim(IntEnum):
    ONE = 1
    TWO = 2
    THREE = 3

    @classmethod
    def from_value(cls, dim, supported=None):
        """Specialise ``dim`` to a member, optionally restricted to ``supported``."""
        allowed = tuple(cls) if supported is None else tuple(cls(d) for d in supported)
        try:
            member = cls(int(dim))
        except ValueError:
            raise UnsupportedDimensionError(dim, [int(d) for d in allowed]) from None
        if member not in allowed:
            raise UnsupportedDimensionError(dim, [int(d) for d in allowed])
        return member


def check_small_dim(dim: int) -> int:
    """Accept the small dimensions 1..12 used by generic fixed-size helpers."""
    if not 1 <= int(dim) <= MAX_SMALL_DIM:
        raise UnsupportedDimensionError(dim, range(1, MAX_SMALL_DIM + 1))
    return int(dim)


class Symmetry(Enum):
    NON_SYMMETRIC = "non_symmetric"
    SYMMETRIC = "symmetric"
