"""pyfemkit.core.geometry
Axis-aligned bounding boxes for element geometry.
"""
from dataclasses import dataclass

import numpy as np

__all__ = ["AxisAlignedBoundingBox"]


@dataclass(frozen=True)
class AxisAlignedBoundingBox:
    min: np.ndarray
    max: np.ndarray

    def __post_init__(self):
        lo = np.asarray(self.min, dtype=float).ravel()
        hi = np.asarray(self.max, dtype=float).ravel()
        if lo.shape != hi.shape:
            raise ValueError(f"Corner shapes differ: {lo.shape} vs {hi.shape}")
        if np.any(lo > hi):
            raise ValueError(f"Box min {lo} exceeds max {hi}")
        object.__setattr__(self, "min", lo)
        object.__setattr__(self, "max", hi)

    @classmethod
    def from_points(cls, points):
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        return cls(pts.min(axis=0), pts.max(axis=0))

    @property
    def dim(self) -> int:
        return self.min.shape[0]

    def center(self) -> np.ndarray:
        return 0.5 * (self.min + self.max)

    def extents(self) -> np.ndarray:
        return self.max - self.min

    def half_diagonal(self) -> float:
        return 0.5 * float(np.linalg.norm(self.extents()))

    def distance_to(self, point) -> float:
        """Euclidean distance from ``point`` to the box (zero inside)."""
        p = np.asarray(point, dtype=float)
        d = np.maximum(self.min - p, 0.0) + np.maximum(p - self.max, 0.0)
        return float(np.linalg.norm(d))

    def contains(self, point, tol: float = 0.0) -> bool:
        p = np.asarray(point, dtype=float)
        return bool(np.all(p >= self.min - tol) and np.all(p <= self.max + tol))
