"""pyfemkit.assembly.quadrature_table
Per-element quadrature rules with optional per-point data (e.g. material parameters).
"""
from typing import Any, Optional, Sequence

import numpy as np

from pyfemkit.errors import ConstructionError

__all__ = ["QuadratureTable", "UniformQuadratureTable", "GeneralQuadratureTable"]


class QuadratureTable:
    def element_quadrature(self, element_index: int):
        """Return ``(weights, points)`` for ``element_index``."""
        raise NotImplementedError

    def element_data(self, element_index: int) -> Sequence[Any]:
        """Per-point data, one entry per quadrature point (``None`` when absent)."""
        raise NotImplementedError


def _check_rule(weights, points):
    weights = np.asarray(weights, dtype=float)
    points = np.asarray(points, dtype=float)
    if points.ndim == 1:
        points = points[:, None]
    if weights.shape[0] != points.shape[0]:
        raise ConstructionError(f"{weights.shape[0]} weights but {points.shape[0]} points.")
    return weights, points


class UniformQuadratureTable(QuadratureTable):
    """Same rule and same per-point data for every element."""

    def __init__(self, weights, points, data: Optional[Sequence[Any]] = None):
        self.weights, self.points = _check_rule(weights, points)
        if data is None:
            data = [None] * len(self.weights)
        if len(data) != len(self.weights):
            raise ConstructionError(f"{len(data)} data entries for {len(self.weights)} quadrature points.")
        self.data = list(data)

    @classmethod
    def with_uniform_data(cls, weights, points, value):
        return cls(weights, points, [value] * len(weights))

    def element_quadrature(self, element_index: int):
        return self.weights, self.points

    def element_data(self, element_index: int):
        return self.data


class GeneralQuadratureTable(QuadratureTable):
    """Individual rule (and data) for each element."""

    def __init__(self, rules, data=None):
        self.rules = [_check_rule(w, p) for w, p in rules]
        if data is None:
            data = [[None] * len(w) for w, _ in self.rules]
        if len(data) != len(self.rules):
            raise ConstructionError(f"{len(data)} data lists for {len(self.rules)} elements.")
        for e, (entries, (w, _)) in enumerate(zip(data, self.rules)):
            if len(entries) != len(w):
                raise ConstructionError(f"Element {e}: {len(entries)} data entries for {len(w)} points.")
        self.data = [list(d) for d in data]

    def element_quadrature(self, element_index: int):
        return self.rules[element_index]

    def element_data(self, element_index: int):
        return self.data[element_index]
