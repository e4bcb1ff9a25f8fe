"""pyfemkit.interpolation.spatial_index
Nearest-box queries over element bounding boxes.
"""
import logging
import math

import numba
import numpy as np
from scipy.spatial import KDTree

from pyfemkit.core.dims import SpatialDim
from pyfemkit.errors import ConstructionError

logger = logging.getLogger(__name__)

__all__ = ["BoundingBoxIndex", "SUPPORTED_INDEX_DIMS"]

# TODO: index 1D meshes (segments) as well.
SUPPORTED_INDEX_DIMS = (2, 3)

_SEED_NEIGHBOURS = 8
_SLACK = 1e-12


@numba.jit(nopython=True, cache=True)
def _box_distances(mins, maxs, candidates, p):
    out = np.empty(candidates.shape[0])
    for c in range(candidates.shape[0]):
        k = candidates[c]
        acc = 0.0
        for d in range(p.shape[0]):
            below = mins[k, d] - p[d]
            above = p[d] - maxs[k, d]
            v = below if below > above else above
            if v > 0.0:
                acc += v * v
        out[c] = math.sqrt(acc)
    return out


class BoundingBoxIndex:
    """
    Immutable index over axis-aligned boxes, keyed by their position in ``boxes``.

    The boxes are bulk-loaded into a KD-tree over their centres. Because the
    distance from a point to a box is at least the distance to its centre minus
    the box half-diagonal, a ball query of radius ``r + max_half_diagonal``
    returns a superset of the boxes within distance ``r``; exact box distances
    then filter and order that superset.
    """

    def __init__(self, boxes):
        boxes = list(boxes)
        if not boxes:
            raise ConstructionError("Cannot build a bounding-box index without boxes")
        dims = {b.dim for b in boxes}
        if len(dims) != 1:
            raise ConstructionError(f"Bounding boxes have mixed dimensions {sorted(dims)}")
        self.dim = SpatialDim.from_value(dims.pop(), supported=SUPPORTED_INDEX_DIMS)

        self._mins = np.array([b.min for b in boxes], dtype=float)
        self._maxs = np.array([b.max for b in boxes], dtype=float)
        centers = 0.5 * (self._mins + self._maxs)
        self._max_radius = float(0.5 * np.linalg.norm(self._maxs - self._mins, axis=1).max())
        self._tree = KDTree(centers)
        logger.debug(f"Built {int(self.dim)}D bounding-box index over {len(boxes)} boxes")

    def __len__(self):
        return self._mins.shape[0]

    def _as_point(self, point):
        p = np.asarray(point, dtype=float).ravel()
        if p.shape[0] != int(self.dim):
            raise ValueError(f"Point has dimension {p.shape[0]}, index has dimension {int(self.dim)}")
        return p

    def box_distances(self, point, indices) -> np.ndarray:
        idx = np.asarray(indices, dtype=np.int64)
        return _box_distances(self._mins, self._maxs, idx, self._as_point(point))

    def within_distance(self, point, radius: float):
        """Boxes at distance <= ``radius``, as ``(distances, indices)`` sorted by distance then index."""
        p = self._as_point(point)
        ball = np.asarray(self._tree.query_ball_point(p, radius + self._max_radius + _SLACK * (1.0 + radius)), dtype=np.int64)
        if ball.size == 0:
            return np.empty(0), np.empty(0, dtype=np.int64)
        dist = _box_distances(self._mins, self._maxs, ball, p)
        keep = dist <= radius
        dist, ball = dist[keep], ball[keep]
        order = np.lexsort((ball, dist))
        return dist[order], ball[order]

    def nearest(self, point):
        """Return ``(index, distance)`` of the closest box; ties go to the lowest index."""
        p = self._as_point(point)
        k = min(_SEED_NEIGHBOURS, len(self))
        _, seeds = self._tree.query(p, k=k)
        seeds = np.atleast_1d(np.asarray(seeds, dtype=np.int64))
        d_seed = float(_box_distances(self._mins, self._maxs, seeds, p).min())
        dist, idx = self.within_distance(p, d_seed)
        return int(idx[0]), float(dist[0])
