import numpy as np
import pytest

from pyfemkit.core.geometry import AxisAlignedBoundingBox
from pyfemkit.errors import ConstructionError, UnsupportedDimensionError
from pyfemkit.interpolation.spatial_index import BoundingBoxIndex


def random_boxes(rng, n, dim):
    lo = rng.uniform(0.0, 10.0, size=(n, dim))
    return [AxisAlignedBoundingBox(p, p + rng.uniform(0.1, 1.0, size=dim)) for p in lo]


@pytest.mark.parametrize("dim", [2, 3])
def test_nearest_matches_brute_force(dim):
    rng = np.random.default_rng(7)
    boxes = random_boxes(rng, 200, dim)
    index = BoundingBoxIndex(boxes)
    assert len(index) == 200
    for p in rng.uniform(-2.0, 12.0, size=(50, dim)):
        dists = np.array([b.distance_to(p) for b in boxes])
        i, d = index.nearest(p)
        assert np.isclose(d, dists.min())
        assert i == int(np.flatnonzero(dists == dists.min())[0])


def test_within_distance_is_sorted():
    rng = np.random.default_rng(3)
    boxes = random_boxes(rng, 100, 2)
    index = BoundingBoxIndex(boxes)
    p = np.array([5.0, 5.0])
    dists, idx = index.within_distance(p, 2.0)
    expected = sorted(i for i, b in enumerate(boxes) if b.distance_to(p) <= 2.0)
    assert sorted(idx.tolist()) == expected
    assert np.all(np.diff(dists) >= 0)
    assert np.allclose(index.box_distances(p, idx), dists)


def test_ties_go_to_lowest_index():
    box = AxisAlignedBoundingBox([0.0, 0.0], [1.0, 1.0])
    index = BoundingBoxIndex([AxisAlignedBoundingBox([2.0, 2.0], [3.0, 3.0]), box, box])
    assert index.nearest([0.5, 0.5]) == (1, 0.0)


def test_construction_errors():
    with pytest.raises(ConstructionError):
        BoundingBoxIndex([])
    with pytest.raises(ConstructionError):
        BoundingBoxIndex([AxisAlignedBoundingBox([0, 0], [1, 1]), AxisAlignedBoundingBox([0, 0, 0], [1, 1, 1])])
    with pytest.raises(UnsupportedDimensionError):
        BoundingBoxIndex([AxisAlignedBoundingBox([0.0], [1.0])])
    index = BoundingBoxIndex([AxisAlignedBoundingBox([0, 0], [1, 1])])
    with pytest.raises(ValueError):
        index.nearest([0.0, 0.0, 0.0])
