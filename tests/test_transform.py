import numpy as np

from pyfemkit.core.mesh import Mesh
from pyfemkit.fem.transform import (
    closest_reference_point,
    det_jacobian,
    inverse_mapping,
    map_grad_scalar,
    x_mapping,
)


def test_reference_to_global_mapping():
    mesh = Mesh(np.array([[0.0, 0.0], [2.0, 0.0], [0.0, 1.0]]), np.array([[0, 1, 2]]), element_type="tri")
    x = x_mapping(mesh, 0, (1 / 3, 1 / 3))
    assert np.allclose(x, [2 / 3, 1 / 3])
    # detJ is twice the area
    assert np.isclose(det_jacobian(mesh, 0, (0.2, 0.2)), 2.0)
    assert np.allclose(inverse_mapping(mesh, 0, [0.5, 0.25]), [0.25, 0.25])


def test_physical_gradients(quad_mesh):
    ref = quad_mesh.reference
    xi = np.array([0.3, -0.2])
    grads = map_grad_scalar(quad_mesh, 1, ref.grad(xi), xi)
    u = 3.0 * quad_mesh.vertices[:, 0] - quad_mesh.vertices[:, 1]
    assert np.allclose(grads.T @ u[quad_mesh.connectivity[1]], [3.0, -1.0])


def test_closest_point_inside_and_outside(tri_mesh, quad_mesh):
    xi, dist = closest_reference_point(tri_mesh, 0, [0.3, 0.1])
    assert np.isclose(dist, 0.0)
    assert np.allclose(x_mapping(tri_mesh, 0, xi), [0.3, 0.1])

    # element 0 is (0,0)-(0.5,0)-(0.5,0.5); the closest point to (1.5, 0.2) is on its right edge
    xi, dist = closest_reference_point(tri_mesh, 0, [1.5, 0.2])
    assert np.isclose(dist, 1.0)
    assert np.allclose(x_mapping(tri_mesh, 0, xi), [0.5, 0.2])

    xi, dist = closest_reference_point(quad_mesh, 0, [-1.0, 2.0])
    assert np.isclose(dist, np.sqrt(2.0))
    assert np.allclose(xi, [-1.0, 1.0])


def test_closest_point_on_tetrahedron(tet_mesh):
    xi, dist = closest_reference_point(tet_mesh, 0, [0.9, 0.2, 0.1])
    assert np.isclose(dist, 0.0, atol=1e-12)
    assert np.allclose(x_mapping(tet_mesh, 0, xi), [0.9, 0.2, 0.1])
