import numpy as np
import pytest

from pyfemkit.assembly.elliptic import (
    ElementEllipticAssembler,
    LaplaceOperator,
    MaterialEllipticOperator,
)
from pyfemkit.assembly.global_matrix import assemble_matrix, assemble_scalar, assemble_vector
from pyfemkit.assembly.local_assembler import AggregateElementAssembler
from pyfemkit.assembly.mass import ElementMassAssembler
from pyfemkit.assembly.quadrature_table import UniformQuadratureTable
from pyfemkit.assembly.source import ElementSourceAssembler
from pyfemkit.core.dims import Symmetry
from pyfemkit.core.mesh import Mesh
from pyfemkit.errors import AssemblyError
from pyfemkit.fem.space import LagrangeSpace
from pyfemkit.integration.quadrature import segment, triangle
from pyfemkit.solid.materials import LameParameters, LinearElasticMaterial, NeoHookeanMaterial
from pyfemkit.utils.meshgen import structured_segments


@pytest.fixture
def qt():
    return UniformQuadratureTable(*triangle(2))


def test_laplace_matrix(tri_space, qt):
    K = assemble_matrix(ElementEllipticAssembler(tri_space, LaplaceOperator(), qt))
    assert K.format == "csr"
    assert K.shape == (9, 9)
    assert np.allclose(K.sum(axis=1), 0.0)
    assert np.allclose((K - K.T).toarray(), 0.0)


def test_mass_sums_to_area(tri_space, qt):
    M = assemble_matrix(ElementMassAssembler(tri_space, qt))
    assert np.isclose(M.sum(), 1.0)


def test_symmetric_storage(tri_space, qt):
    asm = ElementEllipticAssembler(tri_space, LaplaceOperator(), qt)
    K = assemble_matrix(asm).toarray()
    U = assemble_matrix(asm, symmetry=Symmetry.SYMMETRIC).toarray()
    assert np.allclose(np.tril(U, -1), 0.0)
    assert np.allclose(U + U.T - np.diag(np.diag(U)), K)


def test_source_vector(tri_space, qt):
    f = assemble_vector(ElementSourceAssembler(tri_space, qt, lambda x, data: 1.0))
    assert f.shape == (9,)
    assert np.isclose(f.sum(), 1.0)
    g = assemble_vector(ElementSourceAssembler(tri_space, qt, lambda x, data: [1.0, x[0]], solution_dim=2))
    assert np.isclose(g[0::2].sum(), 1.0)
    assert np.isclose(g[1::2].sum(), 0.5)


def test_source_with_wrong_shape(tri_space, qt):
    asm = ElementSourceAssembler(tri_space, qt, lambda x, data: [1.0, 2.0])
    with pytest.raises(AssemblyError):
        assemble_vector(asm)


def test_laplace_energy_and_residual(tri_space, tri_mesh, qt):
    u = tri_mesh.vertices[:, 0].copy()          # u = x
    asm = ElementEllipticAssembler(tri_space, LaplaceOperator(), qt, u=u)
    assert np.isclose(assemble_scalar(asm), 0.5)
    K = assemble_matrix(asm)
    assert np.allclose(assemble_vector(asm), K @ u)


def test_two_bodies_through_aggregate(tri_space, qt):
    n = tri_space.num_nodes()
    single = ElementEllipticAssembler(tri_space, LaplaceOperator(), qt)
    first = single.map_element_nodes(2 * n, lambda i: i)
    second = single.map_element_nodes(2 * n, lambda i: i + n)
    K = assemble_matrix(AggregateElementAssembler([first, second])).toarray()
    K1 = assemble_matrix(single).toarray()
    assert K.shape == (2 * n, 2 * n)
    assert np.allclose(K[:n, :n], K1)
    assert np.allclose(K[n:, n:], K1)
    assert np.allclose(K[:n, n:], 0.0)


def test_on_error_policy(chain):
    failing = chain(3, 4, fail_on=[1])
    with pytest.raises(AssemblyError):
        assemble_matrix(failing)
    K = assemble_matrix(failing, on_error="skip").toarray()
    assert np.allclose(K[0, 0], 1.0)
    assert np.allclose(K[1, 1], 1.0)
    assert np.allclose(K[1, 2], 0.0)
    assert assemble_scalar(failing, on_error="skip") == 2.0
    with pytest.raises(ValueError):
        assemble_matrix(failing, on_error="ignore")


def test_linear_elasticity_rigid_translation(tri_space, tri_mesh, qt):
    params = LameParameters(mu=1.0, lambda_=2.0)
    op = MaterialEllipticOperator(LinearElasticMaterial(), params)
    n = tri_mesh.num_nodes()
    u = np.tile([0.3, -0.1], n)
    asm = ElementEllipticAssembler(tri_space, op, qt, u=u)
    assert asm.solution_dim() == 2
    K = assemble_matrix(asm)
    assert K.shape == (2 * n, 2 * n)
    assert np.allclose((K - K.T).toarray(), 0.0)
    assert np.allclose(K @ u, 0.0)
    assert np.allclose(assemble_vector(asm), 0.0)
    assert np.isclose(assemble_scalar(asm), 0.0)


def test_neo_hookean_tangent_matches_residual(tri_space, tri_mesh, qt):
    params = LameParameters(mu=1.0, lambda_=2.0)
    op = MaterialEllipticOperator(NeoHookeanMaterial(), params)
    X = tri_mesh.vertices
    u = np.column_stack([0.05 * X[:, 0] * X[:, 1], -0.03 * X[:, 0]]).ravel()
    K = assemble_matrix(ElementEllipticAssembler(tri_space, op, qt, u=u)).toarray()
    du = np.zeros_like(u)
    du[5] = 1.0
    h = 1e-6
    fp = assemble_vector(ElementEllipticAssembler(tri_space, op, qt, u=u + h * du))
    fm = assemble_vector(ElementEllipticAssembler(tri_space, op, qt, u=u - h * du))
    assert np.allclose((fp - fm) / (2 * h), K @ du, atol=1e-6)


def test_neo_hookean_collapse_is_assembly_error(tri_space, tri_mesh, qt):
    op = MaterialEllipticOperator(NeoHookeanMaterial(), LameParameters(mu=1.0, lambda_=1.0))
    u = (-2.0 * tri_mesh.vertices).ravel()
    u[0::2] = 0.0                                 # u_y = -2y gives det F = -1
    asm = ElementEllipticAssembler(tri_space, op, qt, u=u)
    with pytest.raises(AssemblyError):
        assemble_scalar(asm)
    assert assemble_scalar(asm, on_error="skip") == 0.0


def test_neo_hookean_bar():
    vertices, segs = structured_segments(1.0, nx=2)
    space = LagrangeSpace(Mesh(vertices, segs, element_type="segment"))
    qt = UniformQuadratureTable(*segment(2))
    params = LameParameters(mu=1.0, lambda_=2.0)
    op = MaterialEllipticOperator(NeoHookeanMaterial(), params)

    rest = ElementEllipticAssembler(space, op, qt)
    assert np.isclose(assemble_scalar(rest), 0.0)
    assert np.allclose(assemble_vector(rest), 0.0)

    # u = x/2 stretches the bar uniformly to F = 1.5
    stretched = ElementEllipticAssembler(space, op, qt, u=0.5 * vertices[:, 0])
    log_J = np.log(1.5)
    psi = 0.5 * (1.5 ** 2 - 1.0) - log_J + log_J ** 2
    assert np.isclose(assemble_scalar(stretched), psi)
    P = 1.5 - 1.0 / 1.5 + 2.0 * log_J / 1.5
    assert np.allclose(assemble_vector(stretched), [-P, 0.0, P])
    K = assemble_matrix(stretched).toarray()
    assert np.allclose(K, K.T)
    assert np.allclose(K.sum(axis=1), 0.0)
