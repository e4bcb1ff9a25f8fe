# conftest.py
import logging

import pytest

from pyfemkit.assembly.local_assembler import (
    ElementMatrixAssembler,
    ElementScalarAssembler,
    ElementVectorAssembler,
)
from pyfemkit.core.mesh import Mesh
from pyfemkit.errors import AssemblyError
from pyfemkit.fem.space import LagrangeSpace
from pyfemkit.utils.meshgen import structured_quad, structured_tets, structured_triangles


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    """Run every test with pyfemkit debug logging enabled."""
    caplog.set_level(logging.DEBUG, logger="pyfemkit")


@pytest.fixture
def tri_mesh():
    vertices, triangles = structured_triangles(1.0, 1.0, nx=2, ny=2)
    return Mesh(vertices, triangles, element_type="tri")


@pytest.fixture
def quad_mesh():
    vertices, quads = structured_quad(2.0, 1.0, nx=2, ny=1)
    return Mesh(vertices, quads, element_type="quad")


@pytest.fixture
def tet_mesh():
    vertices, tets = structured_tets(1.0, 1.0, 1.0, nx=1, ny=1, nz=1)
    return Mesh(vertices, tets, element_type="tet")


@pytest.fixture
def tri_space(tri_mesh):
    return LagrangeSpace(tri_mesh)


class ChainAssembler(ElementMatrixAssembler, ElementVectorAssembler, ElementScalarAssembler):
    """Elements (e, e+1) on a chain of nodes; every local value equals ``value``."""

    def __init__(self, n_elems, n_nodes, value=1.0, s=1, fail_on=()):
        self.n_elems, self.n_nodes, self.value, self.s = n_elems, n_nodes, value, s
        self.fail_on = set(fail_on)

    def solution_dim(self):
        return self.s

    def num_elements(self):
        return self.n_elems

    def num_nodes(self):
        return self.n_nodes

    def element_node_count(self, element_index):
        return 2

    def populate_element_nodes(self, output, element_index):
        output[:] = [element_index, element_index + 1]

    def assemble_element_matrix_into(self, element_index, output):
        if element_index in self.fail_on:
            raise AssemblyError(element_index, "chain matrix", "boom")
        output[...] = self.value

    def assemble_element_vector_into(self, element_index, output):
        output[...] = self.value

    def assemble_element_scalar(self, element_index):
        if element_index in self.fail_on:
            raise AssemblyError(element_index, "chain scalar", "boom")
        return self.value


@pytest.fixture
def chain():
    return ChainAssembler
