import numpy as np
import pytest

from _cage_gen import CageGenerator, generate_cage
from _config import CageToolConfig
from _mesh import MeshData


@pytest.fixture
def config():
    return CageToolConfig(voxel_resolution=16, max_depth=4, boundary_margin=2)


def test_dumbbell_cage_is_split(dumbbell_mesh, config):
    result = CageGenerator(config).generate(dumbbell_mesh)
    assert result.n_leaves >= 2
    assert result.cage.n_vertices == 8 * result.n_leaves
    assert result.cage.n_triangles == 12 * result.n_leaves
    assert int(result.cage.triangles.max()) < result.cage.n_vertices
    assert result.voxel_size == pytest.approx(result.initial_obb.longest_span / 16)
    assert result.occupancy.sum() == len(result.point_set)
    assert "Leaf boxes" in str(result)


def test_every_model_vertex_lies_in_a_leaf_box(dumbbell_mesh, config):
    result = CageGenerator(config).generate(dumbbell_mesh)
    idx = result.frame.point_to_index(dumbbell_mesh.positions)
    leaves = result.tree.vertex_coords.reshape(result.n_leaves, 8, 3)
    lo = leaves.min(axis=1)
    hi = leaves.max(axis=1)
    inside = np.all((idx[:, None, :] >= lo[None]) & (idx[:, None, :] < hi[None]), axis=2)
    assert inside.any(axis=1).all()


def test_single_box_cage_encloses_model(dumbbell_mesh):
    cage = generate_cage(dumbbell_mesh, voxel_resolution=16, max_depth=0)
    assert cage.n_vertices == 8
    assert cage.n_triangles == 12
    assert len(cage.normals) == 8

    # 모델 정점은 모두 케이지 면의 안쪽 (바깥 법선 방향으로 음수)
    tri = cage.triangles.astype(np.int64)
    p = cage.positions[tri[:, 0]]
    n = np.cross(cage.positions[tri[:, 1]] - p, cage.positions[tri[:, 2]] - cage.positions[tri[:, 1]])
    signed = np.einsum("fk,vfk->vf", n, dumbbell_mesh.positions[:, None, :] - p[None])
    assert np.all(signed <= 1e-9)


def test_generate_rejects_empty_model():
    with pytest.raises(ValueError):
        CageGenerator().generate(MeshData())
