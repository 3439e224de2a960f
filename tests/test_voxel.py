import numpy as np
import pytest

from _mesh import box_mesh
from _obb import VoxelFrame, fit_obb
from _voxel import VoxelLabel, classify, fill_inner_voxels, sample_triangle


@pytest.fixture
def slab():
    return box_mesh((-2.0, -1.0, -0.5), (2.0, 1.0, 0.5), name="slab")


def test_triangle_samples_are_dense_enough(slab):
    frame = VoxelFrame.from_obb(fit_obb(slab.positions), 0.1)
    p1, p2, p3 = np.array([0.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0])
    samples = sample_triangle(p1, p2, p3, frame)
    # 모든 샘플은 삼각형 위에 있음
    assert np.all(samples[:, 2] == 0.0)
    assert np.all(samples[:, :2].sum(axis=1) <= 1.0 + 1e-9)
    # 엣지를 따라 한 복셀보다 촘촘
    edge = samples[np.isclose(samples[:, 1], 0.0)]
    xs = np.sort(edge[:, 0])
    assert np.max(np.diff(xs)) <= 0.1 + 1e-9


def test_classify_slab(slab):
    obb = fit_obb(slab.positions)
    voxel_size = obb.longest_span / 32
    result = classify(slab, obb, voxel_size)
    grid = result.grid

    n_feature = grid.count(VoxelLabel.FEATURE)
    n_inner = grid.count(VoxelLabel.INNER)
    assert n_feature > 0
    assert n_inner > 0
    assert result.n_model_points == 8
    assert len(result.point_set) == 8 + n_feature + n_inner

    # INNER 복셀 중심은 슬래브 안쪽 (한 복셀 여유)
    inner = grid.frame.voxel_centers(grid.indices(VoxelLabel.INNER))
    lo, hi = slab.bounds()
    assert np.all(inner >= lo - voxel_size)
    assert np.all(inner <= hi + voxel_size)
    assert "Inner voxels" in str(result)


def test_feature_normals_are_unit_or_zero(slab):
    obb = fit_obb(slab.positions)
    result = classify(slab, obb, obb.longest_span / 16)
    lengths = np.linalg.norm(result.grid.normals, axis=-1)
    feature = result.grid.labels == VoxelLabel.FEATURE
    np.testing.assert_allclose(lengths[feature], 1.0, atol=1e-9)
    np.testing.assert_array_equal(lengths[~feature], 0.0)


def test_gap_closed_by_back_facing_voxel_is_not_filled():
    labels = np.zeros((6, 1, 1), dtype=np.uint8)
    normals = np.zeros((6, 1, 1, 3))
    labels[[0, 5], 0, 0] = VoxelLabel.FEATURE
    axis = np.array([1.0, 0.0, 0.0])

    normals[5, 0, 0] = -axis
    assert fill_inner_voxels(labels.copy(), normals, axis) == 0

    normals[5, 0, 0] = axis
    filled = labels.copy()
    assert fill_inner_voxels(filled, normals, axis) == 4
    assert np.all(filled[1:5, 0, 0] == VoxelLabel.INNER)
