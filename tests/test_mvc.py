import logging

import numpy as np
import pytest

from _mesh import MeshData
from _mvc import CoordinateType, MeanValueWeightSolver, compute_weights, weights_match


def test_single_triangle_weights_are_symmetric():
    cage = MeshData(positions=[[1, 0, 0], [0, 1, 0], [0, 0, 1]], triangles=[[0, 1, 2]])
    model = MeshData(positions=[[0, 0, 0]])
    weights = compute_weights(model, cage)
    assert weights.shape == (1, 3)
    np.testing.assert_allclose(weights[0], [1 / 3, 1 / 3, 1 / 3], atol=1e-6)


def test_rows_sum_to_one(cube_cage, inner_model):
    weights = compute_weights(inner_model, cube_cage)
    assert weights.shape == (inner_model.n_vertices, cube_cage.n_vertices)
    np.testing.assert_allclose(weights.sum(axis=1), 1.0, atol=1e-4)


def test_weights_reproduce_model_positions(cube_cage, inner_model):
    weights = compute_weights(inner_model, cube_cage)
    np.testing.assert_allclose(weights @ cube_cage.positions, inner_model.positions, atol=1e-5)


def test_point_on_cage_face_uses_planar_weights(cube_cage):
    point = np.array([[0.2, 0.3, -1.0]])
    weights = compute_weights(MeshData(positions=point), cube_cage)
    assert weights.shape == (1, 8)
    np.testing.assert_allclose(weights.sum(), 1.0, atol=1e-6)
    np.testing.assert_allclose(weights @ cube_cage.positions, point, atol=1e-5)
    # 바닥면 (z = -1) 정점에만 가중치
    top = cube_cage.positions[:, 2] > 0
    np.testing.assert_allclose(weights[0, top], 0.0, atol=1e-12)


def test_coincident_vertex_aborts_whole_matrix(cube_cage, inner_model):
    positions = np.vstack([inner_model.positions, cube_cage.positions[3]])
    model = MeshData(positions=positions)
    weights = compute_weights(model, cube_cage)
    assert weights.size == 0


def test_missing_mesh_returns_empty(cube_cage):
    assert compute_weights(None, cube_cage).size == 0
    assert compute_weights(MeshData(), cube_cage).size == 0


@pytest.mark.parametrize("coordinate_type", [CoordinateType.HC, CoordinateType.GC])
def test_unsupported_coordinate_types(cube_cage, inner_model, coordinate_type):
    with pytest.raises(NotImplementedError):
        compute_weights(inner_model, cube_cage, coordinate_type=coordinate_type)


def test_solver_with_custom_epsilon(cube_cage, inner_model):
    solver = MeanValueWeightSolver(epsilon=1e-9, verbose=True)
    weights = solver.compute(inner_model, cube_cage)
    np.testing.assert_allclose(weights.sum(axis=1), 1.0, atol=1e-4)


def test_weights_match(cube_cage, inner_model):
    weights = compute_weights(inner_model, cube_cage)
    assert weights_match(weights, inner_model, cube_cage)
    assert not weights_match(weights, cube_cage, cube_cage)
    assert not weights_match(np.zeros((0, 0)), inner_model, cube_cage)


def _l_shaped_cage() -> MeshData:
    """L 자 단면 (x, y) 을 z 방향으로 [0, 1] 만큼 돌출한 오목 케이지 (12 정점, 20 삼각형)"""
    outline = [(0, 0), (2, 0), (2, 1), (1, 1), (1, 2), (0, 2)]
    positions = [(x, y, 0.0) for x, y in outline] + [(x, y, 1.0) for x, y in outline]
    fan = [(0, 1, 2), (0, 2, 3), (0, 3, 4), (0, 4, 5)]
    triangles = [(a, c, b) for a, b, c in fan]                    # 아래면 (-z)
    triangles += [(a + 6, b + 6, c + 6) for a, b, c in fan]       # 위면 (+z)
    for i in range(6):
        j = (i + 1) % 6
        triangles += [(i, j, j + 6), (i, j + 6, i + 6)]           # 옆면
    cage = MeshData(positions=positions, triangles=triangles, name="l_cage")
    cage.validate()
    return cage


def test_concave_cage_reproduces_points_with_negative_weights():
    cage = _l_shaped_cage()
    # (0.9, 1.0, 0.3) 은 y = 1 옆면의 평면 위에 있지만 그 면 바깥
    model = MeshData(positions=[[0.5, 1.5, 0.5], [1.5, 0.5, 0.5], [0.9, 1.0, 0.3]])
    weights = compute_weights(model, cage)
    assert weights.shape == (3, 12)
    assert np.all(np.isfinite(weights))
    np.testing.assert_allclose(weights.sum(axis=1), 1.0, atol=1e-6)
    np.testing.assert_allclose(weights @ cage.positions, model.positions, atol=1e-5)
    assert weights.min() < 0.0


def test_point_on_later_face_discards_earlier_triangles(cube_cage):
    # 위면 삼각형은 아래면 삼각형 다음에 처리됨
    point = np.array([[0.1, 0.2, 1.0]])
    weights = compute_weights(MeshData(positions=point), cube_cage)
    np.testing.assert_allclose(weights.sum(), 1.0, atol=1e-6)
    np.testing.assert_allclose(weights @ cube_cage.positions, point, atol=1e-5)
    bottom = cube_cage.positions[:, 2] < 0
    np.testing.assert_allclose(weights[0, bottom], 0.0, atol=1e-12)


def test_zero_area_triangle_is_ignored(cube_cage, inner_model):
    with_sliver = MeshData(
        positions=cube_cage.positions,
        triangles=np.vstack([cube_cage.triangles, [[0, 1, 1]]]),
    )
    np.testing.assert_allclose(
        compute_weights(inner_model, with_sliver),
        compute_weights(inner_model, cube_cage),
        atol=1e-12,
    )


def test_zero_sum_row_is_left_unnormalized(caplog):
    # 퇴화 삼각형뿐인 케이지: 누적되는 가중치가 없음
    cage = MeshData(positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]], triangles=[[0, 1, 1]])
    model = MeshData(positions=[[0.2, 0.2, 0.5]])
    with caplog.at_level(logging.WARNING, logger="cagetool"):
        weights = compute_weights(model, cage)
    assert weights.shape == (1, 3)
    np.testing.assert_array_equal(weights, 0.0)
    assert "가중치 합이 0" in caplog.text
