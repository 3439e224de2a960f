import numpy as np

from _math import (
    model_matrix,
    normal_matrix,
    pivot_matrix,
    rotation_x,
    rotation_y,
    rotation_z,
    scale,
    translate,
)


def test_identity_model_matrix():
    np.testing.assert_allclose(model_matrix(), np.eye(4), atol=1e-7)


def test_model_matrix_order():
    m = model_matrix(position=(1.0, 2.0, 3.0), rotation_deg=(0.0, 90.0, 0.0), scaling=(2.0, 2.0, 2.0))
    expected = translate(1, 2, 3) @ rotation_y(np.pi / 2) @ scale(2, 2, 2)
    np.testing.assert_allclose(m, expected, atol=1e-6)
    # (1, 0, 0) -> 스케일 2 -> Y축 90도 회전 (0, 0, -2) -> 이동
    p = m @ np.array([1.0, 0.0, 0.0, 1.0])
    np.testing.assert_allclose(p[:3], [1.0, 2.0, 1.0], atol=1e-6)


def test_rotations_are_orthonormal():
    for rot in (rotation_x(0.3), rotation_y(-1.1), rotation_z(2.0)):
        r = rot[:3, :3].astype(np.float64)
        np.testing.assert_allclose(r @ r.T, np.eye(3), atol=1e-6)
        assert np.linalg.det(r) > 0


def test_normal_matrix_undoes_non_uniform_scale():
    m = scale(2.0, 1.0, 1.0)
    n = normal_matrix(m)
    np.testing.assert_allclose(np.diag(n), [0.5, 1.0, 1.0, 1.0])


def test_pivot_matrix_keeps_center_fixed():
    center = np.array([1.0, 2.0, 3.0])
    m = pivot_matrix(center, (0.0, 90.0, 0.0))
    np.testing.assert_allclose(m @ np.append(center, 1.0), np.append(center, 1.0), atol=1e-5)
    # Y 축 90도: 중심 기준 +x 오프셋이 -z 로
    moved = m @ np.array([2.0, 2.0, 3.0, 1.0])
    np.testing.assert_allclose(moved[:3], [1.0, 2.0, 2.0], atol=1e-5)


def test_pivot_matrix_without_rotation_is_identity():
    np.testing.assert_allclose(pivot_matrix((5.0, -1.0, 0.5)), np.eye(4), atol=1e-6)
    a = pivot_matrix((0.3, 0.0, 0.0), (0.0, 45.0, 0.0))
    b = pivot_matrix((0.3, 0.0, 0.0), (0.0, 45.0, 0.0))
    np.testing.assert_array_equal(a, b)
