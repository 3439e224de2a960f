# _math.py
"""
렌더러용 4x4 변환 행렬 (row-major float32, 셰이더로 보낼 때 column-major 로 변환)

모델 행렬은 M = T · Rx · Ry · Rz · S 순서로 조합합니다.
"""
import numpy as np
from math import cos, sin, tan, radians


# 행렬 생성 함수 (전부 numpy.ndarray 반환)
def perspective(fovy_radians: float, aspect: float, near: float, far: float) -> np.ndarray:
    """원근 투영 행렬을 생성합니다."""
    f = 1.0 / tan(fovy_radians / 2.0)
    m = np.zeros((4, 4), dtype=np.float32)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = (2 * far * near) / (near - far)
    m[3, 2] = -1.0
    return m


def look_at(eye: np.ndarray, target: np.ndarray, up: np.ndarray) -> np.ndarray:
    """뷰(View) 행렬을 생성합니다."""
    f = target - eye
    f = f / np.linalg.norm(f)
    s = np.cross(f, up)
    s = s / np.linalg.norm(s)
    u = np.cross(s, f)

    m = np.eye(4, dtype=np.float32)
    m[0, :3] = s
    m[1, :3] = u
    m[2, :3] = -f
    m[0, 3] = -np.dot(s, eye)
    m[1, 3] = -np.dot(u, eye)
    m[2, 3] = np.dot(f, eye)
    return m


def rotation_x(angle: float) -> np.ndarray:
    """X축 회전 행렬 (라디안)"""
    c, s = cos(angle), sin(angle)
    m = np.eye(4, dtype=np.float32)
    m[1, 1], m[1, 2] = c, -s
    m[2, 1], m[2, 2] = s, c
    return m


def rotation_y(angle: float) -> np.ndarray:
    """Y축 회전 행렬 (라디안)"""
    c, s = cos(angle), sin(angle)
    m = np.eye(4, dtype=np.float32)
    m[0, 0], m[0, 2] = c, s
    m[2, 0], m[2, 2] = -s, c
    return m


def rotation_z(angle: float) -> np.ndarray:
    """Z축 회전 행렬 (라디안)"""
    c, s = cos(angle), sin(angle)
    m = np.eye(4, dtype=np.float32)
    m[0, 0], m[0, 1] = c, -s
    m[1, 0], m[1, 1] = s, c
    return m


def translate(x: float, y: float, z: float) -> np.ndarray:
    """이동(Translation) 행렬을 생성합니다."""
    m = np.eye(4, dtype=np.float32)
    # row-major 행렬에 translation을 마지막 열에 기록
    m[0, 3] = x
    m[1, 3] = y
    m[2, 3] = z
    return m


def scale(x: float, y: float, z: float) -> np.ndarray:
    """스케일 행렬을 생성합니다."""
    return np.diag([x, y, z, 1.0]).astype(np.float32)


def model_matrix(position=(0.0, 0.0, 0.0), rotation_deg=(0.0, 0.0, 0.0), scaling=(1.0, 1.0, 1.0)) -> np.ndarray:
    """
    위치 / 오일러 회전(도) / 스케일로 모델 행렬을 만듭니다.

    Examples
    --------
    >>> m = model_matrix(position=(1, 0, 0))
    >>> m[:3, 3].tolist()
    [1.0, 0.0, 0.0]
    """
    rx, ry, rz = (radians(a) for a in rotation_deg)
    return (
        translate(*position)
        @ rotation_x(rx)
        @ rotation_y(ry)
        @ rotation_z(rz)
        @ scale(*scaling)
    )


def normal_matrix(model: np.ndarray) -> np.ndarray:
    """법선 변환 행렬: (Model 의 3x3 역행렬의 전치)의 4x4 형태"""
    normal = np.eye(4, dtype=np.float32)
    normal[:3, :3] = np.linalg.inv(model[:3, :3]).T
    return normal


def pivot_matrix(center, rotation_deg=(0.0, 0.0, 0.0)) -> np.ndarray:
    """center 를 고정점으로 회전하는 모델 행렬 (T(c) · R · T(-c))"""
    c = np.asarray(center, dtype=np.float32)
    return model_matrix(position=c, rotation_deg=rotation_deg) @ model_matrix(position=-c)
