# _obb.py
"""
PCA 기반 OBB (Oriented Bounding Box) 계산

점 집합의 공분산 행렬을 고유값 분해하여 세 개의 직교 축을 얻고,
각 축으로 투영한 [min, max] 범위를 구합니다. 축은 span(max - min)
오름차순으로 정렬됩니다 (axis1 = 가장 짧은 축).

VoxelFrame 은 OBB 축에 정렬된 복셀 격자 좌표계입니다. 복셀 크기는
초기 OBB 에서 한 번만 계산하고 모든 재귀 단계에서 그대로 재사용합니다.
"""
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from _mesh import BOX_CORNER_OFFSETS, BOX_TRIANGLES, MeshData


@dataclass
class OrientedBoundingBox:
    """
    Attributes
    ----------
    axes : np.ndarray
        (3, 3) 각 행이 단위 축 벡터, span 오름차순, 오른손 좌표계
    mins : np.ndarray
        (3,) 각 축 방향 최소 스칼라
    maxs : np.ndarray
        (3,) 각 축 방향 최대 스칼라
    """
    axes: np.ndarray
    mins: np.ndarray
    maxs: np.ndarray

    @property
    def spans(self) -> np.ndarray:
        return self.maxs - self.mins

    @property
    def longest_span(self) -> float:
        return float(self.spans.max())

    @property
    def center(self) -> np.ndarray:
        return ((self.mins + self.maxs) * 0.5) @ self.axes

    def corners(self) -> np.ndarray:
        """(8, 3) 월드 좌표 코너 (VTK Hexahedron 순서)"""
        local = self.mins + BOX_CORNER_OFFSETS * self.spans
        return local @ self.axes

    def __str__(self) -> str:
        lines = ["OrientedBoundingBox"]
        for k in range(3):
            a = self.axes[k]
            lines.append(
                f"  V{k + 1}: ({a[0]:+.4f}, {a[1]:+.4f}, {a[2]:+.4f})  "
                f"[{self.mins[k]:.4f}, {self.maxs[k]:.4f}]  span={self.spans[k]:.4f}"
            )
        c = self.center
        lines.append(f"  Center: ({c[0]:.4f}, {c[1]:.4f}, {c[2]:.4f})")
        return "\n".join(lines)


def fit_obb(points) -> OrientedBoundingBox:
    """
    점 집합에 대한 PCA OBB 를 계산합니다.

    Parameters
    ----------
    points : array-like
        (N, 3) 점 좌표

    Returns
    -------
    OrientedBoundingBox
        span 오름차순으로 정렬된 축과 범위
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(points) == 0:
        raise ValueError("빈 점 집합으로는 OBB를 계산할 수 없습니다.")

    centroid = points.mean(axis=0)
    centered = points - centroid
    covariance = centered.T @ centered

    # 대칭 행렬이므로 실수 직교 고유벡터 (열 벡터)
    _, eigenvectors = np.linalg.eigh(covariance)
    axes = eigenvectors.T.copy()

    projections = points @ axes.T
    mins = projections.min(axis=0)
    maxs = projections.max(axis=0)

    order = np.argsort(maxs - mins, kind="stable")
    axes, mins, maxs = axes[order], mins[order], maxs[order]

    # 박스 와인딩이 바깥을 향하도록 오른손 좌표계로 맞춤
    if np.linalg.det(axes) < 0:
        axes[2] = -axes[2]
        mins[2], maxs[2] = -maxs[2], -mins[2]

    return OrientedBoundingBox(axes=axes, mins=mins, maxs=maxs)


def obb_mesh(obb: OrientedBoundingBox, name: str = "obb") -> MeshData:
    """OBB 를 8 정점 / 12 삼각형 메쉬로 변환합니다 (시각화용)."""
    mesh = MeshData(positions=obb.corners(), triangles=BOX_TRIANGLES.copy(), name=name)
    mesh.generate_normals()
    return mesh


@dataclass
class VoxelFrame:
    """
    OBB 축 정렬 복셀 격자

    Attributes
    ----------
    axes : np.ndarray
        (3, 3) OBB 축
    origin : np.ndarray
        (3,) 확장된 최소 스칼라 (각 축 방향)
    voxel_size : float
        복셀 한 변의 길이
    dims : Tuple[int, int, int]
        각 축의 복셀 개수
    """
    axes: np.ndarray
    origin: np.ndarray
    voxel_size: float
    dims: Tuple[int, int, int]

    @classmethod
    def from_obb(cls, obb: OrientedBoundingBox, voxel_size: float) -> "VoxelFrame":
        """
        OBB 의 반폭을 voxel_size 의 배수로 올림(ceil)하고 양쪽에 1 복셀 여유를 둡니다.
        """
        if voxel_size <= 0:
            raise ValueError("voxel_size는 0보다 커야 합니다.")
        center = (obb.mins + obb.maxs) * 0.5
        half = (obb.maxs - obb.mins) * 0.5
        n_half = np.ceil(half / voxel_size).astype(np.int64) + 1
        origin = center - n_half * voxel_size
        dims = tuple(int(n) for n in 2 * n_half)
        return cls(axes=obb.axes.copy(), origin=origin, voxel_size=float(voxel_size), dims=dims)

    def project(self, points: np.ndarray) -> np.ndarray:
        """월드 좌표 -> 축 스칼라 좌표"""
        return np.asarray(points, dtype=np.float64).reshape(-1, 3) @ self.axes.T

    def point_to_index(self, points: np.ndarray) -> np.ndarray:
        """월드 좌표 -> (M, 3) 정수 복셀 인덱스 (격자 밖은 경계로 clamp)"""
        scaled = (self.project(points) - self.origin) / self.voxel_size
        idx = np.floor(scaled).astype(np.int64)
        return np.clip(idx, 0, np.asarray(self.dims) - 1)

    def index_to_world(self, coords: np.ndarray) -> np.ndarray:
        """복셀 인덱스 공간 좌표(실수 허용) -> 월드 좌표"""
        coords = np.asarray(coords, dtype=np.float64).reshape(-1, 3)
        return (self.origin + coords * self.voxel_size) @ self.axes

    def voxel_centers(self, indices: np.ndarray) -> np.ndarray:
        """정수 복셀 인덱스 -> 복셀 중심 월드 좌표"""
        return self.index_to_world(np.asarray(indices, dtype=np.float64) + 0.5)
