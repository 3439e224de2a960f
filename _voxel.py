# _voxel.py
"""
OBB 정렬 복셀화 및 복셀 분류 (outer / feature / inner)

1. OBB 를 voxel_size 배수로 확장한 격자를 만듭니다.
2. 각 삼각형 표면을 barycentric (u, v) 스윕으로 샘플링하여 통과하는 복셀을
   FEATURE 로 표시하고, 삼각형 면 법선을 복셀에 누적합니다.
3. 가장 짧은 축(스캔 축)을 따라 FEATURE 복셀 사이의 빈 구간을 검사하여,
   구간을 닫는 FEATURE 복셀의 평균 법선이 스캔 방향을 향하면(고체를 빠져나가는 면)
   그 구간을 INNER 로 표시합니다.
4. 모델 정점 + INNER/FEATURE 복셀 중심을 합쳐 증강 점 집합(point set P)을 만듭니다.
"""
from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from _logging_config import get_logger
from _mesh import MeshData, face_normals
from _obb import OrientedBoundingBox, VoxelFrame

logger = get_logger(__name__)


class VoxelLabel(IntEnum):
    OUTER = 0
    FEATURE = 1
    INNER = 2


@dataclass
class VoxelGrid:
    """복셀 분류 결과 격자"""
    frame: VoxelFrame
    labels: np.ndarray   # (d1, d2, d3) uint8
    normals: np.ndarray  # (d1, d2, d3, 3) FEATURE 복셀의 평균 면 법선

    def count(self, label: VoxelLabel) -> int:
        return int(np.count_nonzero(self.labels == label))

    def indices(self, *labels: VoxelLabel) -> np.ndarray:
        """주어진 라벨을 가진 복셀의 (M, 3) 인덱스"""
        mask = np.isin(self.labels, [int(lb) for lb in labels])
        return np.argwhere(mask)


@dataclass
class VoxelizationResult:
    """복셀 분류 결과와 증강 점 집합"""
    grid: VoxelGrid
    point_set: np.ndarray
    n_model_points: int

    def __str__(self) -> str:
        return (
            f"Voxelization Result\n"
            f"  Grid: {self.grid.frame.dims}, voxel size {self.grid.frame.voxel_size:.5f}\n"
            f"  Feature voxels: {self.grid.count(VoxelLabel.FEATURE):,}\n"
            f"  Inner voxels: {self.grid.count(VoxelLabel.INNER):,}\n"
            f"  Point set: {len(self.point_set):,} ({self.n_model_points:,} model vertices)"
        )


def sample_triangle(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray, frame: VoxelFrame) -> np.ndarray:
    """
    삼각형 표면을 barycentric (u, v) 스윕으로 이산화합니다.

    엣지를 OBB 축에 투영한 거리로 스텝 수를 정해 인접 샘플 간격이
    각 축 방향으로 1 복셀 이하가 되도록 합니다.
    """
    e1 = p2 - p1
    e2 = p3 - p1
    reach1 = np.abs(frame.axes @ e1).max() / frame.voxel_size
    reach2 = np.abs(frame.axes @ e2).max() / frame.voxel_size
    n1 = max(1, int(np.ceil(reach1)))
    n2 = max(1, int(np.ceil(reach2)))

    u, v = np.meshgrid(np.arange(n1 + 1) / n1, np.arange(n2 + 1) / n2, indexing="ij")
    inside = (u + v) <= 1.0 + 1e-9
    u = u[inside]
    v = v[inside]
    samples = p1 + u[:, None] * e1 + v[:, None] * e2
    return np.vstack([samples, p1, p2, p3])


def mark_feature_voxels(model: MeshData, frame: VoxelFrame):
    """
    표면이 지나가는 복셀을 FEATURE 로 표시하고 면 법선을 누적합니다.

    Returns
    -------
    labels, normals : np.ndarray, np.ndarray
    """
    labels = np.zeros(frame.dims, dtype=np.uint8)
    normals = np.zeros(frame.dims + (3,), dtype=np.float64)

    positions = model.positions
    triangles = model.triangles.astype(np.int64)
    fn = face_normals(positions, triangles)

    for t, (a, b, c) in enumerate(triangles):
        samples = sample_triangle(positions[a], positions[b], positions[c], frame)
        # 삼각형 하나당 복셀 하나에 한 번만 누적
        idx = np.unique(frame.point_to_index(samples), axis=0)
        i, j, k = idx[:, 0], idx[:, 1], idx[:, 2]
        labels[i, j, k] = VoxelLabel.FEATURE
        normals[i, j, k] += fn[t]

    lengths = np.linalg.norm(normals, axis=-1, keepdims=True)
    np.divide(normals, lengths, out=normals, where=lengths > 1e-12)
    return labels, normals


def fill_inner_voxels(labels: np.ndarray, normals: np.ndarray, scan_axis: np.ndarray) -> int:
    """
    스캔 축(격자 첫 번째 축) 방향의 각 라인에서 INNER 복셀을 채웁니다.

    첫 FEATURE 와 마지막 FEATURE 사이를 훑으며, 연속된 비-FEATURE 구간은
    그 구간을 닫는 FEATURE 복셀의 법선이 스캔 축과 양의 내적을 가질 때만 INNER 가 됩니다.

    Returns
    -------
    int
        새로 표시된 INNER 복셀 수
    """
    feature = labels == VoxelLabel.FEATURE
    front_facing = (normals @ scan_axis) > 0.0
    n_inner = 0

    _, d2, d3 = labels.shape
    for j in range(d2):
        for k in range(d3):
            hits = np.flatnonzero(feature[:, j, k])
            if len(hits) < 2:
                continue
            for start, end in zip(hits[:-1], hits[1:]):
                if end - start > 1 and front_facing[end, j, k]:
                    labels[start + 1:end, j, k] = VoxelLabel.INNER
                    n_inner += int(end - start - 1)
    return n_inner


def classify(
    model: MeshData,
    obb: OrientedBoundingBox,
    voxel_size: float,
    verbose: bool = False,
) -> VoxelizationResult:
    """
    모델을 OBB 정렬 격자로 복셀화하고 증강 점 집합을 생성합니다.

    Parameters
    ----------
    model : MeshData
        입력 삼각형 메쉬
    obb : OrientedBoundingBox
        모델의 PCA OBB
    voxel_size : float
        복셀 크기 (초기 OBB 에서 한 번 계산한 값)
    verbose : bool
        진행 상황 출력 여부

    Returns
    -------
    VoxelizationResult
        격자와 점 집합 (고유 모델 정점 + INNER/FEATURE 복셀 중심)
    """
    log = logger.info if verbose else logger.debug

    frame = VoxelFrame.from_obb(obb, voxel_size)
    log(f"복셀 격자 생성: {frame.dims}, voxel size {voxel_size:.5f}")

    labels, normals = mark_feature_voxels(model, frame)
    log(f"  FEATURE 복셀: {int(np.count_nonzero(labels == VoxelLabel.FEATURE)):,}")

    n_inner = fill_inner_voxels(labels, normals, frame.axes[0])
    log(f"  INNER 복셀: {n_inner:,}")

    grid = VoxelGrid(frame=frame, labels=labels, normals=normals)

    model_points = np.unique(model.positions, axis=0)
    voxel_points = frame.voxel_centers(grid.indices(VoxelLabel.INNER, VoxelLabel.FEATURE))
    point_set = np.vstack([model_points, voxel_points])

    result = VoxelizationResult(grid=grid, point_set=point_set, n_model_points=len(model_points))
    log(f"✓ 복셀 분류 완료: 점 집합 {len(point_set):,}개")
    return result
