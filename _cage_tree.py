# _cage_tree.py
"""
OBB 공간 분할을 통한 케이지 트리 생성

점 집합을 OBB 정렬 복셀 격자에 넣어 복셀별 점 개수(occupancy)를 세고,
가장 긴 축부터 단면적 프로파일 f(x) 의 "잘록한 허리"(국소 최소에서 인접
국소 최대로의 기울기가 가장 큰 지점)를 찾아 재귀적으로 자릅니다.
리프는 8 코너 / 12 삼각형 박스가 되고, 두 자식의 정점/삼각형 리스트를
이어 붙여(stitch) 최종 케이지 메쉬를 만듭니다.

모든 좌표는 복셀 인덱스 공간 (V1, V2, V3 축)에서 다루며,
to_mesh() 에서 VoxelFrame 을 이용해 월드 좌표로 변환합니다.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from _logging_config import get_logger
from _mesh import BOX_CORNER_OFFSETS, BOX_TRIANGLES, MeshData
from _obb import VoxelFrame

logger = get_logger(__name__)

# ((min1, max1), (min2, max2), (min3, max3)) - 양 끝 포함
Ranges = Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]

NO_SPLIT = -1


@dataclass
class MeshTree:
    """
    케이지 트리 노드의 메쉬 (복셀 인덱스 공간)

    Attributes
    ----------
    vertex_coords : np.ndarray
        (V, 3) 정점 좌표 (.x = V1 축, .y = V2 축, .z = V3 축)
    face_indices : np.ndarray
        (T, 3) 삼각형 인덱스 (CCW)
    n_leaves : int
        이 노드 아래 리프 박스 개수
    """
    vertex_coords: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    face_indices: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.uint32))
    n_leaves: int = 0

    @property
    def n_vertices(self) -> int:
        return len(self.vertex_coords)

    def stitch(self, other: "MeshTree") -> "MeshTree":
        """두 자식 메쉬를 이어 붙입니다. other 의 인덱스는 self 정점 수만큼 이동합니다."""
        offset = self.n_vertices
        return MeshTree(
            vertex_coords=np.vstack([self.vertex_coords, other.vertex_coords]),
            face_indices=np.vstack([self.face_indices, other.face_indices + np.uint32(offset)]).astype(np.uint32),
            n_leaves=self.n_leaves + other.n_leaves,
        )

    def to_mesh(self, frame: VoxelFrame, name: str = "cage") -> MeshData:
        """복셀 인덱스 공간 좌표를 월드 좌표 MeshData 로 변환합니다."""
        mesh = MeshData(
            positions=frame.index_to_world(self.vertex_coords),
            triangles=self.face_indices.copy(),
            name=name,
        )
        mesh.generate_normals()
        return mesh


def generate_obb_space(points: np.ndarray, frame: VoxelFrame) -> np.ndarray:
    """
    점 집합을 복셀 격자에 넣어 복셀별 점 개수를 셉니다.

    격자 밖의 점은 경계 복셀로 clamp 되므로 총합은 항상 점 개수와 같습니다.
    """
    occupancy = np.zeros(frame.dims, dtype=np.int64)
    if len(points) == 0:
        return occupancy
    idx = frame.point_to_index(points)
    np.add.at(occupancy, (idx[:, 0], idx[:, 1], idx[:, 2]), 1)
    return occupancy


def full_ranges(occupancy: np.ndarray) -> Ranges:
    d1, d2, d3 = occupancy.shape
    return ((0, d1 - 1), (0, d2 - 1), (0, d3 - 1))


def _block(occupancy: np.ndarray, ranges: Ranges) -> np.ndarray:
    (a0, a1), (b0, b1), (c0, c1) = ranges
    return occupancy[a0:a1 + 1, b0:b1 + 1, c0:c1 + 1]


def cross_section_profile(occupancy: np.ndarray, ranges: Ranges, axis: int) -> np.ndarray:
    """axis 를 따라 각 인덱스의 단면 점 개수 f(x)"""
    others = tuple(a for a in range(3) if a != axis)
    return _block(occupancy, ranges).sum(axis=others)


def trim_ranges(occupancy: np.ndarray, ranges: Ranges) -> Optional[Ranges]:
    """각 축 범위를 단면 점 개수가 0이 아닌 첫/마지막 인덱스로 줄입니다. 비어 있으면 None."""
    trimmed = []
    for axis in range(3):
        nonzero = np.flatnonzero(cross_section_profile(occupancy, ranges, axis))
        if len(nonzero) == 0:
            return None
        lo = ranges[axis][0]
        trimmed.append((lo + int(nonzero[0]), lo + int(nonzero[-1])))
    return tuple(trimmed)


def classify_extrema(profile: Sequence[float], boundary_margin: int = 10) -> Tuple[List[int], List[int]]:
    """
    프로파일의 국소 최대/최소 인덱스를 찾습니다.

    - 양 끝 인덱스는 최대만 될 수 있습니다.
    - 평탄 구간은 적어도 한쪽 이웃과 엄격히 달라야 극값이 됩니다.
    - 양 끝에서 boundary_margin 개 이내의 인덱스는 최소로 인정하지 않습니다.
    """
    f = np.asarray(profile, dtype=np.float64)
    n = len(f)
    maxima: List[int] = []
    minima: List[int] = []
    if n == 0:
        return maxima, minima
    if n == 1:
        return [0], minima

    for x in range(n):
        if x == 0 or x == n - 1:
            neighbour = f[1] if x == 0 else f[n - 2]
            if f[x] >= neighbour:
                maxima.append(x)
            continue

        left, right = f[x - 1], f[x + 1]
        if f[x] >= left and f[x] >= right and (f[x] > left or f[x] > right):
            maxima.append(x)
        elif f[x] <= left and f[x] <= right and (f[x] < left or f[x] < right):
            if boundary_margin <= x < n - boundary_margin:
                minima.append(x)
    return maxima, minima


def profile_splice_index(
    profile: Sequence[float],
    boundary_margin: int = 10,
    min_slope: float = 0.0,
) -> int:
    """
    1차원 단면 프로파일에서 분할 인덱스를 찾습니다.

    각 국소 최소에서 임의의 국소 최대까지의 기울기 (f[M] - f[m]) / |M - m| 중
    전역 최대(min_slope 보다 큰 값)를 갖는 최소 인덱스를 반환합니다.
    동률이면 왼쪽부터 먼저 찾은 것이 이깁니다.

    Returns
    -------
    int
        프로파일 내 상대 인덱스, 없으면 NO_SPLIT (-1)
    """
    f = np.asarray(profile, dtype=np.float64)
    maxima, minima = classify_extrema(f, boundary_margin)
    if not minima:
        return NO_SPLIT

    best_index = NO_SPLIT
    best_slope = min_slope
    for m in minima:
        for peak in maxima:
            slope = (f[peak] - f[m]) / abs(peak - m)
            if slope > best_slope:
                best_slope = slope
                best_index = m
    return best_index


def search_splice_index(
    occupancy: np.ndarray,
    ranges: Ranges,
    axis: int,
    boundary_margin: int = 10,
    min_slope: float = 0.0,
) -> int:
    """현재 범위에서 axis 방향 분할 인덱스(절대 인덱스)를 찾습니다. 없으면 -1."""
    profile = cross_section_profile(occupancy, ranges, axis)
    rel = profile_splice_index(profile, boundary_margin, min_slope)
    if rel == NO_SPLIT:
        return NO_SPLIT
    return ranges[axis][0] + rel


def terminate_tree(ranges: Ranges) -> MeshTree:
    """범위를 감싸는 리프 박스 (8 코너, 12 삼각형). 코너는 복셀 경계(min, max + 1)에 놓입니다."""
    lo = np.array([r[0] for r in ranges], dtype=np.float64)
    hi = np.array([r[1] + 1 for r in ranges], dtype=np.float64)
    return MeshTree(
        vertex_coords=lo + BOX_CORNER_OFFSETS * (hi - lo),
        face_indices=BOX_TRIANGLES.copy(),
        n_leaves=1,
    )


def axis_search_order(ranges: Ranges) -> List[int]:
    """가장 긴 축부터. 길이가 같으면 인덱스가 작은 축이 먼저."""
    lengths = [r[1] - r[0] + 1 for r in ranges]
    return sorted(range(3), key=lambda a: -lengths[a])


def build_tree(
    occupancy: np.ndarray,
    ranges: Optional[Ranges] = None,
    depth: int = 0,
    max_depth: int = 100,
    boundary_margin: int = 10,
    min_slope: float = 0.0,
) -> MeshTree:
    """
    occupancy 격자를 재귀적으로 분할하여 리프 박스들을 이어 붙인 메쉬를 만듭니다.

    Parameters
    ----------
    occupancy : np.ndarray
        (d1, d2, d3) 복셀별 점 개수
    ranges : Ranges, optional
        현재 노드의 인덱스 범위 (기본값: 전체 격자)
    depth : int
        현재 재귀 깊이
    max_depth : int
        이 깊이에 도달하면 리프로 종료
    boundary_margin, min_slope
        search_splice_index 파라미터

    Returns
    -------
    MeshTree
        스티칭된 정점/삼각형 (점이 없으면 빈 트리)
    """
    if ranges is None:
        ranges = full_ranges(occupancy)

    trimmed = trim_ranges(occupancy, ranges)
    if trimmed is None:
        return MeshTree()

    if depth >= max_depth:
        return terminate_tree(trimmed)

    for axis in axis_search_order(trimmed):
        split = search_splice_index(occupancy, trimmed, axis, boundary_margin, min_slope)
        if split != NO_SPLIT:
            break
    else:
        return terminate_tree(trimmed)

    logger.debug(f"{'  ' * depth}depth {depth}: V{axis + 1} 축 인덱스 {split}에서 분할")

    low = list(trimmed)
    high = list(trimmed)
    low[axis] = (trimmed[axis][0], split)
    high[axis] = (split + 1, trimmed[axis][1])

    low_tree = build_tree(occupancy, tuple(low), depth + 1, max_depth, boundary_margin, min_slope)
    high_tree = build_tree(occupancy, tuple(high), depth + 1, max_depth, boundary_margin, min_slope)
    return low_tree.stitch(high_tree)
