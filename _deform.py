# _deform.py
"""
케이지 기반 모델 변형 (Deformation)

가중치 행렬 W 와 현재 케이지 정점 위치로 모델 정점을 다시 계산합니다:

    c_i = Σ_j W[i, j] · v_j

변형 후에는 모델 법선을 다시 계산하고, 리스너(렌더러)에게 위치와 법선만
다시 업로드하라고 알립니다 (토폴로지는 바뀌지 않음).
"""
from typing import Optional, Protocol

import numpy as np

from _logging_config import get_logger
from _mesh import MeshChange, MeshData
from _mvc import weights_match

logger = get_logger(__name__)


class MeshChangeListener(Protocol):
    """메쉬 정점 데이터가 바뀌었을 때 호출되는 인터페이스 (예: GPU 버퍼 재업로드)"""

    def on_mesh_vertices_changed(self, mesh: MeshData, changed: MeshChange) -> None:
        ...


def notify_change(listener: Optional[MeshChangeListener], mesh: MeshData, changed: MeshChange) -> None:
    if listener is not None:
        listener.on_mesh_vertices_changed(mesh, changed)


def deform(
    model: Optional[MeshData],
    cage: Optional[MeshData],
    weights: np.ndarray,
    listener: Optional[MeshChangeListener] = None,
) -> bool:
    """
    현재 케이지 위치로 모델 정점 위치를 갱신합니다 (in place).

    Returns
    -------
    bool
        변형이 적용되었으면 True. 메쉬나 가중치가 없으면 아무 것도 하지 않고 False.
    """
    if model is None or cage is None:
        logger.debug("모델 또는 케이지가 없어 변형을 건너뜁니다.")
        return False
    if not weights_match(weights, model, cage):
        logger.debug("유효한 가중치가 없어 변형을 건너뜁니다.")
        return False

    model.positions[:] = weights @ cage.positions
    model.generate_normals()

    notify_change(listener, model, MeshChange.POSITIONS | MeshChange.NORMALS)
    return True


def translate_selected(
    cage: Optional[MeshData],
    selected: np.ndarray,
    delta,
    model: Optional[MeshData] = None,
    weights: Optional[np.ndarray] = None,
    listener: Optional[MeshChangeListener] = None,
) -> bool:
    """
    선택된 케이지 정점을 delta 만큼 이동하고, 가중치가 있으면 모델을 변형합니다.

    자동으로 변형을 다시 일으키는 유일한 경로입니다.

    Returns
    -------
    bool
        하나라도 정점이 이동했으면 True
    """
    if cage is None:
        return False

    selected = np.asarray(selected, dtype=bool)
    if selected.shape != (cage.n_vertices,) or not selected.any():
        return False

    cage.positions[selected] += np.asarray(delta, dtype=np.float64)
    notify_change(listener, cage, MeshChange.POSITIONS)

    if weights is not None and weights.size:
        deform(model, cage, weights, listener)
    return True


def _clamped_range(n: int, start: int, count: int) -> Optional[slice]:
    """start 부터 count 개 (끝 인덱스 포함, 마지막 정점으로 clamp)"""
    if start < 0 or start >= n or count <= 0:
        return None
    end = min(start + count - 1, n - 1)
    return slice(start, end + 1)


def select_range(selected: np.ndarray, start: int, count: int) -> bool:
    """범위 내 정점을 선택 상태로 만듭니다. 범위가 잘못되면 False."""
    sl = _clamped_range(len(selected), start, count)
    if sl is None:
        return False
    selected[sl] = True
    return True


def unselect_range(selected: np.ndarray, start: int, count: int) -> bool:
    """범위 내 정점의 선택을 해제합니다."""
    sl = _clamped_range(len(selected), start, count)
    if sl is None:
        return False
    selected[sl] = False
    return True


def toggle_range(selected: np.ndarray, start: int, count: int) -> bool:
    """범위 내 정점의 선택 상태를 반전합니다."""
    sl = _clamped_range(len(selected), start, count)
    if sl is None:
        return False
    selected[sl] = ~selected[sl]
    return True
