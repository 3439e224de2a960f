# _mvc.py
"""
Mean Value Coordinates (MVC) 케이지 가중치 계산

논문 기반:
"Mean Value Coordinates for Closed Triangular Meshes" (Ju, Schaefer, Warren)
논문의 "Robust" 의사코드를 따릅니다.

각 모델 정점 x 를 단위 구의 중심으로 보고, 모든 케이지 삼각형을 구면에 투영해
케이지 정점별 가중치를 누적한 뒤 합이 1이 되도록 정규화합니다.

사용법:
    from _mvc import MeanValueWeightSolver, compute_weights

    # 방법 1: 클래스 사용
    solver = MeanValueWeightSolver()
    weights = solver.compute(model, cage)

    # 방법 2: 함수 사용
    weights = compute_weights(model, cage)

    if weights.size == 0:
        ...  # 계산 실패 (메쉬 없음 또는 정점 일치)
"""

from enum import Enum
from typing import Optional

import numpy as np

from _config import EPSILON
from _logging_config import get_logger
from _mesh import MeshData

logger = get_logger(__name__)

EMPTY_WEIGHTS = np.zeros((0, 0), dtype=np.float64)


class CoordinateType(Enum):
    """일반화 무게중심 좌표 종류 (MVC 만 구현됨)"""
    MVC = 0
    HC = 1  # Harmonic Coordinates
    GC = 2  # Green Coordinates


class MeanValueWeightSolver:
    """
    MVC 가중치 행렬 계산기

    결과 행렬 W 의 크기는 (모델 정점 수, 케이지 정점 수)이며
    W[i, j] 는 케이지 정점 j 가 모델 정점 i 에 미치는 영향입니다.

    Attributes
    ----------
    epsilon : float
        퇴화 판정 허용오차
    verbose : bool
        진행 상황 출력 여부
    """

    def __init__(self, epsilon: float = EPSILON, verbose: bool = False):
        self.epsilon = epsilon
        self.verbose = verbose

    def _log(self, message: str):
        """로그 출력"""
        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)

    def compute(
        self,
        model: Optional[MeshData],
        cage: Optional[MeshData],
        coordinate_type: CoordinateType = CoordinateType.MVC,
    ) -> np.ndarray:
        """
        모델과 케이지의 현재 자세에서 가중치 행렬을 계산합니다.

        Returns
        -------
        np.ndarray
            (N_model, N_cage) 가중치 행렬. 실패 시 빈 배열.
        """
        if model is None or cage is None or model.is_empty or cage.is_empty:
            logger.warning("⚠ 모델 또는 케이지가 없어 가중치를 계산할 수 없습니다.")
            return EMPTY_WEIGHTS.copy()

        if coordinate_type is CoordinateType.HC:
            raise NotImplementedError("Harmonic Coordinates는 아직 지원되지 않습니다.")
        if coordinate_type is CoordinateType.GC:
            raise NotImplementedError("Green Coordinates는 아직 지원되지 않습니다.")
        if coordinate_type is not CoordinateType.MVC:
            raise ValueError(f"알 수 없는 좌표 타입: {coordinate_type}")

        n_model = model.n_vertices
        n_cage = cage.n_vertices
        triangles = cage.triangles.astype(np.int64)

        self._log("MVC 가중치 계산 시작")
        self._log(f"  모델: {n_model:,} 정점, 케이지: {n_cage:,} 정점 / {len(triangles):,} 삼각형")

        weights = np.zeros((n_model, n_cage), dtype=np.float64)
        for i, x in enumerate(model.positions):
            if i % 5000 == 0:
                logger.debug(f"  {i}/{n_model}...")

            row = self._vertex_weights(x, cage.positions, triangles, n_cage)
            if row is None:
                # TODO: 일치 정점에 1.0 가중치를 주는 방식으로 바꿀지 결정 필요 (현재는 전체 중단)
                logger.warning(
                    f"⚠ 모델 정점 {i}이(가) 케이지 정점과 일치합니다. 가중치 계산을 중단합니다."
                )
                return EMPTY_WEIGHTS.copy()

            total = row.sum()
            if abs(total) > np.finfo(np.float64).tiny:
                row /= total
            else:
                logger.warning(f"⚠ 모델 정점 {i}의 가중치 합이 0입니다. 정규화하지 않습니다.")
            weights[i] = row

        self._log(f"✓ MVC 가중치 계산 완료: {weights.shape[0]:,} x {weights.shape[1]:,}")
        return weights

    def _vertex_weights(
        self,
        x: np.ndarray,
        cage_positions: np.ndarray,
        triangles: np.ndarray,
        n_cage: int,
    ) -> Optional[np.ndarray]:
        """
        모델 정점 하나에 대한 정규화 전 가중치 벡터

        삼각형을 순서대로 처리하는 의미를 유지합니다: 앞쪽 삼각형에서
        정점 일치(중단) 또는 평면 위(barycentric) 상황이 먼저 나오면
        뒤쪽 삼각형은 보지 않습니다.

        Returns
        -------
        np.ndarray or None
            None 은 케이지 정점과 일치하여 계산을 중단해야 함을 의미
        """
        eps = self.epsilon
        row = np.zeros(n_cage, dtype=np.float64)
        if len(triangles) == 0:
            return row

        diff = cage_positions[triangles] - x          # (F, 3, 3)
        d = np.linalg.norm(diff, axis=2)              # (F, 3)
        coincident = np.any(d < eps, axis=1)

        with np.errstate(divide="ignore", invalid="ignore"):
            u = diff / d[..., None]                   # 단위 구 투영
            u1, u2, u3 = u[:, 0], u[:, 1], u[:, 2]

            # 평면 삼각형의 변 길이 -> 구면 삼각형의 호 길이 (R=1 이므로 각도)
            l = np.stack([
                np.linalg.norm(u2 - u3, axis=1),
                np.linalg.norm(u3 - u1, axis=1),
                np.linalg.norm(u1 - u2, axis=1),
            ], axis=1)
            theta = 2.0 * np.arcsin(np.clip(l / 2.0, 0.0, 1.0))

        degenerate = ~coincident & np.any(theta < eps, axis=1)
        h = theta.sum(axis=1) / 2.0
        on_plane = ~coincident & ~degenerate & (np.pi - h < eps)

        event = coincident | on_plane
        if event.any():
            f = int(np.argmax(event))
            if coincident[f]:
                return None
            # x 가 삼각형 내부 평면 위에 있음: 이 삼각형만으로 결정 (2D barycentric)
            d1, d2, d3 = d[f]
            s_theta = np.sin(theta[f])
            row[triangles[f]] = [s_theta[0] * d2 * d3, s_theta[1] * d3 * d1, s_theta[2] * d1 * d2]
            return row

        valid = ~degenerate
        if not valid.any():
            return row

        tri = triangles[valid]
        theta = theta[valid]
        h = h[valid]
        d = d[valid]
        u = u[valid]

        sin_theta = np.sin(theta)
        sin_next = np.roll(sin_theta, -1, axis=1)   # sin(theta_{k+1})
        sin_prev = np.roll(sin_theta, 1, axis=1)    # sin(theta_{k+2})

        with np.errstate(divide="ignore", invalid="ignore"):
            c = 2.0 * np.sin(h)[:, None] * np.sin(h[:, None] - theta) / (sin_next * sin_prev) - 1.0
        # float 오차로 1.000024 같은 값이 나오면 sqrt 가 nan 이 되므로 clamp
        c = np.clip(c, -1.0, 1.0)

        det_sign = np.sign(np.linalg.det(u))
        s = det_sign[:, None] * np.sqrt(1.0 - c * c)

        # x 가 삼각형 평면 위에 있지만 바깥에 있으면 기여 0
        contributes = ~np.any(np.abs(s) <= eps, axis=1)
        if not contributes.any():
            return row

        tri = tri[contributes]
        theta = theta[contributes]
        c = c[contributes]
        s = s[contributes]
        d = d[contributes]
        sin_next = sin_next[contributes]

        theta_next = np.roll(theta, -1, axis=1)
        theta_prev = np.roll(theta, 1, axis=1)
        c_next = np.roll(c, -1, axis=1)
        c_prev = np.roll(c, 1, axis=1)
        s_prev = np.roll(s, 1, axis=1)

        # w_k += (theta_k - c_{k+1} theta_{k+2} - c_{k+2} theta_{k+1}) / (d_k sin(theta_{k+1}) s_{k+2})
        w = (theta - c_next * theta_prev - c_prev * theta_next) / (d * sin_next * s_prev)
        np.add.at(row, tri.reshape(-1), w.reshape(-1))
        return row


def compute_weights(
    model: Optional[MeshData],
    cage: Optional[MeshData],
    coordinate_type: CoordinateType = CoordinateType.MVC,
    epsilon: float = EPSILON,
    verbose: bool = False,
) -> np.ndarray:
    """
    MVC 가중치 행렬을 계산하는 편의 함수

    Examples
    --------
    >>> W = compute_weights(model, cage)
    >>> np.allclose(W.sum(axis=1), 1.0)
    True
    """
    solver = MeanValueWeightSolver(epsilon=epsilon, verbose=verbose)
    return solver.compute(model, cage, coordinate_type=coordinate_type)


def weights_match(weights: np.ndarray, model: Optional[MeshData], cage: Optional[MeshData]) -> bool:
    """가중치 행렬이 존재하고 현재 모델/케이지 크기와 맞는지 확인합니다."""
    if weights is None or weights.size == 0 or model is None or cage is None:
        return False
    return weights.shape == (model.n_vertices, cage.n_vertices)
