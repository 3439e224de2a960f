# _session.py
"""
케이지 편집 세션

모델 / 케이지 / 가중치 / 케이지 정점 선택 상태를 한 곳에서 소유합니다.
렌더러 등 외부 객체는 MeshChangeListener 로 등록되어 정점 데이터 변경
알림을 받습니다. 필요한 데이터가 없을 때의 호출은 예외 대신 아무 것도
하지 않고 False (또는 빈 결과)를 반환합니다.

사용법:
    session = CageSession(CageToolConfig(), listener=renderer)
    session.load_model(model)
    session.load_cage(cage)      # 또는 session.generate_cage()
    session.compute_weights()
    session.select_cage_verts(0, 4)
    session.translate_selected_cage_verts((0, 1, 0))
"""
from typing import Optional

import numpy as np

from _cage_gen import CageGenerationResult, CageGenerator
from _config import CAGE_SELECTED_COLOUR, CAGE_UNSELECTED_COLOUR, CageToolConfig
from _deform import (
    MeshChangeListener,
    deform,
    notify_change,
    select_range,
    toggle_range,
    translate_selected,
    unselect_range,
)
from _logging_config import get_logger
from _mesh import MeshChange, MeshData
from _mvc import EMPTY_WEIGHTS, CoordinateType, MeanValueWeightSolver, weights_match

logger = get_logger(__name__)


class CageSession:
    """
    모델-케이지 바인딩과 편집 상태

    Attributes
    ----------
    config : CageToolConfig
        수치 파라미터
    listener : MeshChangeListener, optional
        메쉬 변경 알림 대상 (예: CageRenderer)
    coordinate_type : CoordinateType
        가중치 계산에 쓸 좌표 종류
    model, cage : MeshData or None
    weights : np.ndarray
        (N_model, N_cage) 또는 빈 배열
    selected : np.ndarray
        (N_cage,) bool 선택 마스크
    """

    def __init__(
        self,
        config: Optional[CageToolConfig] = None,
        listener: Optional[MeshChangeListener] = None,
        coordinate_type: CoordinateType = CoordinateType.MVC,
        verbose: bool = False,
    ):
        self.config = config or CageToolConfig()
        self.listener = listener
        self.coordinate_type = coordinate_type
        self.verbose = verbose

        self.model: Optional[MeshData] = None
        self.cage: Optional[MeshData] = None
        self.weights: np.ndarray = EMPTY_WEIGHTS.copy()
        self.selected: np.ndarray = np.zeros(0, dtype=bool)
        self.last_generation: Optional[CageGenerationResult] = None

    # ------------------------------------------------------------------
    # 메쉬 소유
    # ------------------------------------------------------------------

    def load_model(self, mesh: MeshData) -> None:
        mesh.validate()
        if len(mesh.normals) != mesh.n_vertices:
            mesh.generate_normals()
        self.model = mesh
        self.clear_weights()
        logger.info(f"✓ 모델 로드: '{mesh.name}' ({mesh.n_vertices:,} 정점)")

    def load_cage(self, mesh: MeshData) -> None:
        """케이지를 등록합니다. 모든 정점은 선택 해제(검정) 상태로 시작합니다."""
        mesh.validate()
        if len(mesh.normals) != mesh.n_vertices:
            mesh.generate_normals()
        self.cage = mesh
        self.selected = np.zeros(mesh.n_vertices, dtype=bool)
        self.clear_weights()
        self._sync_cage_colours()
        logger.info(f"✓ 케이지 로드: '{mesh.name}' ({mesh.n_vertices:,} 정점)")

    def clear_model(self) -> None:
        self.model = None
        self.clear_weights()

    def clear_cage(self) -> None:
        self.cage = None
        self.selected = np.zeros(0, dtype=bool)
        self.clear_weights()

    # ------------------------------------------------------------------
    # 가중치 / 변형
    # ------------------------------------------------------------------

    @property
    def has_weights(self) -> bool:
        return weights_match(self.weights, self.model, self.cage)

    def compute_weights(self) -> bool:
        """
        현재 모델/케이지 자세로 가중치를 계산합니다.

        Returns
        -------
        bool
            유효한 가중치 행렬을 얻었으면 True
        """
        if self.model is None or self.cage is None:
            logger.warning("⚠ 가중치를 계산하려면 모델과 케이지가 모두 필요합니다.")
            return False

        solver = MeanValueWeightSolver(epsilon=self.config.epsilon, verbose=self.verbose)
        self.weights = solver.compute(self.model, self.cage, self.coordinate_type)
        return self.has_weights

    def clear_weights(self) -> None:
        self.weights = EMPTY_WEIGHTS.copy()

    def deform(self) -> bool:
        return deform(self.model, self.cage, self.weights, self.listener)

    # ------------------------------------------------------------------
    # 케이지 정점 선택
    # ------------------------------------------------------------------

    @property
    def selected_indices(self) -> np.ndarray:
        return np.flatnonzero(self.selected)

    def _apply_selection(self, op, start: int, count: int) -> bool:
        if self.cage is None:
            return False
        if not op(self.selected, start, count):
            return False
        self._sync_cage_colours()
        return True

    def select_cage_verts(self, start: int, count: int) -> bool:
        return self._apply_selection(select_range, start, count)

    def unselect_cage_verts(self, start: int, count: int) -> bool:
        return self._apply_selection(unselect_range, start, count)

    def toggle_cage_verts(self, start: int, count: int) -> bool:
        return self._apply_selection(toggle_range, start, count)

    def _sync_cage_colours(self) -> None:
        """선택 마스크를 케이지 정점 색상에 반영하고 COLOURS 변경을 알립니다."""
        if self.cage is None:
            return
        self.cage.colours = np.where(
            self.selected[:, None], CAGE_SELECTED_COLOUR, CAGE_UNSELECTED_COLOUR
        ).reshape(-1, 3)
        notify_change(self.listener, self.cage, MeshChange.COLOURS)

    def translate_selected_cage_verts(self, delta, scaled: bool = False) -> bool:
        """
        선택된 케이지 정점을 이동하고 가중치가 있으면 모델을 변형합니다.

        Parameters
        ----------
        delta : array-like
            (3,) 이동량
        scaled : bool
            True 이면 delta 에 config.delta_move 를 곱합니다 (키 입력용).
        """
        delta = np.asarray(delta, dtype=np.float64)
        if scaled:
            delta = delta * self.config.delta_move
        weights = self.weights if self.has_weights else None
        return translate_selected(
            self.cage, self.selected, delta,
            model=self.model, weights=weights, listener=self.listener,
        )

    # ------------------------------------------------------------------
    # 케이지 자동 생성
    # ------------------------------------------------------------------

    def generate_cage(self) -> bool:
        """현재 모델로 케이지를 생성하여 세션 케이지로 등록합니다."""
        if self.model is None or self.model.is_empty:
            logger.warning("⚠ 케이지를 생성하려면 모델이 필요합니다.")
            return False

        result = CageGenerator(self.config, verbose=self.verbose).generate(self.model)
        if result.cage.is_empty:
            logger.warning("⚠ 생성된 케이지가 비어 있습니다.")
            return False

        self.last_generation = result
        self.load_cage(result.cage)
        return True
