# _config.py
"""
케이지 도구 설정 (Configuration)

이 모듈은 알고리즘 전반에서 공유되는 수치 상수와 기본 파라미터를 모아 둡니다.
하드코딩된 매직 넘버가 각 모듈에 흩어지지 않도록 하는 것이 목적입니다.

사용법:
    from _config import CageToolConfig

    config = CageToolConfig(voxel_resolution=48)
    config = config.with_overrides(max_depth=4)
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Optional

import numpy as np


# 수치 허용오차: 원본 도구의 float epsilon 과 동일한 크기
EPSILON: float = float(np.finfo(np.float32).eps)

# 케이지 정점 선택 색상 (RGB, 0~1)
CAGE_UNSELECTED_COLOUR = np.array([0.0, 0.0, 0.0], dtype=np.float64)
CAGE_SELECTED_COLOUR = np.array([1.0, 1.0, 0.0], dtype=np.float64)

# 모델 기본 색상 (밝은 회색)
MODEL_DEFAULT_COLOUR = np.array([0.8, 0.8, 0.8], dtype=np.float64)


@dataclass(frozen=True)
class CageToolConfig:
    """
    케이지 바인딩 / 변형 / 자동 생성 파라미터

    Attributes
    ----------
    epsilon : float
        MVC 계산에서 퇴화(degenerate) 판정에 쓰는 허용오차
    voxel_resolution : int
        초기 OBB 의 가장 긴 축을 몇 개의 복셀로 나눌지 (voxel_size = span / resolution)
    max_depth : int
        케이지 트리 최대 재귀 깊이
    boundary_margin : int
        분할 탐색 시 구간 양 끝에서 극소값으로 인정하지 않는 인덱스 수
    split_min_slope : float
        분할점으로 인정되는 최소 기울기 (이 값보다 커야 함)
    delta_move : float
        선택된 케이지 정점 이동 시 한 번에 움직이는 거리
    """
    epsilon: float = EPSILON
    voxel_resolution: int = 64
    max_depth: int = 100
    boundary_margin: int = 10
    split_min_slope: float = 0.0
    delta_move: float = 1.0

    def __post_init__(self):
        if self.voxel_resolution < 1:
            raise ValueError("voxel_resolution은 1 이상이어야 합니다.")
        if self.max_depth < 0:
            raise ValueError("max_depth는 0 이상이어야 합니다.")
        if self.boundary_margin < 0:
            raise ValueError("boundary_margin은 0 이상이어야 합니다.")

    def with_overrides(self, **overrides: Any) -> "CageToolConfig":
        """None 이 아닌 값만 덮어쓴 새 설정을 반환합니다."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_args(cls, args: Any, base: Optional["CageToolConfig"] = None) -> "CageToolConfig":
        """argparse Namespace 에서 같은 이름의 속성만 골라 설정을 만듭니다."""
        base = base or cls()
        names = {f.name for f in fields(cls)}
        overrides = {name: getattr(args, name) for name in names if hasattr(args, name)}
        return base.with_overrides(**overrides)
