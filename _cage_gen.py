# _cage_gen.py
"""
모델 메쉬로부터 케이지 자동 생성

파이프라인:
    1. 모델 정점으로 PCA OBB 계산 -> voxel_size = 가장 긴 span / voxel_resolution
    2. 복셀 분류 (FEATURE / INNER) -> 증강 점 집합 P
    3. P 로 OBB 재계산 (이후 모든 재귀 단계에서 고정)
    4. 재계산된 OBB 에 정렬된 격자에 P 를 넣어 occupancy 계산
    5. 재귀 분할 (build_tree) -> 리프 박스들을 이어 붙인 케이지
    6. 인덱스 공간 -> 월드 좌표 변환, 법선 생성

사용법:
    from _cage_gen import CageGenerator, generate_cage

    # 방법 1: 클래스 사용
    generator = CageGenerator(CageToolConfig(voxel_resolution=32), verbose=True)
    result = generator.generate(model)
    print(result)
    cage = result.cage

    # 방법 2: 함수 사용
    cage = generate_cage(model, voxel_resolution=32)
"""
from dataclasses import dataclass
from typing import Optional

import numpy as np

from _cage_tree import MeshTree, build_tree, generate_obb_space
from _config import CageToolConfig
from _logging_config import get_logger
from _mesh import MeshData
from _obb import OrientedBoundingBox, VoxelFrame, fit_obb
from _voxel import VoxelizationResult, classify

logger = get_logger(__name__)


@dataclass
class CageGenerationResult:
    """케이지 생성 결과와 중간 산출물"""
    cage: MeshData
    initial_obb: OrientedBoundingBox
    refit_obb: OrientedBoundingBox
    voxels: VoxelizationResult
    frame: VoxelFrame
    occupancy: np.ndarray
    tree: MeshTree
    voxel_size: float

    @property
    def point_set(self) -> np.ndarray:
        return self.voxels.point_set

    @property
    def n_leaves(self) -> int:
        return self.tree.n_leaves

    def __str__(self) -> str:
        return (
            f"Cage Generation Result\n"
            f"  Voxel size: {self.voxel_size:.5f}\n"
            f"  Grid: {self.frame.dims}\n"
            f"  Point set: {len(self.point_set):,}\n"
            f"  Leaf boxes: {self.n_leaves}\n"
            f"  Cage: {self.cage.n_vertices:,} vertices, {self.cage.n_triangles:,} triangles"
        )


class CageGenerator:
    """
    OBB 공간 분할 기반 케이지 생성기

    Attributes
    ----------
    config : CageToolConfig
        voxel_resolution, max_depth, boundary_margin, split_min_slope 사용
    verbose : bool
        진행 상황 출력 여부
    """

    def __init__(self, config: Optional[CageToolConfig] = None, verbose: bool = False):
        self.config = config or CageToolConfig()
        self.verbose = verbose

    def _log(self, message: str):
        """로그 출력"""
        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)

    def generate(self, model: MeshData) -> CageGenerationResult:
        """
        모델을 감싸는 케이지를 생성합니다.

        Parameters
        ----------
        model : MeshData
            삼각형 메쉬 (정점이 하나 이상이어야 함)

        Returns
        -------
        CageGenerationResult
            생성된 케이지와 중간 결과

        Raises
        ------
        ValueError
            모델이 비어 있거나 크기가 0인 경우
        """
        if model is None or model.is_empty:
            raise ValueError("빈 모델로는 케이지를 생성할 수 없습니다.")
        config = self.config

        self._log("=" * 60)
        self._log(f"케이지 생성 시작: '{model.name}'")
        self._log("=" * 60)

        # Step 1: 초기 OBB, 복셀 크기 결정
        self._log("\n[Step 1] 초기 OBB 계산...")
        initial_obb = fit_obb(model.positions)
        if initial_obb.longest_span <= 0:
            raise ValueError("모델의 크기가 0이라 복셀 크기를 정할 수 없습니다.")
        voxel_size = initial_obb.longest_span / config.voxel_resolution
        self._log(f"  spans: {np.array2string(initial_obb.spans, precision=4)}")
        self._log(f"  voxel size: {voxel_size:.5f}")

        # Step 2: 복셀 분류 및 점 집합 생성
        self._log("\n[Step 2] 복셀 분류...")
        voxels = classify(model, initial_obb, voxel_size, verbose=self.verbose)

        # Step 3: 점 집합으로 OBB 재계산 (이후 고정)
        self._log("\n[Step 3] 점 집합 OBB 재계산...")
        refit_obb = fit_obb(voxels.point_set)
        frame = VoxelFrame.from_obb(refit_obb, voxel_size)
        self._log(f"  격자: {frame.dims}")

        # Step 4: occupancy
        self._log("\n[Step 4] OBB 공간 생성...")
        occupancy = generate_obb_space(voxels.point_set, frame)

        # Step 5: 재귀 분할
        self._log("\n[Step 5] 케이지 트리 분할...")
        tree = build_tree(
            occupancy,
            depth=0,
            max_depth=config.max_depth,
            boundary_margin=config.boundary_margin,
            min_slope=config.split_min_slope,
        )
        self._log(f"  리프 박스: {tree.n_leaves}")

        cage = tree.to_mesh(frame, name=f"{model.name}_cage")

        self._log(f"\n✓ 케이지 생성 완료: {cage.n_vertices:,} 정점, {cage.n_triangles:,} 삼각형")

        return CageGenerationResult(
            cage=cage,
            initial_obb=initial_obb,
            refit_obb=refit_obb,
            voxels=voxels,
            frame=frame,
            occupancy=occupancy,
            tree=tree,
            voxel_size=voxel_size,
        )


def generate_cage(
    model: MeshData,
    voxel_resolution: Optional[int] = None,
    max_depth: Optional[int] = None,
    config: Optional[CageToolConfig] = None,
    verbose: bool = False,
) -> MeshData:
    """
    케이지를 생성하는 편의 함수

    Examples
    --------
    >>> cage = generate_cage(model, voxel_resolution=24, max_depth=3)
    >>> cage.n_triangles % 12
    0
    """
    config = (config or CageToolConfig()).with_overrides(
        voxel_resolution=voxel_resolution, max_depth=max_depth
    )
    return CageGenerator(config, verbose=verbose).generate(model).cage
