# _mesh_loader.py
"""
PyVista 기반 메쉬 파일 로더 및 MeshData 변환 모듈

지원 파일 형식 (읽기):
- Wavefront OBJ (.obj)
- STL (.stl)
- PLY (.ply)
- VTK Legacy / XML (.vtk, .vtp, .vtu)
- 기타 pyvista.read 가 지원하는 형식

어떤 형식이든 표면을 추출하고 삼각형화하여 순수 삼각형 MeshData 로 변환합니다.

사용법:
    from _mesh_loader import load_mesh, get_mesh_info, save_mesh

    # 파일에서 메쉬 로드 (케이지는 법선/UV 무시)
    model = load_mesh("armadillo.obj")
    cage = load_mesh("armadillo_cage.obj", ignore_uvs=True, ignore_normals=True)

    # 메쉬 정보 출력
    print(get_mesh_info(model))

    # 생성된 케이지 저장
    save_mesh(cage, "cage.ply")
"""

import numpy as np
import pyvista as pv
from pathlib import Path
from typing import Union, Optional, Tuple
from dataclasses import dataclass

from _logging_config import get_logger
from _mesh import MeshData

logger = get_logger(__name__)


@dataclass
class MeshInfo:
    """메쉬 정보를 담는 데이터 클래스"""
    name: str
    n_vertices: int
    n_triangles: int
    bounds: Tuple[float, float, float, float, float, float]
    center: Tuple[float, float, float]
    surface_area: float
    volume: Optional[float]
    has_normals: bool
    has_uvs: bool
    is_watertight: bool

    def __str__(self) -> str:
        lines = [
            "=" * 50,
            f"메쉬 정보 (Mesh Information): {self.name}",
            "=" * 50,
            f"정점 수 (Vertices): {self.n_vertices:,}",
            f"삼각형 수 (Triangles): {self.n_triangles:,}",
            "",
            f"경계 (Bounds): ",
            f"  X: [{self.bounds[0]:.4f}, {self.bounds[1]:.4f}]",
            f"  Y: [{self.bounds[2]:.4f}, {self.bounds[3]:.4f}]",
            f"  Z: [{self.bounds[4]:.4f}, {self.bounds[5]:.4f}]",
            f"중심 (Center): ({self.center[0]:.4f}, {self.center[1]:.4f}, {self.center[2]:.4f})",
            f"표면적 (Surface Area): {self.surface_area:.6f}",
        ]
        if self.volume is not None:
            lines.append(f"부피 (Volume): {self.volume:.6f}")

        lines.extend([
            "",
            f"법선 (Normals): {'예' if self.has_normals else '아니오'}",
            f"UV: {'예' if self.has_uvs else '아니오'}",
            f"Watertight 여부: {'예' if self.is_watertight else '아니오'}",
            "=" * 50,
        ])
        return "\n".join(lines)


def polydata_to_mesh(
    poly: pv.DataSet,
    name: str = "mesh",
    ignore_normals: bool = False,
    ignore_uvs: bool = False,
) -> MeshData:
    """
    PyVista 데이터셋을 순수 삼각형 MeshData 로 변환합니다.

    PolyData 가 아니면 표면을 추출하고, 다각형 면은 삼각형으로 분할합니다.
    정점 법선 배열("Normals")과 텍스처 좌표가 있으면 함께 가져옵니다.
    """
    if not isinstance(poly, pv.PolyData):
        poly = poly.extract_surface()
    poly = poly.triangulate()

    faces = np.asarray(poly.faces)
    triangles = faces.reshape(-1, 4)[:, 1:] if faces.size else np.zeros((0, 3))

    normals = np.zeros((0, 3))
    if not ignore_normals and "Normals" in poly.point_data:
        normals = np.asarray(poly.point_data["Normals"], dtype=np.float64)

    uvs = np.zeros((0, 2))
    if not ignore_uvs and poly.active_texture_coordinates is not None:
        uvs = np.asarray(poly.active_texture_coordinates, dtype=np.float64)

    mesh = MeshData(
        positions=np.asarray(poly.points, dtype=np.float64),
        triangles=triangles,
        normals=normals,
        uvs=uvs,
        name=name,
    )
    # 파일에 법선이 없으면 직접 계산
    if len(mesh.normals) != mesh.n_vertices:
        mesh.generate_normals()
    mesh.validate()
    return mesh


def mesh_to_polydata(mesh: MeshData) -> pv.PolyData:
    """MeshData 를 PyVista PolyData 로 변환합니다 (faces = [3, a, b, c, ...])."""
    n = mesh.n_triangles
    faces = np.hstack([
        np.full((n, 1), 3, dtype=np.int64),
        mesh.triangles.astype(np.int64),
    ]).reshape(-1)
    poly = pv.PolyData(mesh.positions.copy(), faces)
    if len(mesh.normals) == mesh.n_vertices:
        poly.point_data["Normals"] = mesh.normals
    return poly


def load_mesh(
    filepath: Union[str, Path],
    ignore_normals: bool = False,
    ignore_uvs: bool = False,
) -> MeshData:
    """
    다양한 형식의 3D 메쉬 파일을 MeshData 로 로드합니다.

    Parameters
    ----------
    filepath : str or Path
        메쉬 파일 경로 (.obj, .stl, .ply, .vtk, .vtp 등)
    ignore_normals : bool
        True 이면 파일의 법선을 무시하고 다시 계산
    ignore_uvs : bool
        True 이면 텍스처 좌표를 무시

    Returns
    -------
    MeshData
        삼각형 메쉬

    Examples
    --------
    >>> model = load_mesh("model.obj")
    >>> cage = load_mesh("cage.obj", ignore_normals=True, ignore_uvs=True)
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"파일을 찾을 수 없습니다: {filepath}")

    data = pv.read(str(filepath))
    mesh = polydata_to_mesh(
        data, name=filepath.stem, ignore_normals=ignore_normals, ignore_uvs=ignore_uvs
    )

    logger.info(f"✓ 파일 로드 완료: {filepath.name}")
    logger.info(f"  정점: {mesh.n_vertices:,}, 삼각형: {mesh.n_triangles:,}")

    return mesh


def load_example_mesh(name: str) -> MeshData:
    """
    PyVista 예제 데이터셋을 MeshData 로 로드합니다.

    Parameters
    ----------
    name : str
        예제 이름. 지원되는 예제:
        - 'bunny': Stanford Bunny (다운로드)
        - 'armadillo': Armadillo 모델 (다운로드)
        - 'cow': 소 모델 (다운로드)
        - 'sphere': 구
        - 'cube': 정육면체
        - 'cylinder': 원통
        - 'dumbbell': 두 구를 가는 원통으로 이은 모양 (케이지 분할 확인용)

    Returns
    -------
    MeshData
        삼각형 메쉬
    """
    from pyvista import examples

    example_map = {
        # 다운로드 가능한 모델
        'bunny': examples.download_bunny,
        'armadillo': examples.download_armadillo,
        'cow': examples.download_cow,

        # 기본 기하 도형 (생성)
        'sphere': lambda: pv.Sphere(radius=0.5, theta_resolution=32, phi_resolution=32),
        'cube': lambda: pv.Cube(x_length=1.0, y_length=1.0, z_length=1.0),
        'cylinder': lambda: pv.Cylinder(radius=0.5, height=1.0, resolution=32),
        'dumbbell': _dumbbell,
    }

    name_lower = name.lower()
    if name_lower not in example_map:
        available = ', '.join(sorted(example_map.keys()))
        raise ValueError(f"알 수 없는 예제: '{name}'. 사용 가능한 예제: {available}")

    mesh = polydata_to_mesh(example_map[name_lower](), name=name_lower)
    logger.info(f"✓ 예제 로드 완료: {name}")
    logger.info(f"  정점: {mesh.n_vertices:,}, 삼각형: {mesh.n_triangles:,}")

    return mesh


def _dumbbell() -> pv.PolyData:
    left = pv.Sphere(radius=0.5, center=(-1.0, 0.0, 0.0))
    right = pv.Sphere(radius=0.5, center=(1.0, 0.0, 0.0))
    bar = pv.Cylinder(center=(0.0, 0.0, 0.0), direction=(1.0, 0.0, 0.0), radius=0.12, height=1.4)
    return left.merge(right).merge(bar.triangulate())


def save_mesh(mesh: MeshData, filepath: Union[str, Path]) -> Path:
    """
    MeshData 를 파일로 저장합니다 (.ply, .stl, .vtk, .vtp 등 PyVista 쓰기 지원 형식).

    Returns
    -------
    Path
        저장된 파일 경로
    """
    filepath = Path(filepath)
    mesh_to_polydata(mesh).save(str(filepath))
    logger.info(f"✓ 메쉬 저장 완료: {filepath.name} ({mesh.n_vertices:,} 정점)")
    return filepath


def get_mesh_info(mesh: MeshData) -> MeshInfo:
    """
    메쉬의 상세 정보를 추출합니다.

    Parameters
    ----------
    mesh : MeshData
        삼각형 메쉬

    Returns
    -------
    MeshInfo
        메쉬 정보 데이터 클래스
    """
    poly = mesh_to_polydata(mesh)
    is_watertight = mesh.n_triangles > 0 and poly.n_open_edges == 0

    return MeshInfo(
        name=mesh.name,
        n_vertices=mesh.n_vertices,
        n_triangles=mesh.n_triangles,
        bounds=tuple(float(b) for b in poly.bounds),
        center=tuple(float(c) for c in poly.center),
        surface_area=float(poly.area),
        volume=float(poly.volume) if is_watertight else None,
        has_normals=len(mesh.normals) == mesh.n_vertices and mesh.n_vertices > 0,
        has_uvs=len(mesh.uvs) == mesh.n_vertices and mesh.n_vertices > 0,
        is_watertight=is_watertight,
    )


def normalize_mesh(mesh: MeshData, target_size: float = 1.0) -> MeshData:
    """
    메쉬를 원점 중심으로 이동하고 크기를 정규화합니다.

    Parameters
    ----------
    mesh : MeshData
        입력 메쉬
    target_size : float
        목표 크기 (가장 긴 축의 길이)

    Returns
    -------
    MeshData
        정규화된 복사본
    """
    normalized = mesh.copy()
    if normalized.is_empty:
        return normalized

    # 중심을 원점으로 이동
    lo, hi = normalized.bounds()
    normalized.positions -= (lo + hi) * 0.5

    # 크기 정규화
    max_dim = float((hi - lo).max())
    if max_dim > 0:
        normalized.positions *= target_size / max_dim

    logger.info(f"✓ 메쉬 정규화 완료: 크기 {target_size}")

    return normalized
