# _mesh.py
"""
삼각형 메쉬 데이터 컨테이너와 공용 메쉬 유틸리티

- MeshData: 정점 위치 / 삼각형 인덱스 / (선택) 법선, UV, 색상
- MeshChange: 메쉬 변경 알림 플래그 (positions, uvs, normals, colours)
- generate_normals: 면 법선 누적 방식의 정점 법선 계산
- format_mesh_for_render: WebGPU 렌더러용 interleaved 배열 생성
"""
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Optional, Tuple

import numpy as np


class MeshChange(IntFlag):
    """메쉬의 어떤 정점 속성이 바뀌었는지 나타내는 플래그"""
    NONE = 0
    POSITIONS = 1
    UVS = 2
    NORMALS = 4
    COLOURS = 8


# 박스 코너 순서 (VTK Hexahedron 순서):
#     7-------6
#    /|      /|
#   4-------5 |
#   | 3-----|-2
#   |/      |/
#   0-------1
BOX_CORNER_OFFSETS = np.array([
    [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
    [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
], dtype=np.int64)

# 12개 삼각형, 바깥을 향하는 CCW 와인딩
BOX_TRIANGLES = np.array([
    [0, 3, 2], [0, 2, 1],  # 아래면 (-3)
    [4, 5, 6], [4, 6, 7],  # 위면 (+3)
    [0, 1, 5], [0, 5, 4],  # 앞면 (-2)
    [3, 7, 6], [3, 6, 2],  # 뒷면 (+2)
    [0, 4, 7], [0, 7, 3],  # 왼쪽 (-1)
    [1, 2, 6], [1, 6, 5],  # 오른쪽 (+1)
], dtype=np.uint32)


def _as_array(data, dtype, width: int) -> np.ndarray:
    arr = np.asarray(data, dtype=dtype)
    if arr.size == 0:
        return np.zeros((0, width), dtype=dtype)
    return arr.reshape(-1, width)


@dataclass
class MeshData:
    """
    순수 삼각형 메쉬 컨테이너

    정점 인덱스는 한 번 정해지면 바뀌지 않고, 위치만 갱신됩니다.

    Attributes
    ----------
    positions : np.ndarray
        (N, 3) 정점 위치
    triangles : np.ndarray
        (F, 3) 삼각형 인덱스 (CCW)
    normals : np.ndarray
        (N, 3) 또는 빈 배열
    uvs : np.ndarray
        (N, 2) 또는 빈 배열
    colours : np.ndarray
        (N, 3) 또는 빈 배열 (에디터용 선택 색상)
    """
    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    triangles: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.uint32))
    normals: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    uvs: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)))
    colours: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    name: str = "mesh"

    def __post_init__(self):
        self.positions = _as_array(self.positions, np.float64, 3)
        self.triangles = _as_array(self.triangles, np.uint32, 3)
        self.normals = _as_array(self.normals, np.float64, 3)
        self.uvs = _as_array(self.uvs, np.float64, 2)
        self.colours = _as_array(self.colours, np.float64, 3)

    @property
    def n_vertices(self) -> int:
        return len(self.positions)

    @property
    def n_triangles(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        return self.n_vertices == 0

    def validate(self) -> None:
        """메쉬 불변조건을 검사하고 위반 시 ValueError 를 발생시킵니다."""
        n = self.n_vertices
        if self.n_triangles and int(self.triangles.max()) >= n:
            raise ValueError(
                f"삼각형 인덱스가 정점 수를 초과합니다 (max={int(self.triangles.max())}, 정점={n})"
            )
        for attr in ("normals", "uvs", "colours"):
            length = len(getattr(self, attr))
            if length not in (0, n):
                raise ValueError(f"{attr} 길이({length})는 0 또는 정점 수({n})여야 합니다.")

    def copy(self) -> "MeshData":
        return MeshData(
            positions=self.positions.copy(),
            triangles=self.triangles.copy(),
            normals=self.normals.copy(),
            uvs=self.uvs.copy(),
            colours=self.colours.copy(),
            name=self.name,
        )

    def generate_normals(self) -> np.ndarray:
        """정점 법선을 다시 계산해 self.normals 에 저장하고 반환합니다."""
        self.normals = generate_normals(self.positions, self.triangles)
        return self.normals

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """축 정렬 경계 (min, max)"""
        if self.is_empty:
            return np.zeros(3), np.zeros(3)
        return self.positions.min(axis=0), self.positions.max(axis=0)

    def __str__(self) -> str:
        return (
            f"MeshData '{self.name}'\n"
            f"  Vertices: {self.n_vertices:,}\n"
            f"  Triangles: {self.n_triangles:,}\n"
            f"  Normals: {'yes' if len(self.normals) else 'no'}, "
            f"UVs: {'yes' if len(self.uvs) else 'no'}"
        )


def _safe_normalize(vectors: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """길이가 eps 이하인 벡터는 영벡터로 둡니다."""
    lengths = np.linalg.norm(vectors, axis=-1, keepdims=True)
    out = np.zeros_like(vectors)
    np.divide(vectors, lengths, out=out, where=lengths > eps)
    return out


def face_normals(positions: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """
    면 법선 = normalize(cross(p2 - p1, p3 - p2))

    퇴화 삼각형(넓이 ~0)은 영벡터를 돌려줍니다.
    """
    if len(triangles) == 0:
        return np.zeros((0, 3))
    tri = np.asarray(triangles, dtype=np.int64)
    p1 = positions[tri[:, 0]]
    p2 = positions[tri[:, 1]]
    p3 = positions[tri[:, 2]]
    return _safe_normalize(np.cross(p2 - p1, p3 - p2))


def generate_normals(positions: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """
    순수 삼각형 메쉬의 정점 법선을 계산합니다.

    각 면 법선을 세 정점에 누적한 뒤 정규화합니다. 누적 결과가 퇴화한 정점은
    영벡터("정의된 법선 없음")가 됩니다.
    """
    positions = np.asarray(positions, dtype=np.float64)
    normals = np.zeros_like(positions)
    if len(triangles) == 0:
        return normals

    fn = face_normals(positions, triangles)
    tri = np.asarray(triangles, dtype=np.int64)
    for k in range(3):
        np.add.at(normals, tri[:, k], fn)
    return _safe_normalize(normals)


def box_mesh(mins, maxs, name: str = "box") -> MeshData:
    """축 정렬 박스 메쉬 (8 정점, 12 삼각형)를 생성합니다."""
    mins = np.asarray(mins, dtype=np.float64)
    maxs = np.asarray(maxs, dtype=np.float64)
    corners = mins + BOX_CORNER_OFFSETS * (maxs - mins)
    mesh = MeshData(positions=corners, triangles=BOX_TRIANGLES.copy(), name=name)
    mesh.generate_normals()
    return mesh


def create_wireframe_indices(triangles: np.ndarray) -> np.ndarray:
    """삼각형 인덱스에서 중복 없는 엣지 라인 리스트 인덱스를 생성합니다."""
    if len(triangles) == 0:
        return np.zeros(0, dtype=np.uint32)
    tri = np.asarray(triangles, dtype=np.uint32)
    edges = np.concatenate([tri[:, [0, 1]], tri[:, [1, 2]], tri[:, [2, 0]]])
    # 엣지는 방향이 없으므로 정렬하여 중복 제거
    edges = np.unique(np.sort(edges, axis=1), axis=0)
    return edges.reshape(-1).astype(np.uint32)


def format_mesh_for_render(mesh: MeshData, colours: Optional[np.ndarray] = None) -> np.ndarray:
    """
    MeshData 를 WebGPU 정점 버퍼용 flat float32 배열로 변환

    Returns
    -------
    np.ndarray
        [pos.x, pos.y, pos.z, norm.x, norm.y, norm.z, col.r, col.g, col.b, ...]
    """
    n = mesh.n_vertices
    normals = mesh.normals if len(mesh.normals) == n else np.zeros((n, 3))
    if colours is None:
        colours = mesh.colours if len(mesh.colours) == n else np.full((n, 3), 0.8)
    data = np.hstack([mesh.positions, normals, colours]).astype(np.float32)
    return data.reshape(-1)
