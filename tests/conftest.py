# tests/conftest.py
"""공용 테스트 픽스처: 큐브 케이지, 그 안의 작은 모델, 덤벨 모양 메쉬"""
import numpy as np
import pytest

from _mesh import MeshData, box_mesh


def merge_meshes(*meshes: MeshData, name: str = "merged") -> MeshData:
    """여러 메쉬의 정점/삼각형을 이어 붙입니다 (서로 연결하지 않음)."""
    positions = []
    triangles = []
    offset = 0
    for mesh in meshes:
        positions.append(mesh.positions)
        triangles.append(mesh.triangles.astype(np.int64) + offset)
        offset += mesh.n_vertices
    merged = MeshData(positions=np.vstack(positions), triangles=np.vstack(triangles), name=name)
    merged.generate_normals()
    return merged


@pytest.fixture
def cube_cage() -> MeshData:
    """[-1, 1]^3 삼각형화 큐브 (8 정점, 12 삼각형)"""
    return box_mesh((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0), name="cube_cage")


@pytest.fixture
def inner_model() -> MeshData:
    """큐브 케이지 안쪽의 비대칭 박스"""
    return box_mesh((-0.31, -0.22, -0.13), (0.42, 0.27, 0.35), name="inner")


@pytest.fixture
def dumbbell_mesh() -> MeshData:
    """두 박스를 가는 막대로 이은 덤벨 (x 축이 가장 길고 z 축이 가장 짧음)"""
    left = box_mesh((-3.0, -1.0, -0.8), (-1.0, 1.0, 0.8))
    right = box_mesh((1.0, -1.0, -0.8), (3.0, 1.0, 0.8))
    bar = box_mesh((-1.5, -0.2, -0.2), (1.5, 0.2, 0.2))
    return merge_meshes(left, bar, right, name="dumbbell")


class RecordingListener:
    """on_mesh_vertices_changed 호출을 기록하는 리스너"""

    def __init__(self):
        self.events = []

    def on_mesh_vertices_changed(self, mesh, changed):
        self.events.append((mesh, changed))


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()
