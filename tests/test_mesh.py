import numpy as np
import pytest

from _mesh import (
    BOX_TRIANGLES,
    MeshChange,
    MeshData,
    box_mesh,
    create_wireframe_indices,
    face_normals,
    format_mesh_for_render,
    generate_normals,
)


def test_box_faces_point_outward(cube_cage):
    fn = face_normals(cube_cage.positions, cube_cage.triangles)
    centroids = cube_cage.positions[cube_cage.triangles.astype(np.int64)].mean(axis=1)
    assert np.all(np.einsum("ij,ij->i", fn, centroids) > 0)


def test_corner_normals(cube_cage):
    normals = cube_cage.normals
    np.testing.assert_allclose(normals[0], -np.ones(3) / np.sqrt(3), atol=1e-12)
    np.testing.assert_allclose(normals[6], np.ones(3) / np.sqrt(3), atol=1e-12)
    np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0)


def test_generate_normals_is_idempotent(cube_cage):
    first = cube_cage.generate_normals().copy()
    second = cube_cage.generate_normals()
    np.testing.assert_array_equal(first, second)


def test_degenerate_triangle_gives_zero_normal():
    positions = [[0, 0, 0], [1, 0, 0], [2, 0, 0], [5, 5, 5]]
    normals = generate_normals(np.asarray(positions, dtype=float), np.array([[0, 1, 2]]))
    np.testing.assert_array_equal(normals, np.zeros((4, 3)))


def test_mesh_data_reshapes_flat_arrays():
    mesh = MeshData(positions=[0, 0, 0, 1, 0, 0, 0, 1, 0], triangles=[0, 1, 2])
    assert mesh.n_vertices == 3
    assert mesh.n_triangles == 1
    assert mesh.triangles.dtype == np.uint32
    assert len(mesh.normals) == 0


def test_validate_rejects_out_of_range_index():
    mesh = MeshData(positions=np.zeros((3, 3)), triangles=[[0, 1, 3]])
    with pytest.raises(ValueError):
        mesh.validate()


def test_validate_rejects_attribute_length_mismatch():
    mesh = MeshData(positions=np.zeros((3, 3)), triangles=[[0, 1, 2]], normals=np.zeros((2, 3)))
    with pytest.raises(ValueError):
        mesh.validate()


def test_copy_is_independent(cube_cage):
    clone = cube_cage.copy()
    clone.positions[0] += 10.0
    assert not np.allclose(clone.positions[0], cube_cage.positions[0])


def test_wireframe_indices_are_unique_edges(cube_cage):
    edges = create_wireframe_indices(cube_cage.triangles).reshape(-1, 2)
    # 12 박스 엣지 + 6 면 대각선
    assert len(edges) == 18
    assert np.all(edges[:, 0] < edges[:, 1])


def test_format_mesh_for_render_layout(cube_cage):
    colours = np.tile([1.0, 0.0, 0.0], (8, 1))
    data = format_mesh_for_render(cube_cage, colours=colours)
    assert data.dtype == np.float32
    assert data.size == 8 * 9
    vertex = data.reshape(8, 9)
    np.testing.assert_allclose(vertex[:, :3], cube_cage.positions)
    np.testing.assert_allclose(vertex[:, 6:], colours)


def test_box_mesh_topology():
    box = box_mesh((0, 0, 0), (1, 2, 3))
    assert box.n_vertices == 8
    np.testing.assert_array_equal(box.triangles, BOX_TRIANGLES)
    lo, hi = box.bounds()
    np.testing.assert_allclose(lo, [0, 0, 0])
    np.testing.assert_allclose(hi, [1, 2, 3])


def test_mesh_change_flags_combine():
    changed = MeshChange.POSITIONS | MeshChange.NORMALS
    assert MeshChange.POSITIONS in changed
    assert MeshChange.COLOURS not in changed
