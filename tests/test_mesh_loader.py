import numpy as np
import pytest
import pyvista as pv

from _mesh import box_mesh
from _mesh_loader import (
    get_mesh_info,
    load_example_mesh,
    load_mesh,
    mesh_to_polydata,
    normalize_mesh,
    polydata_to_mesh,
    save_mesh,
)


def test_polydata_to_mesh_triangulates_quads():
    mesh = polydata_to_mesh(pv.Cube(), name="cube")
    assert mesh.n_triangles == 12
    assert len(mesh.normals) == mesh.n_vertices
    mesh.validate()


def test_mesh_to_polydata(cube_cage):
    poly = mesh_to_polydata(cube_cage)
    assert poly.n_points == 8
    assert poly.n_cells == 12
    np.testing.assert_allclose(poly.points, cube_cage.positions)
    back = polydata_to_mesh(poly)
    np.testing.assert_array_equal(back.triangles, cube_cage.triangles)


def test_save_and_load(tmp_path, cube_cage):
    path = save_mesh(cube_cage, tmp_path / "cage.vtp")
    loaded = load_mesh(path, ignore_normals=True)
    assert loaded.name == "cage"
    np.testing.assert_allclose(loaded.positions, cube_cage.positions)
    np.testing.assert_array_equal(loaded.triangles, cube_cage.triangles)
    np.testing.assert_allclose(loaded.normals, cube_cage.normals, atol=1e-12)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_mesh(tmp_path / "missing.obj")


def test_unknown_example():
    with pytest.raises(ValueError):
        load_example_mesh("not-a-model")


def test_generated_examples():
    sphere = load_example_mesh("sphere")
    assert sphere.n_triangles > 0
    dumbbell = load_example_mesh("dumbbell")
    lo, hi = dumbbell.bounds()
    assert hi[0] - lo[0] > hi[1] - lo[1]


def test_mesh_info(cube_cage):
    info = get_mesh_info(cube_cage)
    assert info.n_vertices == 8
    assert info.n_triangles == 12
    assert info.is_watertight
    assert info.volume == pytest.approx(8.0)
    assert info.surface_area == pytest.approx(24.0)
    assert "Watertight" in str(info)


def test_normalize_mesh():
    box = box_mesh((1.0, 2.0, 3.0), (5.0, 4.0, 4.0))
    normalized = normalize_mesh(box, target_size=2.0)
    lo, hi = normalized.bounds()
    np.testing.assert_allclose((lo + hi) / 2, 0.0, atol=1e-12)
    assert (hi - lo).max() == pytest.approx(2.0)
    # 원본은 그대로
    np.testing.assert_allclose(box.bounds()[0], [1.0, 2.0, 3.0])
