import numpy as np
import pytest

from _config import CAGE_SELECTED_COLOUR, CAGE_UNSELECTED_COLOUR, CageToolConfig
from _mesh import MeshChange
from _session import CageSession


@pytest.fixture
def session(listener):
    return CageSession(CageToolConfig(delta_move=0.5), listener=listener)


def test_missing_prerequisites_are_soft_noops(session, listener):
    assert not session.compute_weights()
    assert not session.deform()
    assert not session.select_cage_verts(0, 4)
    assert not session.translate_selected_cage_verts((1, 0, 0))
    assert not session.generate_cage()
    assert session.selected_indices.size == 0
    assert listener.events == []


def test_load_cage_starts_unselected(session, cube_cage, listener):
    session.load_cage(cube_cage)
    assert session.selected_indices.size == 0
    np.testing.assert_array_equal(cube_cage.colours, np.tile(CAGE_UNSELECTED_COLOUR, (8, 1)))
    assert listener.events[-1] == (cube_cage, MeshChange.COLOURS)


def test_selection_updates_colours(session, cube_cage, listener):
    session.load_cage(cube_cage)
    assert session.select_cage_verts(0, 3)
    np.testing.assert_array_equal(session.selected_indices, [0, 1, 2])
    np.testing.assert_array_equal(cube_cage.colours[:3], np.tile(CAGE_SELECTED_COLOUR, (3, 1)))
    np.testing.assert_array_equal(cube_cage.colours[3:], np.tile(CAGE_UNSELECTED_COLOUR, (5, 1)))

    assert session.toggle_cage_verts(2, 2)
    np.testing.assert_array_equal(session.selected_indices, [0, 1, 3])
    assert session.unselect_cage_verts(0, 100)
    assert session.selected_indices.size == 0
    assert all(changed == MeshChange.COLOURS for _, changed in listener.events)


def test_weights_and_deformation(session, cube_cage, inner_model):
    original = inner_model.positions.copy()
    session.load_model(inner_model)
    session.load_cage(cube_cage)
    assert not session.has_weights
    assert session.compute_weights()
    assert session.has_weights

    session.select_cage_verts(0, cube_cage.n_vertices)
    assert session.translate_selected_cage_verts((0.0, 0.0, 1.0), scaled=True)
    np.testing.assert_allclose(inner_model.positions, original + [0.0, 0.0, 0.5], atol=1e-5)


def test_translation_without_weights_moves_only_cage(session, cube_cage, inner_model):
    original = inner_model.positions.copy()
    session.load_model(inner_model)
    session.load_cage(cube_cage)
    session.select_cage_verts(0, 1)
    assert session.translate_selected_cage_verts((1.0, 0.0, 0.0))
    np.testing.assert_allclose(cube_cage.positions[0], [0.0, -1.0, -1.0])
    np.testing.assert_array_equal(inner_model.positions, original)


def test_clearing_meshes_clears_weights(session, cube_cage, inner_model):
    session.load_model(inner_model)
    session.load_cage(cube_cage)
    session.compute_weights()
    session.select_cage_verts(0, 2)

    session.clear_cage()
    assert session.cage is None
    assert not session.has_weights
    assert session.selected_indices.size == 0

    session.load_cage(cube_cage)
    session.compute_weights()
    session.clear_model()
    assert not session.has_weights


def test_compute_weights_with_coincident_vertex_fails(session, cube_cage):
    session.load_model(cube_cage.copy())
    session.load_cage(cube_cage)
    assert not session.compute_weights()
    assert not session.has_weights


def test_generate_cage_loads_result(dumbbell_mesh, listener):
    config = CageToolConfig(voxel_resolution=16, max_depth=2, boundary_margin=2)
    session = CageSession(config, listener=listener)
    session.load_model(dumbbell_mesh)
    assert session.generate_cage()
    assert session.cage is session.last_generation.cage
    assert session.cage.n_vertices == 8 * session.last_generation.n_leaves
    assert len(session.selected) == session.cage.n_vertices
    assert not session.has_weights
