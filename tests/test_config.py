import argparse

import numpy as np
import pytest

from _config import EPSILON, CageToolConfig


def test_defaults():
    config = CageToolConfig()
    assert config.epsilon == pytest.approx(float(np.finfo(np.float32).eps))
    assert EPSILON == config.epsilon
    assert config.max_depth == 100
    assert config.boundary_margin == 10
    assert config.delta_move == 1.0


@pytest.mark.parametrize("field, value", [("voxel_resolution", 0), ("max_depth", -1), ("boundary_margin", -2)])
def test_invalid_values_raise(field, value):
    with pytest.raises(ValueError):
        CageToolConfig(**{field: value})


def test_with_overrides_ignores_none():
    config = CageToolConfig().with_overrides(max_depth=3, voxel_resolution=None)
    assert config.max_depth == 3
    assert config.voxel_resolution == CageToolConfig().voxel_resolution


def test_from_args_picks_matching_names():
    args = argparse.Namespace(voxel_resolution=24, max_depth=None, delta_move=0.25, model="bunny")
    config = CageToolConfig.from_args(args)
    assert config.voxel_resolution == 24
    assert config.max_depth == 100
    assert config.delta_move == 0.25
