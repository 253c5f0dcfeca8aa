import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import numpy as np
import pytest
from localizer.models.measurement import distance, gaussian_likelihood, local_to_map, map_to_local


def test_distance():
    assert distance((0.0, 0.0), (3.0, 4.0)) == pytest.approx(5.0)
    assert distance((1.0, 1.0), (1.0, 1.0)) == 0.0
    # Symmetric
    assert distance((-2.0, 7.5), (3.0, -1.0)) == pytest.approx(distance((3.0, -1.0), (-2.0, 7.5)))


def test_gaussian_peak_value():
    sigma = 0.3
    peak = gaussian_likelihood(sigma, sigma, 1.0, 2.0, 1.0, 2.0)
    assert peak == pytest.approx(1.0 / (2.0 * np.pi * sigma * sigma))


def test_gaussian_off_peak():
    sx, sy = 0.3, 0.5
    dx, dy = 0.2, -0.4
    expected = np.exp(-(dx ** 2 / (2 * sx ** 2) + dy ** 2 / (2 * sy ** 2))) / (2 * np.pi * sx * sy)
    value = gaussian_likelihood(sx, sy, 5.0 + dx, 1.0 + dy, 5.0, 1.0)
    assert value == pytest.approx(expected)
    assert 0.0 < value < gaussian_likelihood(sx, sy, 5.0, 1.0, 5.0, 1.0)


def test_gaussian_far_away_is_tiny_but_not_negative():
    value = gaussian_likelihood(0.3, 0.3, 100.0, 100.0, 0.0, 0.0)
    assert value >= 0.0
    assert value < 1e-100


def test_local_to_map_rotates_then_translates():
    # Agent at (2, 3) facing +y: a point 1m ahead lands at (2, 4)
    pose = (2.0, 3.0, np.pi / 2)
    out = local_to_map(pose, np.array([1.0, 0.0]))
    assert np.allclose(out, [2.0, 4.0])

    # Translate-then-rotate would give a different point
    wrong = np.array([[0.0, -1.0], [1.0, 0.0]]) @ np.array([1.0 + 2.0, 0.0 + 3.0])
    assert not np.allclose(out, wrong)


def test_transform_round_trip():
    rng = np.random.default_rng(7)
    local = rng.uniform(-10.0, 10.0, size=(20, 2))
    for theta in np.linspace(0.0, 2 * np.pi, 13, endpoint=False):
        pose = (rng.uniform(-5, 5), rng.uniform(-5, 5), theta)
        back = map_to_local(pose, local_to_map(pose, local))
        assert np.allclose(back, local, atol=1e-9), f"round trip failed at theta={theta:.3f}"
