import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import numpy as np
import pytest
from localizer.mcl.particles import (
    Particle,
    ParticleSet,
    initialize_particles_gaussian,
    multinomial_resample,
    systematic_resample,
)


def make_set(N, weights=None):
    weights = weights if weights is not None else [1.0 / N] * N
    return ParticleSet(Particle(id=i, x=float(i), y=0.0, theta=0.0, weight=weights[i]) for i in range(N))


def test_initialization():

    N = 500
    rng = np.random.default_rng(3)
    pset = initialize_particles_gaussian(N, mean_pose=(4.0, -2.0, 0.5), std=(0.3, 0.3, 0.01), rng=rng)

    poses, weights = pset.as_arrays()

    assert len(pset) == N
    assert np.all(weights == 1.0)
    assert [p.id for p in pset] == list(range(N))

    # Samples should sit around the mean with the requested spread
    assert abs(np.mean(poses[:, 0]) - 4.0) < 0.05
    assert abs(np.mean(poses[:, 1]) + 2.0) < 0.05
    assert 0.25 < np.std(poses[:, 0]) < 0.35
    assert np.std(poses[:, 2]) < 0.02


def test_empty_set_rejected():
    with pytest.raises(ValueError):
        ParticleSet([])


def test_normalize_weights():
    pset = make_set(4, weights=[1.0, 3.0, 0.0, 4.0])
    assert pset.normalize_weights() is True
    _, w = pset.as_arrays()
    assert np.isclose(np.sum(w), 1.0)
    assert np.allclose(w, [0.125, 0.375, 0.0, 0.5])


def test_normalize_skipped_below_eps():
    pset = make_set(3, weights=[1e-7, 2e-7, 0.0])
    assert pset.normalize_weights(eps=1e-5) is False
    _, w = pset.as_arrays()
    # Left untouched
    assert np.allclose(w, [1e-7, 2e-7, 0.0])


def test_effective_sample_size():
    uniform = make_set(10)
    assert uniform.effective_sample_size() == pytest.approx(10.0)

    skewed = make_set(10, weights=[0.99] + [0.0011] * 9)
    n_eff = skewed.effective_sample_size()
    assert n_eff < 2.0, "Effective sample size calc is wrong"


@pytest.mark.parametrize("resampler", [systematic_resample, multinomial_resample])
def test_dominant_particle_takes_over(resampler):

    N = 10
    weights = np.zeros(N)
    #  Forcing particle #5 to be the only plausible one
    weights[5] = 1.0

    indexes = resampler(weights, rng=np.random.default_rng(11))
    assert len(indexes) == N
    assert np.all(indexes == 5)


def test_systematic_uniform_keeps_everyone():
    N = 1000
    indexes = systematic_resample(np.full(N, 1.0 / N), rng=np.random.default_rng(5))
    counts = np.bincount(indexes, minlength=N)
    # Low-variance sampling picks each particle (almost) exactly once
    assert counts.max() <= 2
    assert np.count_nonzero(counts) >= 0.99 * N


def test_multinomial_uniform_frequencies():
    N = 5
    rng = np.random.default_rng(21)
    counts = np.zeros(N)
    rounds = 4000
    for _ in range(rounds):
        counts += np.bincount(multinomial_resample(np.ones(N), rng=rng), minlength=N)
    freq = counts / (rounds * N)
    assert np.allclose(freq, 1.0 / N, atol=0.02)


def test_proportional_frequencies():
    weights = np.array([0.1, 0.2, 0.3, 0.4])
    rng = np.random.default_rng(8)
    counts = np.zeros(4)
    for _ in range(3000):
        counts += np.bincount(systematic_resample(weights, rng=rng), minlength=4)
    assert np.allclose(counts / counts.sum(), weights, atol=0.02)


def test_zero_weights_resample_uniformly():
    indexes = systematic_resample(np.zeros(6), rng=np.random.default_rng(2))
    assert sorted(indexes.tolist()) == list(range(6))


def test_resampled_copies_are_independent():
    pset = make_set(3, weights=[0.0, 1.0, 0.0])
    pset[1].associations = [4, 5]
    new = pset.resampled([1, 1, 1])

    assert [p.id for p in new] == [1, 1, 1]
    new[0].x += 10.0
    new[0].associations.append(6)
    assert new[1].x == 1.0
    assert new[1].associations == [4, 5]
    assert pset[1].associations == [4, 5]


def test_pose_property_round_trip():
    p = Particle(id=0, x=1.0, y=2.0, theta=3.0)
    assert np.allclose(p.pose, [1.0, 2.0, 3.0])
    p.pose = np.array([4.0, 5.0, 6.0])
    assert (p.x, p.y, p.theta) == (4.0, 5.0, 6.0)
