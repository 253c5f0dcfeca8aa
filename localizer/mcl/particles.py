from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np


Pose = np.ndarray  # shape: (3,) -> [x, y, theta]


@dataclass
class Particle:
    """
    One pose hypothesis plus the bookkeeping of its last weight update.
    associations, sense_x and sense_y are parallel: entry k holds the landmark
    id and the map-frame position of the k-th observation.
    """
    id: int
    x: float
    y: float
    theta: float
    weight: float = 1.0
    associations: List[int] = field(default_factory=list)
    sense_x: List[float] = field(default_factory=list)
    sense_y: List[float] = field(default_factory=list)

    @property
    def pose(self) -> np.ndarray:
        """Helper to get pose as array"""
        return np.array([self.x, self.y, self.theta])

    @pose.setter
    def pose(self, val: Sequence[float]):
        self.x, self.y, self.theta = (float(v) for v in val)


class ParticleSet:

    # Ordered container for the particle population and its weight utilities

    def __init__(self, particles: Iterable[Particle]) -> None:
        self.particles: list[Particle] = list(particles)
        if len(self.particles) == 0:
            raise ValueError("ParticleSet must be initialized with at least one particle.")

    def __len__(self) -> int:
        return len(self.particles)

    def __iter__(self):
        return iter(self.particles)

    def __getitem__(self, idx: int) -> Particle:
        return self.particles[idx]

    def as_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        poses = np.stack([p.pose for p in self.particles], axis=0)  # (N, 3)
        weights = np.asarray([p.weight for p in self.particles], dtype=float)  # (N,)
        return poses, weights

    def set_poses(self, poses: np.ndarray) -> None:
        # Writes poses back in place, leaving weights and bookkeeping untouched
        if poses.shape[0] != len(self.particles):
            raise ValueError("Poses and particles must have the same length.")
        for p, row in zip(self.particles, poses):
            p.pose = row

    def weight_sum(self) -> float:
        return float(sum(p.weight for p in self.particles))

    def normalize_weights(self, eps: float = 1e-5) -> bool:
        """
        Divide every weight by the total. When the total does not exceed eps
        the weights are left as they are and False is returned.
        """
        w_sum = self.weight_sum()
        if w_sum <= eps:
            return False
        inv_sum = 1.0 / w_sum
        for p in self.particles:
            p.weight *= inv_sum
        return True

    def effective_sample_size(self, eps: float = 1e-12) -> float:

        # Returns N_eff = 1 / sum_i w_i^2 over the normalized weights

        _, w = self.as_arrays()
        w_sum = float(np.sum(w))
        if w_sum < eps:
            return 0.0
        w = w / w_sum
        return 1.0 / float(np.sum(np.square(w)))

    def resampled(self, indexes: Sequence[int]) -> "ParticleSet":
        # Independent copies of the selected particles, duplicates included
        return ParticleSet(copy.deepcopy(self.particles[int(i)]) for i in indexes)


def _probabilities(weights: np.ndarray) -> np.ndarray:
    w = np.asarray(weights, dtype=float)
    w_sum = float(np.sum(w))
    if w_sum <= 0.0:
        return np.full(len(w), 1.0 / len(w))
    return w / w_sum


def systematic_resample(weights: np.ndarray, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Low-variance (systematic) resampling.
    Returns N particle indexes drawn proportionally to `weights`; a single
    random offset is shared by N evenly spaced pointers into the CDF.
    """
    if rng is None:
        rng = np.random.default_rng()

    probs = _probabilities(weights)
    N = len(probs)

    # Compute cumulative distribution
    cdf = np.cumsum(probs)
    cdf[-1] = 1.0  # enforce exact 1 due to numerical precision

    # Systematic samples
    r0 = rng.uniform(0.0, 1.0 / N)
    positions = r0 + (np.arange(N, dtype=float) / N)

    indexes = np.empty(N, dtype=int)
    i, j = 0, 0
    while i < N:
        if positions[i] < cdf[j]:
            indexes[i] = j
            i += 1
        else:
            j += 1
    return indexes


def multinomial_resample(weights: np.ndarray, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    # Independent categorical draws over particle index
    if rng is None:
        rng = np.random.default_rng()
    probs = _probabilities(weights)
    N = len(probs)
    return rng.choice(N, size=N, replace=True, p=probs)


RESAMPLERS = {
    "systematic": systematic_resample,
    "multinomial": multinomial_resample,
}


def initialize_particles_gaussian(
    num_particles: int,
    mean_pose: Sequence[float],
    std: Sequence[float],
    rng: Optional[np.random.Generator] = None,
) -> ParticleSet:

    # Draws particles from three uncorrelated Gaussians around mean_pose.
    # std: (sigma_x, sigma_y, sigma_theta). Ids run 0..N-1, weights start at 1.0
    if rng is None:
        rng = np.random.default_rng()
    mean = np.asarray(mean_pose, dtype=float)
    sigma = np.asarray(std, dtype=float)
    poses = rng.normal(loc=mean, scale=sigma, size=(num_particles, 3))
    return ParticleSet(
        Particle(id=i, x=float(poses[i, 0]), y=float(poses[i, 1]), theta=float(poses[i, 2]), weight=1.0)
        for i in range(num_particles)
    )
