from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, TextIO, Tuple

import numpy as np

from localizer.models.measurement import MeasurementStd, gaussian_likelihood, local_to_map
from localizer.models.motion import YAW_RATE_EPS, PoseStd, sample_motion_velocity
from .association import associate, landmarks_in_range
from .landmarks import UNASSIGNED_ID, LandmarkMap, LandmarkObs
from .particles import RESAMPLERS, Particle, ParticleSet, initialize_particles_gaussian

logger = logging.getLogger(__name__)


class FilterError(Exception):
    """Base class for particle filter errors."""


class NotInitializedError(FilterError, RuntimeError):
    """Raised when a cycle operation runs before initialize()."""


class FilterStateError(FilterError, RuntimeError):
    """Raised when initialize() is called on a filter that is already running."""


class InvalidConfigurationError(FilterError, ValueError):
    """Raised for particle counts, noise parameters or tunables that cannot be used."""


def _check_pose_std(std: PoseStd) -> None:
    if std.x < 0.0 or std.y < 0.0 or std.theta < 0.0:
        raise InvalidConfigurationError(f"pose std must not be negative, got {std}")


@dataclass
class FilterConfig:
    # Population size used when initialize() is not given one
    num_particles: int = 100
    # |yaw_rate| at or below this uses the straight-line motion branch
    yaw_rate_eps: float = YAW_RATE_EPS
    # Weight sums at or below this skip normalization
    weight_sum_eps: float = 1e-5
    # "systematic" (low variance) or "multinomial"
    resample_method: str = "systematic"
    # Seed for the filter's generator; None draws fresh OS entropy
    seed: Optional[int] = None

    def validate(self) -> None:
        if int(self.num_particles) < 1:
            raise InvalidConfigurationError(f"num_particles must be positive, got {self.num_particles}")
        if self.yaw_rate_eps <= 0.0:
            raise InvalidConfigurationError(f"yaw_rate_eps must be positive, got {self.yaw_rate_eps}")
        if self.weight_sum_eps < 0.0:
            raise InvalidConfigurationError(f"weight_sum_eps must not be negative, got {self.weight_sum_eps}")
        if self.resample_method not in RESAMPLERS:
            raise InvalidConfigurationError(
                f"unknown resample_method {self.resample_method!r}, expected one of {sorted(RESAMPLERS)}"
            )


class ParticleFilter:
    """
    Monte Carlo localization against a known landmark map.

    One cycle is predict() -> update_weights() -> resample(). The filter owns
    the particle population and a single random generator, seeded once here
    and shared by initialization, process noise and resampling.
    """

    def __init__(
        self,
        config: Optional[FilterConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.config = config or FilterConfig()
        self.config.validate()
        self.rng = rng or np.random.default_rng(self.config.seed)
        self._particles: Optional[ParticleSet] = None

    # ------------------------------------------------------------------ state

    @property
    def is_initialized(self) -> bool:
        return self._particles is not None

    @property
    def num_particles(self) -> int:
        return len(self._particles) if self._particles is not None else 0

    @property
    def particles(self) -> Tuple[Particle, ...]:
        # Snapshot of the population; edits to the copies never reach the filter
        return tuple(copy.deepcopy(p) for p in self._require_particles())

    @property
    def weights(self) -> np.ndarray:
        _, w = self._require_particles().as_arrays()
        return w

    def _require_particles(self) -> ParticleSet:
        if self._particles is None:
            raise NotInitializedError("particle filter is not initialized; call initialize() first")
        return self._particles

    # ------------------------------------------------------------------ cycle

    def initialize(
        self,
        x: float,
        y: float,
        theta: float,
        std: PoseStd,
        num_particles: Optional[int] = None,
    ) -> None:
        """
        Spread the population around an initial pose estimate.

        Args:
            x, y, theta: initial estimate in the map frame.
            std: per-axis spread of the initial estimate.
            num_particles: population size, fixed for the lifetime of the filter.
                Defaults to config.num_particles.
        """
        if self._particles is not None:
            raise FilterStateError("particle filter is already initialized")
        n = self.config.num_particles if num_particles is None else num_particles
        if int(n) < 1:
            raise InvalidConfigurationError(f"particle count must be positive, got {n}")
        _check_pose_std(std)

        self._particles = initialize_particles_gaussian(
            num_particles=int(n),
            mean_pose=(x, y, theta),
            std=(std.x, std.y, std.theta),
            rng=self.rng,
        )
        logger.debug("Initialized %d particles around (%.3f, %.3f, %.3f)", n, x, y, theta)

    def predict(self, dt: float, std: PoseStd, velocity: float, yaw_rate: float) -> None:
        # Moves every particle with the velocity motion model plus process noise
        particles = self._require_particles()
        _check_pose_std(std)
        poses, _ = particles.as_arrays()
        new_poses = sample_motion_velocity(
            poses,
            velocity=velocity,
            yaw_rate=yaw_rate,
            dt=dt,
            std=std,
            rng=self.rng,
            yaw_rate_eps=self.config.yaw_rate_eps,
        )
        particles.set_poses(new_poses)

    def update_weights(
        self,
        sensor_range: float,
        std: MeasurementStd,
        observations: Sequence[LandmarkObs],
        landmark_map: LandmarkMap,
    ) -> None:
        """
        Score every particle against the latest observations.

        Per particle:
        1. Transform the agent-frame observations into the map frame.
        2. Keep landmarks strictly within sensor_range of the particle.
        3. Associate each observation with its nearest in-range landmark and
           record ids and map-frame positions on the particle.
        4. Weight = product of the Gaussian likelihoods of the matches.
        Then normalize over the population.
        """
        particles = self._require_particles()
        if std.x <= 0.0 or std.y <= 0.0:
            raise InvalidConfigurationError(f"measurement std must be positive, got {std}")

        local_xy = np.array([[o.x, o.y] for o in observations], dtype=float).reshape(-1, 2)

        for p in particles:
            map_xy = local_to_map(p.pose, local_xy)
            transformed = [LandmarkObs(x=float(mx), y=float(my)) for mx, my in map_xy]
            candidates = landmarks_in_range(landmark_map, p.x, p.y, sensor_range)

            associate(candidates, transformed)
            self._assign(
                p,
                [o.id for o in transformed],
                [o.x for o in transformed],
                [o.y for o in transformed],
            )
            p.weight = self._particle_weight(p, std, candidates)

        if not particles.normalize_weights(self.config.weight_sum_eps):
            logger.warning(
                "Weight sum %.3e is below %.1e; skipping normalization (no particle agrees with the observations)",
                particles.weight_sum(), self.config.weight_sum_eps,
            )
        logger.debug("Updated %d particles, N_eff=%.1f", len(particles), particles.effective_sample_size())

    @staticmethod
    def _particle_weight(particle: Particle, std: MeasurementStd, candidates: List[LandmarkObs]) -> float:
        by_id = {}
        for lm in candidates:
            by_id.setdefault(lm.id, lm)

        weight = 1.0
        for lm_id, sx, sy in zip(particle.associations, particle.sense_x, particle.sense_y):
            match = by_id.get(lm_id)
            if match is None:
                if lm_id == UNASSIGNED_ID:
                    # Nothing in range to explain this observation
                    return 0.0
                continue
            weight *= gaussian_likelihood(std.x, std.y, sx, sy, match.x, match.y)
        return weight

    def resample(self) -> None:
        """
        Replace the population with N draws, with replacement, proportional to
        weight. Each drawn particle is an independent copy of its source,
        including the source's id, so ids may repeat afterwards.
        """
        particles = self._require_particles()
        _, weights = particles.as_arrays()
        if float(np.sum(weights)) <= 0.0:
            logger.warning("All particle weights are zero; resampling uniformly")

        resampler = RESAMPLERS[self.config.resample_method]
        indexes = resampler(weights, rng=self.rng)
        self._particles = particles.resampled(indexes)

    # -------------------------------------------------------------- reporting

    def best_particle(self) -> Particle:
        # Highest-weight particle; the first one wins on ties
        particles = self._require_particles()
        _, weights = particles.as_arrays()
        return copy.deepcopy(particles[int(np.argmax(weights))])

    def set_associations(
        self,
        index: int,
        associations: Sequence[int],
        sense_x: Sequence[float],
        sense_y: Sequence[float],
    ) -> None:
        """
        Attach landmark ids and their map-frame (x, y) positions to the
        particle at `index` in the population. The three sequences must be
        parallel.
        """
        particles = self._require_particles()
        if not 0 <= index < len(particles):
            raise IndexError(f"particle index {index} out of range for {len(particles)} particles")
        self._assign(particles[index], associations, sense_x, sense_y)

    @staticmethod
    def _assign(
        particle: Particle,
        associations: Sequence[int],
        sense_x: Sequence[float],
        sense_y: Sequence[float],
    ) -> None:
        if not (len(associations) == len(sense_x) == len(sense_y)):
            raise ValueError(
                f"associations, sense_x and sense_y must have equal length, "
                f"got {len(associations)}, {len(sense_x)}, {len(sense_y)}"
            )
        particle.associations = [int(a) for a in associations]
        particle.sense_x = [float(v) for v in sense_x]
        particle.sense_y = [float(v) for v in sense_y]

    @staticmethod
    def get_associations(particle: Particle) -> str:
        return " ".join(str(a) for a in particle.associations)

    @staticmethod
    def get_sense_coord(particle: Particle, coord: str) -> str:
        # coord is "X" or "Y"
        if coord == "X":
            values = particle.sense_x
        elif coord == "Y":
            values = particle.sense_y
        else:
            raise ValueError(f"coord must be 'X' or 'Y', got {coord!r}")
        return " ".join(f"{v:g}" for v in values)

    @classmethod
    def format_particle(cls, particle: Particle) -> str:
        return (
            f"Particle {particle.id}\n"
            f"Xpos: {particle.x:g}\n"
            f"Ypos: {particle.y:g}\n"
            f"Theta: {particle.theta:g}\n"
            f"Weight: {particle.weight:g}\n"
            f"Associations: {cls.get_associations(particle)}\n"
        )

    def dump_particles(self, stream: Optional[TextIO] = None) -> str:
        """
        Diagnostic text for the whole population, one block per particle.
        Written to `stream` when given; always returned.
        """
        blocks = [self.format_particle(p) for p in self._require_particles()]
        text = "\n".join(blocks) + "=" * 55 + "\n"
        if stream is not None:
            stream.write(text)
            stream.flush()
        return text
