# Velocity motion model for particle propagation with process noise

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


# Below this |yaw_rate| (rad/s) the straight-line branch is used to avoid
# dividing by a vanishing turn rate. Tunable, not a physical constant.
YAW_RATE_EPS = 1e-4


@dataclass(frozen=True)
class PoseStd:
    """
    Per-axis standard deviations of a pose.

    Attributes:
        x: meters
        y: meters
        theta: radians
    """

    x: float
    y: float
    theta: float


def sample_motion_velocity(
    poses: np.ndarray,
    velocity: float,
    yaw_rate: float,
    dt: float,
    std: PoseStd,
    rng: Optional[np.random.Generator] = None,
    yaw_rate_eps: float = YAW_RATE_EPS,
) -> np.ndarray:
    """
    Propagate a batch of poses through the velocity motion model.

    Args:
        poses: (N, 3) array of [x, y, theta].
        velocity: forward speed (m/s).
        yaw_rate: turn rate (rad/s).
        dt: elapsed time (s).
        std: process noise added independently per axis and per pose.
        rng: noise source; a fresh default generator when omitted.
    Returns a new (N, 3) array. Headings are not wrapped.
    """
    if rng is None:
        rng = np.random.default_rng()

    poses = np.array(poses, dtype=float, copy=True).reshape(-1, 3)
    N = poses.shape[0]
    theta = poses[:, 2]

    if abs(yaw_rate) > yaw_rate_eps:
        # Exact arc integration
        radius = velocity / yaw_rate
        theta_new = theta + yaw_rate * dt
        dx = radius * (np.sin(theta_new) - np.sin(theta))
        dy = radius * (np.cos(theta) - np.cos(theta_new))
    else:
        # Straight line
        dx = velocity * np.cos(theta) * dt
        dy = velocity * np.sin(theta) * dt
    dtheta = yaw_rate * dt

    noise_x = rng.normal(0.0, std.x, N)
    noise_y = rng.normal(0.0, std.y, N)
    noise_th = rng.normal(0.0, std.theta, N)

    poses[:, 0] += dx + noise_x
    poses[:, 1] += dy + noise_y
    poses[:, 2] += dtheta + noise_th
    return poses
