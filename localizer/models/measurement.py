# Measurement model helpers: distances, landmark likelihood and frame transforms

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


Point = Sequence[float]  # (x, y)


@dataclass(frozen=True)
class MeasurementStd:
    """
    Landmark measurement noise, expressed in the map frame.

    Attributes:
        x: standard deviation along the map x axis (meters)
        y: standard deviation along the map y axis (meters)
    """

    x: float
    y: float


def distance(p1: Point, p2: Point) -> float:
    # Euclidean distance between two 2-D points
    return float(np.hypot(p1[0] - p2[0], p1[1] - p2[1]))


def gaussian_likelihood(
    sigma_x: float,
    sigma_y: float,
    obs_x: float,
    obs_y: float,
    mu_x: float,
    mu_y: float,
) -> float:
    """
    Density of an axis-aligned bivariate normal centred on (mu_x, mu_y),
    evaluated at (obs_x, obs_y).
    Both sigmas must be strictly positive; this is not checked here.
    """
    norm = 1.0 / (2.0 * np.pi * sigma_x * sigma_y)
    exponent = ((obs_x - mu_x) ** 2) / (2.0 * sigma_x ** 2) + ((obs_y - mu_y) ** 2) / (2.0 * sigma_y ** 2)
    return float(norm * np.exp(-exponent))


def local_to_map(pose: Sequence[float], local_xy: np.ndarray) -> np.ndarray:
    """
    Transform points from the agent frame to the map frame.

    Args:
        pose: (x, y, theta) of the agent in the map frame.
        local_xy: array of shape (M, 2) or (2,) in the agent frame.
    Returns the same shape in map coordinates (rotate by theta, then translate).
    """
    x, y, theta = pose
    c, s = np.cos(theta), np.sin(theta)
    rot = np.array([[c, -s], [s, c]])
    pts = np.asarray(local_xy, dtype=float)
    return pts @ rot.T + np.array([x, y])


def map_to_local(pose: Sequence[float], map_xy: np.ndarray) -> np.ndarray:
    # Inverse of local_to_map: undo the translation, then rotate by -theta
    x, y, theta = pose
    c, s = np.cos(theta), np.sin(theta)
    rot = np.array([[c, -s], [s, c]])
    pts = np.asarray(map_xy, dtype=float) - np.array([x, y])
    return pts @ rot

