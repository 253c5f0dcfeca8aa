from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

import numpy as np


# Identity carried by an observation that has not been (or could not be) associated
UNASSIGNED_ID = -1


@dataclass
class LandmarkObs:
    """
    A 2-D point with an identity tag.
    In the agent frame it is a raw sensor reading (id unassigned); in the map
    frame the id is the landmark it was matched to.
    """
    x: float
    y: float
    id: int = UNASSIGNED_ID


@dataclass(frozen=True)
class Landmark:
    id: int
    x: float
    y: float


class LandmarkMap:

    # Immutable, ordered collection of known landmarks in the map frame

    def __init__(self, landmarks: Iterable[Landmark]) -> None:
        self._landmarks: Tuple[Landmark, ...] = tuple(landmarks)

    @classmethod
    def from_points(cls, points: Iterable[Tuple[int, float, float]]) -> "LandmarkMap":
        return cls(Landmark(id=int(i), x=float(x), y=float(y)) for i, x, y in points)

    @property
    def landmarks(self) -> Tuple[Landmark, ...]:
        return self._landmarks

    def as_array(self) -> np.ndarray:
        # (M, 2) array of landmark positions, in map order
        if not self._landmarks:
            return np.zeros((0, 2))
        return np.array([[lm.x, lm.y] for lm in self._landmarks], dtype=float)

    def __iter__(self) -> Iterator[Landmark]:
        return iter(self._landmarks)

    def __len__(self) -> int:
        return len(self._landmarks)
