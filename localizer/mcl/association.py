# Nearest-neighbour data association between observations and map landmarks

from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from localizer.models.measurement import distance
from .landmarks import Landmark, LandmarkObs, UNASSIGNED_ID


def associate(predicted: Sequence[LandmarkObs], observations: List[LandmarkObs]) -> None:
    """
    Tag every observation with the id of its nearest predicted landmark.

    Both inputs are in the map frame. `observations` is mutated in place (only
    the id field); `predicted` is left untouched. The scan follows the order of
    `predicted`, so on equal distances the first candidate wins. With no
    candidates the observation keeps UNASSIGNED_ID.
    """
    for obs in observations:
        best_dist = math.inf
        best_id = UNASSIGNED_ID
        for pred in predicted:
            d = distance((pred.x, pred.y), (obs.x, obs.y))
            if d < best_dist:
                best_dist = d
                best_id = pred.id
        obs.id = best_id


def landmarks_in_range(
    landmarks: Iterable[Landmark],
    x: float,
    y: float,
    sensor_range: float,
) -> List[LandmarkObs]:
    # Landmarks strictly closer than sensor_range to (x, y), in map order
    return [
        LandmarkObs(x=lm.x, y=lm.y, id=lm.id)
        for lm in landmarks
        if distance((lm.x, lm.y), (x, y)) < sensor_range
    ]
