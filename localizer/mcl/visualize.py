# Visualization utilities for particle filter debugging using Matplotlib

from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from .landmarks import LandmarkMap
from .particles import Particle


def plot_particles(
    particles: Sequence[Particle],
    landmark_map: Optional[LandmarkMap] = None,
    true_pose: Optional[Sequence[float]] = None,
    best: Optional[Particle] = None,
    title: str = "Particle Filter",
    output_path: Optional[str] = None,
    show_associations: bool = False,
) -> None:
    """
    Plot a particle population over the landmark map.
    - Landmarks: black crosses, labelled with their id
    - Particles: blue dots, size scaled by weight
    - Best particle: green dot with heading arrow
    - True pose: red dot with heading arrow
    show_associations draws the best particle's sensed points (map frame).
    """
    fig, ax = plt.subplots(figsize=(8, 8))

    if landmark_map is not None and len(landmark_map) > 0:
        pts = landmark_map.as_array()
        ax.scatter(pts[:, 0], pts[:, 1], c='black', marker='x', s=40, label='Landmarks')
        for lm in landmark_map:
            ax.annotate(str(lm.id), (lm.x, lm.y), textcoords="offset points", xytext=(4, 4), fontsize=7)

    if len(particles) > 0:
        poses = np.array([[p.x, p.y] for p in particles], dtype=float)
        weights = np.array([p.weight for p in particles], dtype=float)
        w_max = float(weights.max())
        sizes = 2 + 18 * (weights / w_max) if w_max > 0 else np.full(len(weights), 2.0)
        ax.scatter(poses[:, 0], poses[:, 1], c='blue', s=sizes, alpha=0.3, label='Particles')

    arrow_len = 0.5  # meters
    if best is not None:
        ax.scatter(best.x, best.y, c='green', s=25, zorder=10, label='Best particle')
        ax.arrow(best.x, best.y, arrow_len * np.cos(best.theta), arrow_len * np.sin(best.theta),
                 head_width=0.15, head_length=0.15, fc='green', ec='green', zorder=10)
        if show_associations and best.sense_x:
            ax.scatter(best.sense_x, best.sense_y, c='orange', s=12, zorder=9, label='Sensed')

    if true_pose is not None:
        x, y, theta = true_pose
        ax.scatter(x, y, c='red', s=20, zorder=11, label='True pose')
        ax.arrow(x, y, arrow_len * np.cos(theta), arrow_len * np.sin(theta),
                 head_width=0.15, head_length=0.15, fc='red', ec='red', zorder=11)

    ax.set_title(title)
    ax.set_xlabel("X (m)")
    ax.set_ylabel("Y (m)")
    ax.set_aspect('equal')
    ax.legend(loc='upper right', fontsize=8)

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(output_path, dpi=150, bbox_inches='tight')

    plt.close(fig)  # Close to free memory
