"""
Angle Math & Geometry
=====================
Angle normalization, bearings, distances, and weighted angle means.

All angles are in degrees over the (-180, 180] circular domain.
"""

import math
import numpy as np
from typing import Sequence

EPS = 1e-8


def normalize_angle(angle: float) -> float:
    """Normalize angle to (-180, 180]."""
    # Python's % is a true modulo, so negative inputs land in [0, 360)
    angle = float(angle) % 360.0
    if angle > 180.0:
        angle -= 360.0
    return angle


def angular_delta(a: float, b: float) -> float:
    """Shortest unsigned angular distance between a and b, in [0, 180]."""
    return abs(normalize_angle(a - b))


def bearing_to(from_pos: np.ndarray, to_pos: np.ndarray) -> float:
    """Planar bearing (degrees) from one position to another."""
    return math.degrees(math.atan2(
        float(to_pos[1]) - float(from_pos[1]),
        float(to_pos[0]) - float(from_pos[0]),
    ))


def planar_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Distance on the x/y plane."""
    return float(np.hypot(float(b[0]) - float(a[0]), float(b[1]) - float(a[1])))


def distance(a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean distance over however many axes the positions carry."""
    return float(np.linalg.norm(np.asarray(b, dtype=np.float64) - np.asarray(a, dtype=np.float64)))


def planar_speed(velocity: np.ndarray) -> float:
    """Magnitude of the x/y components of a velocity."""
    return float(np.hypot(float(velocity[0]), float(velocity[1])))


def weighted_linear_mean(angles: Sequence[float], weights: Sequence[float]) -> float:
    """
    Weighted arithmetic mean of raw angle values.

    Not wrap-aware: only meaningful when every angle lies in a bounded
    range around a common reference.
    """
    w = np.asarray(weights, dtype=np.float64)
    total = float(w.sum())
    if total < EPS:
        raise ValueError("weights must sum to a positive value")
    a = np.asarray(angles, dtype=np.float64)
    return normalize_angle(float(np.dot(a, w) / total))


def weighted_circular_mean(angles: Sequence[float], weights: Sequence[float]) -> float:
    """
    Weighted circular mean: sum of weight * [cos, sin], then atan2.

    Falls back to the heaviest angle when the weighted vectors cancel out.
    """
    w = np.asarray(weights, dtype=np.float64)
    if float(w.sum()) < EPS:
        raise ValueError("weights must sum to a positive value")
    rad = np.radians(np.asarray(angles, dtype=np.float64))
    x = float(np.dot(w, np.cos(rad)))
    y = float(np.dot(w, np.sin(rad)))
    if math.hypot(x, y) < EPS:
        return normalize_angle(float(angles[int(np.argmax(w))]))
    return normalize_angle(math.degrees(math.atan2(y, x)))
