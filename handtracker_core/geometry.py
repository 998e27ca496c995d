"""
Landmark types and 3D geometry helpers.

Landmarks follow the MediaPipe hand model: 21 points in a fixed
anatomical order, x/y normalized to the frame, z relative depth.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

import numpy as np

# Rays shorter than this are treated as degenerate
_EPSILON = 1e-9


class LandmarkIndex:
    """MediaPipe hand landmark indices."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


@dataclass(frozen=True)
class Landmark:
    """Single hand landmark with 3D coordinates."""
    x: float  # Normalized x [0, 1]
    y: float  # Normalized y [0, 1]
    z: float = 0.0  # Relative depth

    def as_array(self) -> np.ndarray:
        return np.array((self.x, self.y, self.z), dtype=float)


def to_landmark(entry: Any) -> Landmark:
    """
    Convert a detector landmark into a Landmark.

    Accepts Landmark instances, objects with x/y/z attributes (MediaPipe
    results), dicts with x/y/z keys and sequences of 2 or 3 numbers.

    Raises:
        ValueError: If the entry has an unsupported shape.
    """
    if isinstance(entry, Landmark):
        return entry
    if isinstance(entry, dict):
        return Landmark(float(entry["x"]), float(entry["y"]), float(entry.get("z", 0.0)))
    if hasattr(entry, "x") and hasattr(entry, "y"):
        return Landmark(float(entry.x), float(entry.y), float(getattr(entry, "z", 0.0)))
    if isinstance(entry, (list, tuple, np.ndarray)) and len(entry) in (2, 3):
        z = float(entry[2]) if len(entry) == 3 else 0.0
        return Landmark(float(entry[0]), float(entry[1]), z)
    raise ValueError(f"Unsupported landmark format: {entry!r}")


def to_landmarks(entries: Optional[Iterable[Any]]) -> list[Landmark]:
    """Convert a detector hand (or None) into a list of Landmarks."""
    if entries is None:
        return []
    return [to_landmark(entry) for entry in entries]


def distance_3d(a: Landmark, b: Landmark) -> float:
    """
    Calculate Euclidean distance between two landmarks.

    Args:
        a: First landmark.
        b: Second landmark.

    Returns:
        Euclidean distance in normalized coordinates.
    """
    return float(np.linalg.norm(a.as_array() - b.as_array()))


def distance_2d(a: Landmark, b: Landmark) -> float:
    """Calculate 2D distance between two landmarks (ignoring z)."""
    return float(np.hypot(a.x - b.x, a.y - b.y))


def angle_degrees(a: Landmark, b: Landmark, c: Landmark) -> float:
    """
    Included angle at vertex b between rays b->a and b->c.

    180 means a, b, c are collinear with b between them (a straight
    finger); smaller values mean a sharper fold. A degenerate ray counts
    as straight.

    Args:
        a: First ray end point.
        b: Vertex.
        c: Second ray end point.

    Returns:
        Angle in degrees, always within [0, 180].

    Raises:
        ValueError: If any point has a non-finite coordinate.
    """
    ba = a.as_array() - b.as_array()
    bc = c.as_array() - b.as_array()
    if not (np.isfinite(ba).all() and np.isfinite(bc).all()):
        raise ValueError("angle_degrees requires finite landmarks")
    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba < _EPSILON or norm_bc < _EPSILON:
        return 180.0

    # Clamp to [-1, 1]; rounding can push near-parallel rays just outside
    cosine = np.clip(np.dot(ba, bc) / (norm_ba * norm_bc), -1.0, 1.0)
    angle = float(np.degrees(np.arccos(cosine)))
    return min(180.0, max(0.0, angle))


def is_finite_hand(landmarks: Sequence[Landmark]) -> bool:
    """True if every coordinate of every landmark is finite."""
    if not landmarks:
        return True
    coords = np.array([(lm.x, lm.y, lm.z) for lm in landmarks], dtype=float)
    return bool(np.isfinite(coords).all())


def midpoint(a: Landmark, b: Landmark) -> tuple[float, float]:
    """2D midpoint of two landmarks."""
    return ((a.x + b.x) / 2.0, (a.y + b.y) / 2.0)


def centroid(points: Sequence[Landmark]) -> tuple[float, float]:
    """
    Calculate the 2D centroid of a set of landmarks.

    Args:
        points: Non-empty landmark sequence.

    Returns:
        (x, y) mean position.

    Raises:
        ValueError: If points is empty.
    """
    if not points:
        raise ValueError("centroid requires at least one landmark")
    xs = np.fromiter((p.x for p in points), dtype=float, count=len(points))
    ys = np.fromiter((p.y for p in points), dtype=float, count=len(points))
    return (float(xs.mean()), float(ys.mean()))
