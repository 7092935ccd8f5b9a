# dccore/normalize.py
# Body-centred, torso-scaled coordinates for single poses.

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, List, Sequence

import numpy as np

from dccore.coaching_thresholds import MIN_TORSO_LENGTH
from dccore.joints import LANDMARK_COUNT, LEFT_HIP, RIGHT_HIP, LEFT_SHOULDER, RIGHT_SHOULDER, MIRROR_PAIRS


class PoseDataError(ValueError):
    """A pose that cannot be compared (recoverable, never fatal to a session)."""


class InsufficientLandmarks(PoseDataError):
    pass


class DegenerateScale(PoseDataError):
    pass


class NonFiniteLandmark(PoseDataError):
    pass


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 0.0

    @classmethod
    def from_any(cls, raw: Any) -> "Landmark":
        """
        Accepts a Landmark, a mapping with x/y[/z/visibility] keys, or a
        sequence (x, y[, z[, visibility]]). Missing z or visibility become 0.
        """
        if isinstance(raw, Landmark):
            return raw
        if isinstance(raw, dict):
            try:
                x, y = raw["x"], raw["y"]
            except KeyError as e:
                raise ValueError(f"landmark record missing {e}") from None
            z = raw.get("z")
            vis = raw.get("visibility")
            return cls(float(x), float(y), float(z or 0.0), float(vis or 0.0))
        vals = [float(v) for v in raw]
        if len(vals) < 2:
            raise ValueError(f"landmark needs at least x and y, got {vals}")
        vals += [0.0] * (4 - len(vals))
        return cls(vals[0], vals[1], vals[2], vals[3])


Pose = List[Landmark]


def as_pose(raw: Any) -> Pose:
    """Coerce a landmark list / (33, 2..4) array into a Pose of exactly 33 finite landmarks."""
    if raw is None:
        raise InsufficientLandmarks("no landmarks")
    if isinstance(raw, np.ndarray):
        raw = raw.tolist()
    if len(raw) < LANDMARK_COUNT:
        raise InsufficientLandmarks(f"expected {LANDMARK_COUNT} landmarks, got {len(raw)}")
    pose = [Landmark.from_any(lm) for lm in raw[:LANDMARK_COUNT]]
    for i, lm in enumerate(pose):
        if not (math.isfinite(lm.x) and math.isfinite(lm.y) and math.isfinite(lm.z)):
            raise NonFiniteLandmark(f"landmark {i} has non-finite coordinates")
    return pose


def pose_to_array(pose: Sequence[Landmark]) -> np.ndarray:
    """(33, 4) float array of x, y, z, visibility."""
    return np.array([[lm.x, lm.y, lm.z, lm.visibility] for lm in pose], dtype=float)


def midpoint(a: Landmark, b: Landmark) -> Landmark:
    return Landmark(
        x=(a.x + b.x) / 2.0,
        y=(a.y + b.y) / 2.0,
        z=(a.z + b.z) / 2.0,
        visibility=min(a.visibility, b.visibility),
    )


def distance(a: Landmark, b: Landmark) -> float:
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)


def normalize_pose(raw: Any) -> Pose:
    """
    Translate so the hip midpoint is the origin and scale so the
    shoulder-midpoint to hip-midpoint distance is 1. Visibility is kept.

    Raises InsufficientLandmarks for short inputs, NonFiniteLandmark for NaN/inf
    coordinates and DegenerateScale when the torso is shorter than
    MIN_TORSO_LENGTH.
    """
    pose = as_pose(raw)
    mid_hip = midpoint(pose[LEFT_HIP], pose[RIGHT_HIP])
    mid_sho = midpoint(pose[LEFT_SHOULDER], pose[RIGHT_SHOULDER])
    torso = distance(mid_sho, mid_hip)
    if not math.isfinite(torso) or torso < MIN_TORSO_LENGTH:
        raise DegenerateScale(f"torso length {torso:.6f} < {MIN_TORSO_LENGTH}")

    return [
        Landmark(
            x=(lm.x - mid_hip.x) / torso,
            y=(lm.y - mid_hip.y) / torso,
            z=(lm.z - mid_hip.z) / torso,
            visibility=lm.visibility,
        )
        for lm in pose
    ]


def mirror_pose(raw: Any) -> Pose:
    """Negate x and swap every left/right landmark pair."""
    pose = [replace(lm, x=-lm.x) for lm in as_pose(raw)]
    for left, right in MIRROR_PAIRS:
        pose[left], pose[right] = pose[right], pose[left]
    return pose


__all__ = [
    "PoseDataError", "InsufficientLandmarks", "DegenerateScale", "NonFiniteLandmark",
    "Landmark", "Pose", "as_pose", "pose_to_array",
    "midpoint", "distance", "normalize_pose", "mirror_pose",
]
