# dccore/similarity.py
#
# Segment-wise cosine similarity between a reference and a user pose.
#
# Responsibilities:
#   - normalize both poses (pelvis origin, torso scale)
#   - compare bone direction vectors per body segment
#   - weight segment scores into one overall score
#   - map scores to overlay colors / labels / letter grades
#
# IO-free; nothing here raises on bad pose data.

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from dccore.coaching_thresholds import (
    MIN_VECTOR_NORM,
    MIN_VISIBILITY,
    NO_SCORE_COLOR,
    NO_SCORE_LABEL,
    band_for,
    grade_for,
)
from dccore.normalize import PoseDataError, Pose, normalize_pose, pose_to_array
from dccore.segments import BodySegment

log = logging.getLogger(__name__)

SegmentScores = Dict[BodySegment, Optional[float]]


def round_score(value: float, ndigits: int = 0) -> float:
    """Round half away from zero for positive scores (0.05 -> 0.1, 42.5 -> 43)."""
    q = 10.0 ** ndigits
    return math.floor(value * q + 0.5) / q


@dataclass
class ComparisonResult:
    overall: float
    segments: SegmentScores
    timestamp: float = field(default_factory=lambda: time.time() * 1000.0)

    @property
    def has_data(self) -> bool:
        """False when no segment could be scored (overall is then 0, not a real score)."""
        return any(v is not None for v in self.segments.values())

    def worst_segment(self) -> Optional[BodySegment]:
        """Lowest-scoring segment with data; first in segment order on ties."""
        worst, worst_score = None, math.inf
        for seg, score in self.segments.items():
            if score is not None and score < worst_score:
                worst, worst_score = seg, score
        return worst

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "segments": {seg.value: score for seg, score in self.segments.items()},
            "timestamp": self.timestamp,
        }


def _cosine(v1: np.ndarray, v2: np.ndarray) -> float:
    n1 = float(np.linalg.norm(v1))
    n2 = float(np.linalg.norm(v2))
    if n1 < MIN_VECTOR_NORM or n2 < MIN_VECTOR_NORM:
        return 0.0
    return float(np.dot(v1, v2) / (n1 * n2))


def segment_scores(ref_norm: Pose, user_norm: Pose) -> SegmentScores:
    """Per-segment 0..100 score of two already-normalized poses; None where no bone is visible."""
    A = pose_to_array(ref_norm)
    B = pose_to_array(user_norm)
    out: SegmentScores = {}

    for seg in BodySegment:
        sims = []
        for a, b in seg.bones:
            vis = min(A[a, 3], A[b, 3], B[a, 3], B[b, 3])
            if vis < MIN_VISIBILITY:
                continue
            sims.append(_cosine(A[b, :3] - A[a, :3], B[b, :3] - B[a, :3]))

        if not sims:
            out[seg] = None
            continue
        mean_cos = sum(sims) / len(sims)
        out[seg] = max(0.0, min(100.0, (mean_cos + 1.0) / 2.0 * 100.0))

    return out


def overall_score(scores: SegmentScores) -> float:
    """Weighted mean of the scored segments, 1 decimal; 0 if none scored."""
    num = 0.0
    den = 0.0
    for seg, score in scores.items():
        if score is None:
            continue
        num += score * seg.weight
        den += seg.weight
    return round_score(num / den, 1) if den > 0 else 0.0


def compare_poses(ref_pose: Any, user_pose: Any, timestamp: Optional[float] = None) -> Optional[ComparisonResult]:
    """
    Compare two raw poses. Returns None only when either pose cannot be
    normalized (too few landmarks, degenerate torso).
    """
    try:
        ref_norm = normalize_pose(ref_pose)
        user_norm = normalize_pose(user_pose)
    except PoseDataError as e:
        log.debug("compare_poses skipped: %s", e)
        return None

    scores = segment_scores(ref_norm, user_norm)
    result = ComparisonResult(overall=overall_score(scores), segments=scores)
    if timestamp is not None:
        result.timestamp = float(timestamp)
    return result


# =========================
# Overlay mapping
# =========================

def score_to_color(score: Optional[float]) -> str:
    if score is None:
        return NO_SCORE_COLOR
    return band_for(score)[0]


def score_to_label(score: Optional[float]) -> str:
    if score is None:
        return NO_SCORE_LABEL
    return band_for(score)[1]


def score_to_grade(score: Optional[float]) -> str:
    if score is None:
        return "—"
    return grade_for(score)[0]


__all__ = [
    "ComparisonResult", "SegmentScores",
    "round_score", "segment_scores", "overall_score", "compare_poses",
    "score_to_color", "score_to_label", "score_to_grade",
]
