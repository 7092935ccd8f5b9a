# dccore/worst_moments.py
#
# Find the K lowest-scoring, non-overlapping time windows of a session.
#
#   1) rolling mean of `overall` over every window of `window` samples (step 1)
#   2) sort windows by mean, ascending (stable: earlier window wins exact ties)
#   3) greedily accept windows that touch no claimed sample; claim the window
#      plus a guard zone on both sides
#   4) return the accepted windows in chronological order

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from dccore.coaching_thresholds import GUARD_FACTOR, MIN_MOMENT_SAMPLES, MIN_WINDOW_SAMPLES
from dccore.samples import SessionSample
from dccore.segments import BodySegment
from dccore.similarity import round_score

log = logging.getLogger(__name__)


@dataclass
class Moment:
    start_index: int                # index into the pose-bearing samples
    end_index: int                  # inclusive
    start_video_time: float
    end_video_time: float
    avg_score: float                # 1 decimal
    samples: List[SessionSample] = field(default_factory=list, repr=False)

    @property
    def center_index(self) -> int:
        return self.start_index + len(self.samples) // 2

    @property
    def center_sample(self) -> SessionSample:
        return self.samples[len(self.samples) // 2]


def window_length(samples: Sequence[SessionSample], window_seconds: float) -> int:
    """Samples per window from the average sample interval; 0 if the span is empty."""
    span_ms = samples[-1].timestamp - samples[0].timestamp
    avg_interval_ms = span_ms / (len(samples) - 1)
    if avg_interval_ms <= 0:
        return 0
    return max(MIN_WINDOW_SAMPLES, int(round_score(window_seconds * 1000.0 / avg_interval_ms)))


def rolling_means(scores: Sequence[float], window: int) -> np.ndarray:
    arr = np.asarray(scores, dtype=float)
    if window <= 0 or arr.size < window:
        return np.empty(0)
    return np.lib.stride_tricks.sliding_window_view(arr, window).mean(axis=1)


def find_worst_moments(
    session: Sequence[SessionSample],
    count: int = 3,
    window_seconds: float = 3.0,
) -> List[Moment]:
    """Up to `count` worst windows, chronological. Empty when fewer than 5 usable samples."""
    if not session or len(session) < MIN_MOMENT_SAMPLES:
        return []
    valid = [s for s in session if s.has_poses]
    if len(valid) < MIN_MOMENT_SAMPLES:
        return []

    window = window_length(valid, window_seconds)
    means = rolling_means([s.overall for s in valid], window)
    if means.size == 0:
        log.debug("no %d-sample window fits in %d samples", window, len(valid))
        return []

    order = sorted(range(means.size), key=lambda i: means[i])
    guard = max(window, int(round_score(window * GUARD_FACTOR)))
    claimed = np.zeros(len(valid), dtype=bool)
    picked: List[Moment] = []

    for i in order:
        if len(picked) >= count:
            break
        if claimed[i:i + window].any():
            continue
        claimed[max(0, i - guard):min(len(valid), i + window + guard)] = True
        win = valid[i:i + window]
        picked.append(Moment(
            start_index=i,
            end_index=i + window - 1,
            start_video_time=float(win[0].video_time),
            end_video_time=float(win[-1].video_time),
            avg_score=round_score(float(means[i]), 1),
            samples=list(win),
        ))

    picked.sort(key=lambda m: (m.start_video_time, m.start_index))
    return picked


def worst_segments(samples: Sequence[SessionSample], n: int = 3) -> List[Tuple[BodySegment, float]]:
    """The `n` lowest-average segments across `samples`, worst first."""
    totals: Dict[BodySegment, List[float]] = {}
    for s in samples:
        for seg, score in s.segments.items():
            if score is not None:
                totals.setdefault(seg, []).append(score)
    ranked = sorted(((seg, float(np.mean(v))) for seg, v in totals.items()), key=lambda p: p[1])
    return ranked[:n]


__all__ = ["Moment", "window_length", "rolling_means", "find_worst_moments", "worst_segments"]
