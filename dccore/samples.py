# dccore/samples.py
# Session sample log: the subsampled comparison history a session leaves behind.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dccore.normalize import Pose, as_pose
from dccore.segments import BodySegment
from dccore.similarity import ComparisonResult, SegmentScores


@dataclass
class SessionSample:
    """One retained comparison tick plus the poses it was computed from."""
    comparison: ComparisonResult
    ref_pose: Optional[Pose] = None
    user_pose: Optional[Pose] = None
    video_time: Optional[float] = None  # reference playback position, seconds

    @property
    def overall(self) -> float:
        return self.comparison.overall

    @property
    def segments(self) -> SegmentScores:
        return self.comparison.segments

    @property
    def timestamp(self) -> float:
        return self.comparison.timestamp

    @property
    def has_poses(self) -> bool:
        return self.video_time is not None and bool(self.ref_pose) and bool(self.user_pose)

    def to_dict(self, include_poses: bool = True) -> Dict[str, Any]:
        d = self.comparison.to_dict()
        d["videoTime"] = self.video_time
        if include_poses:
            for key, pose in (("refPose", self.ref_pose), ("userPose", self.user_pose)):
                d[key] = None if pose is None else [
                    {"x": lm.x, "y": lm.y, "z": lm.z, "visibility": lm.visibility} for lm in pose
                ]
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SessionSample":
        segments = {
            BodySegment.parse(k): (None if v is None else float(v))
            for k, v in (d.get("segments") or {}).items()
        }
        comp = ComparisonResult(
            overall=float(d.get("overall", 0.0)),
            segments=segments,
            timestamp=float(d.get("timestamp", 0.0)),
        )
        ref = d.get("refPose")
        user = d.get("userPose")
        vt = d.get("videoTime")
        return cls(
            comparison=comp,
            ref_pose=as_pose(ref) if ref else None,
            user_pose=as_pose(user) if user else None,
            video_time=None if vt is None else float(vt),
        )


class SessionLog:
    """
    Append-only sample log with a single producer. Keeps every
    `sample_every`-th successful comparison.
    """

    def __init__(self, sample_every: int = 3):
        self.sample_every = max(1, int(sample_every))
        self._count = 0
        self._samples: List[SessionSample] = []

    def reset(self) -> None:
        self._count = 0
        self._samples = []

    def offer(
        self,
        comparison: ComparisonResult,
        ref_pose: Pose,
        user_pose: Pose,
        video_time: Optional[float],
    ) -> bool:
        """Count one comparison; store it if it is the n-th. Returns True when stored."""
        self._count += 1
        if self._count % self.sample_every != 0:
            return False
        self._samples.append(SessionSample(
            comparison=comparison,
            ref_pose=list(ref_pose),
            user_pose=list(user_pose),
            video_time=0.0 if video_time is None else float(video_time),
        ))
        return True

    @property
    def comparisons_seen(self) -> int:
        return self._count

    @property
    def samples(self) -> List[SessionSample]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)


__all__ = ["SessionSample", "SessionLog"]
