"""
dccore.session
--------------

Live practice session: a fixed-cadence polling loop that compares the latest
reference pose with the latest user pose.

Two LatestPose slots are written by the external pose-detection provider at
its own rate (last value wins, no queue). Each tick reads both slots; if
either is empty the tick is skipped. Successful comparisons feed the live
overlay callback, the voice coach, and the subsampled session log.

Usage (library):
    ref, user = LatestPose(), LatestPose()
    session = PracticeSession(ref, user)
    session.start()
    thread = session.spawn()          # or call session.tick() from your own timer
    ...
    session.stop(); thread.join()
    summary = session.summary()
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, List, Optional, Tuple

from dccore.config import SessionConfig
from dccore.normalize import Pose, PoseDataError, as_pose
from dccore.posecodes import voice_coaching_cue
from dccore.report import SessionSummary, build_report
from dccore.samples import SessionLog, SessionSample
from dccore.similarity import ComparisonResult, compare_poses
from dccore.voice_coach import VoiceCoach

log = logging.getLogger(__name__)

OverlayCallback = Callable[[ComparisonResult], None]


class LatestPose:
    """Single-value, thread-safe slot holding the most recent pose of one track."""

    def __init__(self):
        self._lock = threading.Lock()
        self._pose: Optional[Pose] = None
        self._position: Optional[float] = None

    def update(self, pose: Any, position: Optional[float] = None) -> None:
        """Store a detected pose (None = no person this frame) and the track position in seconds."""
        if pose is not None:
            try:
                pose = as_pose(pose)
            except PoseDataError as e:
                log.debug("dropping invalid pose: %s", e)
                pose = None
        with self._lock:
            self._pose = pose
            self._position = position

    def clear(self) -> None:
        with self._lock:
            self._pose = None
            self._position = None

    def get(self) -> Optional[Pose]:
        with self._lock:
            return self._pose

    def snapshot(self) -> Tuple[Optional[Pose], Optional[float]]:
        with self._lock:
            return self._pose, self._position


class PracticeSession:
    def __init__(
        self,
        reference: LatestPose,
        user: LatestPose,
        config: Optional[SessionConfig] = None,
        voice: Optional[VoiceCoach] = None,
        on_comparison: Optional[OverlayCallback] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.reference = reference
        self.user = user
        self.config = config or SessionConfig()
        self.clock = clock or (lambda: time.time() * 1000.0)
        self.voice = voice or VoiceCoach(enabled=self.config.voice_enabled, clock=self.clock)
        self.on_comparison = on_comparison
        self.log = SessionLog(sample_every=self.config.sample_every)
        self.latest: Optional[ComparisonResult] = None
        self.last_cue: Optional[str] = None
        self._stop = threading.Event()
        self._active = False

    # ---- lifecycle ----

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        self.log.reset()
        self.latest = None
        self.last_cue = None
        self.voice.reset()
        self._stop.clear()
        self._active = True
        log.info("session started (poll=%d ms, sample every %d)",
                 self.config.poll_interval_ms, self.config.sample_every)

    def stop(self) -> None:
        self._active = False
        self._stop.set()
        self.voice.reset()
        log.info("session stopped: %d comparisons, %d samples",
                 self.log.comparisons_seen, len(self.log))

    # ---- sampling ----

    def tick(self, now_ms: Optional[float] = None) -> Optional[ComparisonResult]:
        """One comparison of the current snapshots; None when skipped."""
        ref_pose, position = self.reference.snapshot()
        user_pose = self.user.get()
        if ref_pose is None or user_pose is None:
            return None

        now = self.clock() if now_ms is None else now_ms
        result = compare_poses(ref_pose, user_pose, timestamp=now)
        if result is None:
            return None

        self.latest = result
        if self.on_comparison is not None:
            self.on_comparison(result)

        cue = None
        if self.config.posecode_cues and self.voice.enabled:
            cue = voice_coaching_cue(ref_pose, user_pose, result.segments)
        spoken = self.voice.update(result, ref_pose, user_pose, cue=cue, now_ms=now)
        if spoken is not None:
            self.last_cue = spoken

        self.log.offer(result, ref_pose, user_pose, position)
        return result

    def run(self) -> None:
        """Poll until stop(). Not re-entrant: at most one tick in flight."""
        interval = max(1, self.config.poll_interval_ms) / 1000.0
        while not self._stop.is_set():
            self.tick()
            self._stop.wait(interval)

    def spawn(self) -> threading.Thread:
        th = threading.Thread(target=self.run, name="dccore-session", daemon=True)
        th.start()
        return th

    # ---- results ----

    @property
    def samples(self) -> List[SessionSample]:
        return self.log.samples

    @property
    def has_summary(self) -> bool:
        return len(self.log) >= self.config.min_summary_samples

    def summary(self, narrator=None) -> SessionSummary:
        """Post-session batch analysis; call after stop()."""
        return build_report(
            self.samples,
            narrator=narrator,
            moment_count=self.config.moment_count,
            window_seconds=self.config.moment_window_s,
        )


__all__ = ["LatestPose", "PracticeSession", "OverlayCallback"]
