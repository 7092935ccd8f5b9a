# dccore/voice_coach.py
# Decides if and what to say after each live comparison. Speech itself is
# delegated to an optional `speak(text)` callable.

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Tuple

from dccore.coaching_thresholds import (
    MIN_VISIBILITY,
    PRAISE_MESSAGE,
    VOICE_COOLDOWN_MS,
    VOICE_DIRECTION_MIN,
    VOICE_PRAISE_AT,
    VOICE_REPEAT_MS,
    VOICE_SPEAK_BELOW,
)
from dccore.normalize import PoseDataError, as_pose
from dccore.segments import BodySegment
from dccore.similarity import ComparisonResult

log = logging.getLogger(__name__)

Speaker = Callable[[str], None]


@dataclass(frozen=True)
class VoiceCueState:
    last_speak_time: Optional[float] = None      # ms; None = nothing said yet
    last_spoken_segment: Optional[BodySegment] = None

    def elapsed(self, now_ms: float) -> float:
        if self.last_speak_time is None:
            return math.inf
        return now_ms - self.last_speak_time


def directional_cue(ref_pose: Any, user_pose: Any, segment: BodySegment) -> Optional[str]:
    """
    Compare the tip-minus-base offset of the segment's primary bone between
    the poses. None unless both landmarks are visible in both poses.
    """
    try:
        ref = as_pose(ref_pose)
        user = as_pose(user_pose)
    except PoseDataError:
        return None

    tip, base = segment.primary_bone
    if min(ref[tip].visibility, ref[base].visibility,
           user[tip].visibility, user[base].visibility) < MIN_VISIBILITY:
        return None

    y_diff = (user[tip].y - user[base].y) - (ref[tip].y - ref[base].y)
    x_diff = (user[tip].x - user[base].x) - (ref[tip].x - ref[base].x)
    label = segment.spoken

    if abs(y_diff) > abs(x_diff) and abs(y_diff) > VOICE_DIRECTION_MIN:
        return f"Raise your {label} higher" if y_diff > 0 else f"Lower your {label} a bit"
    if abs(x_diff) > VOICE_DIRECTION_MIN:
        return f"Bring your {label} more to the left" if x_diff > 0 else f"Extend your {label} more to the right"
    return f"Adjust your {label} position"


def next_voice_cue(
    state: VoiceCueState,
    comparison: Optional[ComparisonResult],
    now_ms: float,
    ref_pose: Any = None,
    user_pose: Any = None,
    cue: Optional[str] = None,
    enabled: bool = True,
) -> Tuple[Optional[str], VoiceCueState]:
    """
    Pure throttle step: returns (message or None, new state).

      1) silent if disabled, no comparison, or within the 4 s cooldown
      2) nothing below 55: praise (overall >= 85) after 8 s of silence
      3) same worst segment as last time within 8 s: silent
      4) external cue -> directional cue -> "Watch your <segment>"
    """
    if not enabled or comparison is None:
        return None, state
    elapsed = state.elapsed(now_ms)
    if elapsed < VOICE_COOLDOWN_MS:
        return None, state

    worst, worst_score = None, 100.0
    for seg, score in comparison.segments.items():
        if score is not None and score < worst_score:
            worst, worst_score = seg, score

    if worst is None or worst_score >= VOICE_SPEAK_BELOW:
        if comparison.overall >= VOICE_PRAISE_AT and elapsed > VOICE_REPEAT_MS:
            return PRAISE_MESSAGE, replace(state, last_speak_time=now_ms)
        return None, state

    if worst == state.last_spoken_segment and elapsed < VOICE_REPEAT_MS:
        return None, state

    message = cue or None
    if not message and ref_pose is not None and user_pose is not None:
        message = directional_cue(ref_pose, user_pose, worst)
    if not message:
        message = f"Watch your {worst.spoken}"

    return message, VoiceCueState(last_speak_time=now_ms, last_spoken_segment=worst)


class VoiceCoach:
    """Session-scoped owner of a VoiceCueState plus the enabled flag."""

    def __init__(
        self,
        enabled: bool = True,
        speak: Optional[Speaker] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.enabled = bool(enabled)
        self.speak = speak
        self.clock = clock or (lambda: time.time() * 1000.0)
        self.state = VoiceCueState()

    def reset(self) -> None:
        self.state = VoiceCueState()

    def set_enabled(self, value: bool) -> None:
        self.enabled = bool(value)
        if not self.enabled:
            self.reset()

    def update(
        self,
        comparison: Optional[ComparisonResult],
        ref_pose: Any = None,
        user_pose: Any = None,
        cue: Optional[str] = None,
        now_ms: Optional[float] = None,
    ) -> Optional[str]:
        now = self.clock() if now_ms is None else now_ms
        message, self.state = next_voice_cue(
            self.state, comparison, now,
            ref_pose=ref_pose, user_pose=user_pose, cue=cue, enabled=self.enabled,
        )
        if message is not None:
            log.debug("voice cue at %.0f ms: %s", now, message)
            if self.speak is not None:
                self.speak(message)
        return message


__all__ = ["Speaker", "VoiceCueState", "directional_cue", "next_voice_cue", "VoiceCoach"]
