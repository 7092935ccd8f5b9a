#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CONTRACT (POSECODE ENGINE)
==========================
Discrete, human-readable pose features ("posecodes") in the PoseScript manner.

- Input: one pose of 33 landmarks (raw image coordinates or normalized;
  thresholds are expressed in the input space, y grows downward).
- Output: list of Posecode(segment, code, description), in rule order:
    arms (left, right) -> legs (left, right) -> torso -> head

Rules (thresholds live in coaching_thresholds.POSECODE_TAU):
  arm   : arm_tightly_bent | arm_bent | arm_straight      (elbow angle)
          arm_overhead | arm_raised | arm_dropped         (wrist height)
          arm_extended_sideways, arm_crossed
  leg   : knee_deep_bend | knee_bent | leg_straight       (knee angle)
          leg_raised, leg_spread
  torso : torso_lean_left | torso_lean_right, shoulders_tilted, torso_compact
  head  : head_tilted, head_dropped

A rule is evaluated only if every landmark it reads has visibility >= 0.4.
Rules are independent; a segment may emit several codes at once.

Diffing two posecode sets (key = segment + code):
  missing = in reference, not in user  -> "try to match this"
  extra   = in user, not in reference  -> "reference doesn't do this here"
Descriptions list all missing items (reference order) then all extra items
(user order).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from dccore import joints as J
from dccore.coaching_thresholds import (
    CAPTION_FOCUS_BELOW,
    MIN_ANGLE_ARM,
    MIN_VISIBILITY,
    POSECODE_TAU as T,
)
from dccore.normalize import Landmark, Pose, PoseDataError, as_pose
from dccore.segments import BodySegment

MISSING = "missing"
EXTRA = "extra"


@dataclass(frozen=True)
class Posecode:
    segment: BodySegment
    code: str
    description: str

    @property
    def key(self) -> str:
        return f"{self.segment.value}:{self.code}"


@dataclass(frozen=True)
class PoseDescription:
    segment: BodySegment
    text: str
    kind: str  # MISSING | EXTRA


@dataclass
class PoseDifference:
    descriptions: List[PoseDescription] = field(default_factory=list)
    ref_posecodes: List[Posecode] = field(default_factory=list)
    user_posecodes: List[Posecode] = field(default_factory=list)


# -------------------------------------------------------------------------
# Geometry
# -------------------------------------------------------------------------

def joint_angle(a: Landmark, b: Landmark, c: Landmark) -> Optional[float]:
    """Interior angle at b in degrees (image plane); None if either arm is near zero."""
    bax, bay = a.x - b.x, a.y - b.y
    bcx, bcy = c.x - b.x, c.y - b.y
    n1 = math.hypot(bax, bay)
    n2 = math.hypot(bcx, bcy)
    if n1 < MIN_ANGLE_ARM or n2 < MIN_ANGLE_ARM:
        return None
    cosv = max(-1.0, min(1.0, (bax * bcx + bay * bcy) / (n1 * n2)))
    return math.degrees(math.acos(cosv))


def _visible(pose: Pose, *idx: int) -> bool:
    return all(pose[i].visibility >= MIN_VISIBILITY for i in idx)


def _mid_x(pose: Pose, a: int, b: int) -> float:
    return (pose[a].x + pose[b].x) / 2.0


def _mid_y(pose: Pose, a: int, b: int) -> float:
    return (pose[a].y + pose[b].y) / 2.0


# -------------------------------------------------------------------------
# Per-segment rules
# -------------------------------------------------------------------------

_ARM_SIDES = (
    ("left", BodySegment.LEFT_ARM, J.LEFT_SHOULDER, J.LEFT_ELBOW, J.LEFT_WRIST, J.LEFT_HIP),
    ("right", BodySegment.RIGHT_ARM, J.RIGHT_SHOULDER, J.RIGHT_ELBOW, J.RIGHT_WRIST, J.RIGHT_HIP),
)
_LEG_SIDES = (
    ("left", BodySegment.LEFT_LEG, J.LEFT_HIP, J.LEFT_KNEE, J.LEFT_ANKLE),
    ("right", BodySegment.RIGHT_LEG, J.RIGHT_HIP, J.RIGHT_KNEE, J.RIGHT_ANKLE),
)


def _arm_codes(p: Pose, side: str, seg: BodySegment, S: int, E: int, W: int, H: int) -> List[Posecode]:
    label = f"{side.capitalize()} arm"
    out: List[Posecode] = []

    def emit(code: str, desc: str) -> None:
        out.append(Posecode(seg, code, desc))

    if _visible(p, S, E, W):
        ang = joint_angle(p[S], p[E], p[W])
        if ang is not None:
            if ang < T["elbow_tight_deg"]:
                emit("arm_tightly_bent", f"{label} is tightly bent at the elbow")
            elif ang < T["elbow_bent_deg"]:
                emit("arm_bent", f"{label} is bent at roughly 90°")
            elif ang > T["elbow_straight_deg"]:
                emit("arm_straight", f"{label} is fully extended")

    if _visible(p, S, W):
        if p[W].y < p[S].y - T["wrist_raised"]:
            if _visible(p, J.NOSE):
                if p[W].y < p[J.NOSE].y:
                    emit("arm_overhead", f"{label} is raised overhead")
                else:
                    emit("arm_raised", f"{label} is raised above shoulder level")
        elif _visible(p, H) and p[W].y > p[H].y:
            emit("arm_dropped", f"{label} is hanging down by the side")

        if abs(p[W].x - p[S].x) > T["arm_side_x"] and abs(p[W].y - p[S].y) < T["arm_side_level_y"]:
            emit("arm_extended_sideways", f"{label} is extended out to the side")

    if _visible(p, W, J.LEFT_SHOULDER, J.RIGHT_SHOULDER):
        mid = _mid_x(p, J.LEFT_SHOULDER, J.RIGHT_SHOULDER)
        crossed = (
            p[W].x > mid + T["arm_cross_x"] if side == "left"
            else p[W].x < mid - T["arm_cross_x"]
        )
        if crossed:
            emit("arm_crossed", f"{label} is crossed over the body")

    return out


def _leg_codes(p: Pose, side: str, seg: BodySegment, H: int, K: int, A: int) -> List[Posecode]:
    label = f"{side.capitalize()} leg"
    out: List[Posecode] = []

    if _visible(p, H, K, A):
        ang = joint_angle(p[H], p[K], p[A])
        if ang is not None:
            if ang < T["knee_deep_deg"]:
                out.append(Posecode(seg, "knee_deep_bend", f"{label} is deeply bent (plié/squat position)"))
            elif ang < T["knee_bent_deg"]:
                out.append(Posecode(seg, "knee_bent", f"{label} has a bent knee"))
            elif ang > T["knee_straight_deg"]:
                out.append(Posecode(seg, "leg_straight", f"{label} is straight and extended"))

    if _visible(p, H, K) and p[K].y < p[H].y - T["knee_raised"]:
        out.append(Posecode(seg, "leg_raised", f"{label} is raised with knee above hip level"))

    if _visible(p, A, J.LEFT_HIP, J.RIGHT_HIP):
        if abs(p[A].x - _mid_x(p, J.LEFT_HIP, J.RIGHT_HIP)) > T["leg_spread_x"]:
            out.append(Posecode(seg, "leg_spread", f"{label} is extended outward (wide stance)"))

    return out


def _torso_codes(p: Pose) -> List[Posecode]:
    seg = BodySegment.TORSO
    if not _visible(p, J.LEFT_SHOULDER, J.RIGHT_SHOULDER, J.LEFT_HIP, J.RIGHT_HIP):
        return []
    out: List[Posecode] = []

    x_tilt = _mid_x(p, J.LEFT_SHOULDER, J.RIGHT_SHOULDER) - _mid_x(p, J.LEFT_HIP, J.RIGHT_HIP)
    if abs(x_tilt) > T["torso_lean_x"]:
        side = "right" if x_tilt > 0 else "left"
        out.append(Posecode(seg, f"torso_lean_{side}", f"Torso is leaning to the {side}"))

    tilt = p[J.LEFT_SHOULDER].y - p[J.RIGHT_SHOULDER].y
    if abs(tilt) > T["shoulder_tilt_y"]:
        lower = "left shoulder lower" if tilt > 0 else "right shoulder lower"
        out.append(Posecode(seg, "shoulders_tilted", f"Shoulders are tilted ({lower})"))

    height = abs(_mid_y(p, J.LEFT_HIP, J.RIGHT_HIP) - _mid_y(p, J.LEFT_SHOULDER, J.RIGHT_SHOULDER))
    if height < T["torso_compact_y"]:
        out.append(Posecode(seg, "torso_compact", "Body is in a compact/crouched position"))

    return out


def _head_codes(p: Pose) -> List[Posecode]:
    seg = BodySegment.HEAD
    if not _visible(p, J.NOSE, J.LEFT_SHOULDER, J.RIGHT_SHOULDER):
        return []
    out: List[Posecode] = []

    dx = p[J.NOSE].x - _mid_x(p, J.LEFT_SHOULDER, J.RIGHT_SHOULDER)
    if abs(dx) > T["head_tilt_x"]:
        side = "right" if dx > 0 else "left"
        out.append(Posecode(seg, "head_tilted", f"Head is tilted to the {side}"))

    if p[J.NOSE].y > _mid_y(p, J.LEFT_SHOULDER, J.RIGHT_SHOULDER) + T["head_drop_y"]:
        out.append(Posecode(seg, "head_dropped", "Head is dropped/looking down"))

    return out


# -------------------------------------------------------------------------
# Public API
# -------------------------------------------------------------------------

def extract_posecodes(raw: Any) -> Optional[List[Posecode]]:
    """Posecodes of one pose; None if the pose has fewer than 33 landmarks."""
    try:
        p = as_pose(raw)
    except PoseDataError:
        return None

    codes: List[Posecode] = []
    for side, seg, S, E, W, H in _ARM_SIDES:
        codes += _arm_codes(p, side, seg, S, E, W, H)
    for side, seg, H, K, A in _LEG_SIDES:
        codes += _leg_codes(p, side, seg, H, K, A)
    codes += _torso_codes(p)
    codes += _head_codes(p)
    return codes


def diff_posecodes(ref_codes: Sequence[Posecode], user_codes: Sequence[Posecode]) -> List[PoseDescription]:
    user_keys = {c.key for c in user_codes}
    ref_keys = {c.key for c in ref_codes}
    out: List[PoseDescription] = []
    for rc in ref_codes:
        if rc.key not in user_keys:
            out.append(PoseDescription(rc.segment, f"Reference shows: {rc.description} — try to match this", MISSING))
    for uc in user_codes:
        if uc.key not in ref_keys:
            out.append(PoseDescription(
                uc.segment, f"Your pose: {uc.description} — but the reference doesn't do this here", EXTRA
            ))
    return out


def describe_pose_difference(ref_pose: Any, user_pose: Any) -> Optional[PoseDifference]:
    ref_codes = extract_posecodes(ref_pose)
    user_codes = extract_posecodes(user_pose)
    if ref_codes is None or user_codes is None:
        return None
    return PoseDifference(
        descriptions=diff_posecodes(ref_codes, user_codes),
        ref_posecodes=ref_codes,
        user_posecodes=user_codes,
    )


def _worst(segment_scores: Optional[Mapping[Any, Optional[float]]]):
    worst, worst_score = None, 100.0
    for key, score in (segment_scores or {}).items():
        if score is not None and score < worst_score:
            worst, worst_score = BodySegment.parse(key), score
    return worst, worst_score


def realtime_coaching_label(
    ref_pose: Any,
    user_pose: Any,
    segment_scores: Optional[Mapping[Any, Optional[float]]] = None,
) -> Optional[str]:
    """Single live caption: worst segment's mismatch if it scores < 70, else the first mismatch."""
    diff = describe_pose_difference(ref_pose, user_pose)
    if diff is None or not diff.descriptions:
        return None

    worst, worst_score = _worst(segment_scores)
    if worst is not None and worst_score < CAPTION_FOCUS_BELOW:
        for d in diff.descriptions:
            if d.segment == worst:
                return d.text
    return diff.descriptions[0].text


def voice_coaching_cue(
    ref_pose: Any,
    user_pose: Any,
    segment_scores: Optional[Mapping[Any, Optional[float]]] = None,
) -> Optional[str]:
    """Speakable cue: the reference's first posecode for the worst segment, else the first mismatch."""
    diff = describe_pose_difference(ref_pose, user_pose)
    if diff is None or not diff.descriptions:
        return None

    worst, _ = _worst(segment_scores)
    if worst is not None:
        for c in diff.ref_posecodes:
            if c.segment == worst:
                return c.description
    return diff.descriptions[0].text


def serialize_posecodes(ref_pose: Any, user_pose: Any) -> str:
    """Reference / user / differences as up to three lines of narrative context."""
    diff = describe_pose_difference(ref_pose, user_pose)
    if diff is None:
        return ""
    lines: List[str] = []
    if diff.ref_posecodes:
        lines.append("Reference pose: " + "; ".join(c.description for c in diff.ref_posecodes))
    if diff.user_posecodes:
        lines.append("Your pose: " + "; ".join(c.description for c in diff.user_posecodes))
    if diff.descriptions:
        lines.append("Differences: " + "; ".join(d.text for d in diff.descriptions))
    return "\n".join(lines)


__all__ = [
    "MISSING", "EXTRA",
    "Posecode", "PoseDescription", "PoseDifference",
    "joint_angle", "extract_posecodes", "diff_posecodes", "describe_pose_difference",
    "realtime_coaching_label", "voice_coaching_cue", "serialize_posecodes",
]
