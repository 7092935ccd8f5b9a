# dccore/segments.py
# Body segments: the closed set of scoring/feedback units plus their lookup tables.

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Tuple

from dccore import joints as J


class BodySegment(str, Enum):
    LEFT_ARM = "leftArm"
    RIGHT_ARM = "rightArm"
    LEFT_LEG = "leftLeg"
    RIGHT_LEG = "rightLeg"
    TORSO = "torso"
    HEAD = "head"

    @property
    def bones(self) -> Tuple[Tuple[int, int], ...]:
        return BONES[self]

    @property
    def weight(self) -> float:
        return WEIGHTS[self]

    @property
    def label(self) -> str:
        return LABELS[self]

    @property
    def spoken(self) -> str:
        """Lower-case label used in voice cues ("left arm")."""
        return LABELS[self].lower()

    @property
    def primary_bone(self) -> Tuple[int, int]:
        """(tip, base) landmark indices used for directional cues."""
        return PRIMARY_BONE[self]

    @classmethod
    def parse(cls, key) -> "BodySegment":
        return key if isinstance(key, cls) else cls(str(key))


S = BodySegment

# (base, tip) landmark pairs per segment
BONES: Dict[BodySegment, Tuple[Tuple[int, int], ...]] = {
    S.LEFT_ARM: ((J.LEFT_SHOULDER, J.LEFT_ELBOW), (J.LEFT_ELBOW, J.LEFT_WRIST)),
    S.RIGHT_ARM: ((J.RIGHT_SHOULDER, J.RIGHT_ELBOW), (J.RIGHT_ELBOW, J.RIGHT_WRIST)),
    S.LEFT_LEG: ((J.LEFT_HIP, J.LEFT_KNEE), (J.LEFT_KNEE, J.LEFT_ANKLE)),
    S.RIGHT_LEG: ((J.RIGHT_HIP, J.RIGHT_KNEE), (J.RIGHT_KNEE, J.RIGHT_ANKLE)),
    S.TORSO: (
        (J.LEFT_SHOULDER, J.RIGHT_SHOULDER),
        (J.LEFT_SHOULDER, J.LEFT_HIP),
        (J.RIGHT_SHOULDER, J.RIGHT_HIP),
        (J.LEFT_HIP, J.RIGHT_HIP),
    ),
    S.HEAD: ((J.NOSE, J.LEFT_SHOULDER), (J.NOSE, J.RIGHT_SHOULDER)),
}

WEIGHTS: Dict[BodySegment, float] = {
    S.LEFT_ARM: 1.5, S.RIGHT_ARM: 1.5,
    S.LEFT_LEG: 1.5, S.RIGHT_LEG: 1.5,
    S.TORSO: 1.0,
    S.HEAD: 0.5,
}

LABELS: Dict[BodySegment, str] = {
    S.LEFT_ARM: "Left Arm", S.RIGHT_ARM: "Right Arm",
    S.LEFT_LEG: "Left Leg", S.RIGHT_LEG: "Right Leg",
    S.TORSO: "Torso",
    S.HEAD: "Head",
}

PRIMARY_BONE: Dict[BodySegment, Tuple[int, int]] = {
    S.LEFT_ARM: (J.LEFT_WRIST, J.LEFT_ELBOW),
    S.RIGHT_ARM: (J.RIGHT_WRIST, J.RIGHT_ELBOW),
    S.LEFT_LEG: (J.LEFT_ANKLE, J.LEFT_KNEE),
    S.RIGHT_LEG: (J.RIGHT_ANKLE, J.RIGHT_KNEE),
    S.TORSO: (J.LEFT_SHOULDER, J.LEFT_HIP),
    S.HEAD: (J.NOSE, J.LEFT_SHOULDER),
}

# =========================
# Coaching text tables
# =========================

SPECIFIC_FEEDBACK: Dict[BodySegment, str] = {
    S.LEFT_ARM: "Focus on matching the extension and angle of your left arm.",
    S.RIGHT_ARM: "Pay attention to your right arm's reach and angle.",
    S.LEFT_LEG: "Your left leg placement and kick height may need work.",
    S.RIGHT_LEG: "Right leg positioning — check kick height, step width, or knee bend.",
    S.TORSO: "Torso alignment is the foundation. Keep your core aligned with the reference.",
    S.HEAD: "Head position affects the overall look. Match your gaze and head angle.",
}

EXERCISES: Dict[BodySegment, List[Dict[str, str]]] = {
    S.LEFT_ARM: [
        {"name": "Arm Isolation Drill", "desc": "Practice arm movements at 0.5× speed"},
        {"name": "Mirror Matching", "desc": "Pause and match arm position exactly"},
    ],
    S.RIGHT_ARM: [
        {"name": "Arm Isolation Drill", "desc": "Practice arm movements at 0.5× speed"},
        {"name": "Position Holds", "desc": "Freeze at trickiest arm positions for 5s each"},
    ],
    S.LEFT_LEG: [
        {"name": "Footwork Breakdown", "desc": "Practice leg movements without arms at half speed"},
        {"name": "Kick Height Check", "desc": "Compare kick height against reference"},
    ],
    S.RIGHT_LEG: [
        {"name": "Step Width Practice", "desc": "Focus on matching width and depth of each step"},
        {"name": "Slow-Mo Leg Drill", "desc": "Run reference at 0.5× for right leg only"},
    ],
    S.TORSO: [
        {"name": "Core Alignment Check", "desc": "Dance while watching skeleton — keep torso lines green"},
        {"name": "Hip-Shoulder Sync", "desc": "Rotate hips and shoulders together"},
    ],
    S.HEAD: [
        {"name": "Head Position Awareness", "desc": "Practice with fixed gaze matching reference"},
        {"name": "Posture Check", "desc": "Keep chin level and head centered"},
    ],
}
FALLBACK_EXERCISES: List[Dict[str, str]] = [
    {"name": "Slow Practice", "desc": "Practice at 0.5× speed"},
]


def exercises_for(segment) -> List[Dict[str, str]]:
    try:
        seg = BodySegment.parse(segment)
    except ValueError:
        return [dict(e) for e in FALLBACK_EXERCISES]
    return [dict(e) for e in EXERCISES.get(seg, FALLBACK_EXERCISES)]


__all__ = [
    "BodySegment",
    "BONES", "WEIGHTS", "LABELS", "PRIMARY_BONE",
    "SPECIFIC_FEEDBACK", "EXERCISES", "FALLBACK_EXERCISES",
    "exercises_for",
]
