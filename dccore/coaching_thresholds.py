# dccore/coaching_thresholds.py
# Centralized thresholds for scoring, posecodes, session statistics and voice cues.

from __future__ import annotations

from typing import Dict, List, Tuple

# =========================
# Landmark confidence
# =========================

MIN_VISIBILITY = 0.4          # landmark counts as seen at or above this
MIN_TORSO_LENGTH = 1e-3       # below this normalization is degenerate
MIN_VECTOR_NORM = 1e-4        # cosine of a shorter vector is defined as 0
MIN_ANGLE_ARM = 1e-3          # joint angle undefined if either arm of it is shorter

# =========================
# Posecode cut-offs
# =========================
# Angles in degrees, distances in the input coordinate space.

POSECODE_TAU: Dict[str, float] = {
    # Arms
    "elbow_tight_deg": 60.0,
    "elbow_bent_deg": 100.0,
    "elbow_straight_deg": 155.0,
    "wrist_raised": 0.05,        # wrist above shoulder by more than this
    "arm_side_x": 0.15,          # horizontal wrist-shoulder distance
    "arm_side_level_y": 0.08,    # ... with wrist near shoulder height
    "arm_cross_x": 0.05,         # past the shoulder midline

    # Legs
    "knee_deep_deg": 90.0,
    "knee_bent_deg": 140.0,
    "knee_straight_deg": 165.0,
    "knee_raised": 0.03,
    "leg_spread_x": 0.15,

    # Torso
    "torso_lean_x": 0.04,
    "shoulder_tilt_y": 0.04,
    "torso_compact_y": 0.08,

    # Head
    "head_tilt_x": 0.05,
    "head_drop_y": 0.02,
}

# =========================
# Score bands (live overlay)
# =========================
# (lower bound, color token, label), best first.

SCORE_BANDS: List[Tuple[float, str, str]] = [
    (85.0, "#22c55e", "Perfect!"),
    (70.0, "#84cc16", "Good"),
    (55.0, "#f59e0b", "Close"),
    (40.0, "#f97316", "Off"),
    (float("-inf"), "#ef4444", "Way Off"),
]
NO_SCORE_COLOR = "#64748b"
NO_SCORE_LABEL = "N/A"

# (lower bound, letter, label, color token), best first.
GRADES: List[Tuple[float, str, str, str]] = [
    (90.0, "S", "Superstar!", "#22c55e"),
    (80.0, "A", "Excellent", "#84cc16"),
    (70.0, "B", "Good Work", "#38bdf8"),
    (60.0, "C", "Getting There", "#f59e0b"),
    (50.0, "D", "Keep Practicing", "#f97316"),
    (float("-inf"), "F", "Beginner — Keep Going!", "#ef4444"),
]
NO_GRADE = "N/A"

# =========================
# Session statistics
# =========================

MIN_SESSION_SAMPLES = 3
FOCUS_AREA_BELOW = 70.0
STRENGTH_EXCELLENT = 85.0
STRUGGLE_BELOW = 50.0
STRUGGLE_MIN_LEN = 5
TREND_TIP = 8.0               # |trend| above this earns an improving/declining tip
TREND_FEEDBACK = 5.0          # |trend| above this is mentioned in segment feedback
MULTI_FOCUS_TIP = 3
MAX_TIPS = 5
TIMELINE_CHUNKS = 4

# =========================
# Worst moments
# =========================

MIN_MOMENT_SAMPLES = 5
MIN_WINDOW_SAMPLES = 3
GUARD_FACTOR = 1.5

# =========================
# Live captions / voice
# =========================

CAPTION_FOCUS_BELOW = 70.0
VOICE_COOLDOWN_MS = 4000
VOICE_REPEAT_MS = 8000        # same segment, or praise, needs this much silence
VOICE_SPEAK_BELOW = 55.0
VOICE_PRAISE_AT = 85.0
VOICE_DIRECTION_MIN = 0.04
PRAISE_MESSAGE = "Great form! You're nailing it!"


def band_for(score: float) -> Tuple[str, str]:
    """Return (color, label) of the band `score` falls in."""
    for lower, color, label in SCORE_BANDS:
        if score >= lower:
            return color, label
    return SCORE_BANDS[-1][1], SCORE_BANDS[-1][2]


def grade_for(score: float) -> Tuple[str, str, str]:
    """Return (letter, label, color) for an overall average."""
    for lower, letter, label, color in GRADES:
        if score >= lower:
            return letter, label, color
    return GRADES[-1][1], GRADES[-1][2], GRADES[-1][3]


__all__ = [
    "MIN_VISIBILITY", "MIN_TORSO_LENGTH", "MIN_VECTOR_NORM", "MIN_ANGLE_ARM",
    "POSECODE_TAU",
    "SCORE_BANDS", "NO_SCORE_COLOR", "NO_SCORE_LABEL",
    "GRADES", "NO_GRADE",
    "MIN_SESSION_SAMPLES", "FOCUS_AREA_BELOW", "STRENGTH_EXCELLENT",
    "STRUGGLE_BELOW", "STRUGGLE_MIN_LEN", "TREND_TIP", "TREND_FEEDBACK",
    "MULTI_FOCUS_TIP", "MAX_TIPS", "TIMELINE_CHUNKS",
    "MIN_MOMENT_SAMPLES", "MIN_WINDOW_SAMPLES", "GUARD_FACTOR",
    "CAPTION_FOCUS_BELOW", "VOICE_COOLDOWN_MS", "VOICE_REPEAT_MS",
    "VOICE_SPEAK_BELOW", "VOICE_PRAISE_AT", "VOICE_DIRECTION_MIN", "PRAISE_MESSAGE",
    "band_for", "grade_for",
]
