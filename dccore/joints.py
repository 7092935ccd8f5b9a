from __future__ import annotations

"""
Centralized MediaPipe BlazePose landmark indices, names and mirror table.

Every module that needs a landmark index imports it from here; nothing
downstream should hardcode numeric indices.
"""

from typing import Dict, List, Tuple

LANDMARK_COUNT = 33

LANDMARK_NAMES: List[str] = [
    "nose",
    "left_eye_inner", "left_eye", "left_eye_outer",
    "right_eye_inner", "right_eye", "right_eye_outer",
    "left_ear", "right_ear",
    "mouth_left", "mouth_right",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_pinky", "right_pinky",
    "left_index", "right_index",
    "left_thumb", "right_thumb",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
    "left_heel", "right_heel",
    "left_foot_index", "right_foot_index",
]
NAME_TO_IDX: Dict[str, int] = {n: i for i, n in enumerate(LANDMARK_NAMES)}

NOSE = NAME_TO_IDX["nose"]
LEFT_SHOULDER = NAME_TO_IDX["left_shoulder"]
RIGHT_SHOULDER = NAME_TO_IDX["right_shoulder"]
LEFT_ELBOW = NAME_TO_IDX["left_elbow"]
RIGHT_ELBOW = NAME_TO_IDX["right_elbow"]
LEFT_WRIST = NAME_TO_IDX["left_wrist"]
RIGHT_WRIST = NAME_TO_IDX["right_wrist"]
LEFT_HIP = NAME_TO_IDX["left_hip"]
RIGHT_HIP = NAME_TO_IDX["right_hip"]
LEFT_KNEE = NAME_TO_IDX["left_knee"]
RIGHT_KNEE = NAME_TO_IDX["right_knee"]
LEFT_ANKLE = NAME_TO_IDX["left_ankle"]
RIGHT_ANKLE = NAME_TO_IDX["right_ankle"]


# Left/right pairs swapped when mirroring a pose: body first, then face.
MIRROR_PAIRS: Tuple[Tuple[int, int], ...] = (
    (11, 12), (13, 14), (15, 16), (17, 18), (19, 20), (21, 22),
    (23, 24), (25, 26), (27, 28), (29, 30), (31, 32),
    (1, 4), (2, 5), (3, 6), (7, 8), (9, 10),
)

__all__ = [
    "LANDMARK_COUNT", "LANDMARK_NAMES", "NAME_TO_IDX",
    "NOSE",
    "LEFT_SHOULDER", "RIGHT_SHOULDER",
    "LEFT_ELBOW", "RIGHT_ELBOW",
    "LEFT_WRIST", "RIGHT_WRIST",
    "LEFT_HIP", "RIGHT_HIP",
    "LEFT_KNEE", "RIGHT_KNEE",
    "LEFT_ANKLE", "RIGHT_ANKLE",
    "MIRROR_PAIRS",
]
