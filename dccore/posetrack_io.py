# dccore/posetrack_io.py
# Loaders for recorded pose tracks and recorded session logs.
#
# Pose tracks hide their on-disk layout:
#     * NPZ:  P (T,33,3), V (T,33), meta_json (JSON string/dict-like)
#     * NPZ (old): kps_xyz (T,33,3), visibility (T,33), fps[...] or fps scalar
#     * JSON: {"fps": 30, "frames": [[{x,y,z,visibility}, ...] | null, ...]}
#             or a bare list of frames
# and always come back as:
#     P:    (T, 33, 3) float32, NaN rows = no person detected that frame
#     V:    (T, 33)   float32 in [0,1]
#     fps:  float (default 30.0 if missing)
#     meta: dict with at least "fps" and "source_path"
#
# Session logs are the JSON list written by save_session_samples.

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from dccore.joints import LANDMARK_COUNT
from dccore.normalize import Landmark, Pose
from dccore.samples import SessionSample

log = logging.getLogger(__name__)

DEFAULT_FPS = 30.0

Track = Tuple[np.ndarray, np.ndarray, float, Dict[str, Any]]


def _parse_meta_json_like(raw: Any) -> Dict[str, Any]:
    """dict as-is, JSON text/bytes (or a 0-d array holding one) parsed, else {}."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, np.ndarray) and raw.ndim == 0:
        raw = raw.item()
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return {}
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("ignoring unparseable meta_json")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _valid_fps(value: Any) -> Optional[float]:
    try:
        v = float(np.asarray(value, dtype=float).ravel()[0])
    except (TypeError, ValueError, IndexError):
        return None
    return v if np.isfinite(v) and v > 1e-3 else None


def _finish(P: np.ndarray, V: np.ndarray, fps: Optional[float], meta: Dict[str, Any], path: str) -> Track:
    if P.ndim != 3 or P.shape[2] < 2:
        raise ValueError(f"Invalid P shape in '{path}': {P.shape}")
    if P.shape[1] < LANDMARK_COUNT:
        raise ValueError(f"'{path}' has {P.shape[1]} landmarks per frame, expected {LANDMARK_COUNT}")
    T = P.shape[0]
    P = P[:, :LANDMARK_COUNT, :]
    if P.shape[2] == 2:
        P = np.concatenate([P, np.zeros((T, LANDMARK_COUNT, 1), dtype=P.dtype)], axis=2)
    P = P[:, :, :3].astype(np.float32)

    if V.ndim != 2 or V.shape[0] != T or V.shape[1] < LANDMARK_COUNT:
        log.warning("visibility shape %s does not match P %s in '%s'; assuming fully visible",
                    V.shape, P.shape, path)
        V = np.ones((T, LANDMARK_COUNT), dtype=np.float32)
    V = np.nan_to_num(V[:, :LANDMARK_COUNT], nan=0.0, posinf=0.0, neginf=0.0)
    V = np.clip(V, 0.0, 1.0).astype(np.float32)

    fps = fps or DEFAULT_FPS
    meta = dict(meta)
    meta["fps"] = float(fps)
    meta.setdefault("source_path", os.path.abspath(path))
    return P, V, float(fps), meta


def _load_npz(path: str) -> Track:
    with np.load(path, allow_pickle=True) as d:
        files = set(d.files)
        meta = _parse_meta_json_like(d["meta_json"]) if "meta_json" in files else {}

        if "P" in files:
            P = d["P"].astype(np.float32)
            V = d["V"].astype(np.float32) if "V" in files else np.ones(P.shape[:2], dtype=np.float32)
        elif "kps_xyz" in files:
            P = d["kps_xyz"].astype(np.float32)
            V = (d["visibility"].astype(np.float32) if "visibility" in files
                 else np.ones(P.shape[:2], dtype=np.float32))
        else:
            raise KeyError(
                f"Unrecognized pose layout in '{path}'. "
                f"Expected one of: P / (kps_xyz), found {sorted(files)}"
            )

        fps = _valid_fps(meta["fps"]) if "fps" in meta else None
        if fps is None and "fps" in files:
            fps = _valid_fps(d["fps"])

    return _finish(P, V, fps, meta, path)


def _load_json(path: str) -> Track:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        frames = data.get("frames")
        meta = {k: v for k, v in data.items() if k != "frames"}
    else:
        frames, meta = data, {}
    if not isinstance(frames, list):
        raise KeyError(f"'{path}' has no frame list")

    T = len(frames)
    P = np.full((T, LANDMARK_COUNT, 3), np.nan, dtype=np.float32)
    V = np.zeros((T, LANDMARK_COUNT), dtype=np.float32)
    for t, frame in enumerate(frames):
        if not frame:
            continue
        if len(frame) < LANDMARK_COUNT:
            raise ValueError(f"frame {t} in '{path}' has {len(frame)} landmarks, expected {LANDMARK_COUNT}")
        for j, raw in enumerate(frame[:LANDMARK_COUNT]):
            lm = Landmark.from_any(raw)
            P[t, j] = (lm.x, lm.y, lm.z)
            V[t, j] = lm.visibility

    return _finish(P, V, _valid_fps(meta["fps"]) if "fps" in meta else None, meta, path)


def load_posetrack(path: str) -> Track:
    """
    Load a pose track (.npz or .json) and return (P, V, fps, meta).

    Raises FileNotFoundError for a missing file, KeyError for an unknown
    layout and ValueError for malformed arrays.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Pose track not found: {path}")
    if path.lower().endswith(".json"):
        return _load_json(path)
    return _load_npz(path)


def save_posetrack(path: str, P: np.ndarray, V: np.ndarray, fps: float,
                   meta: Optional[Dict[str, Any]] = None) -> str:
    """Write the current NPZ layout (P / V / meta_json)."""
    meta = dict(meta or {})
    meta["fps"] = float(fps)
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    np.savez_compressed(
        path,
        P=np.asarray(P, dtype=np.float32),
        V=np.asarray(V, dtype=np.float32),
        meta_json=np.array(json.dumps(meta)),
    )
    return path


def frame_pose(P: np.ndarray, V: np.ndarray, t: int) -> Optional[Pose]:
    """Pose at frame t, or None when the frame has no detection (any NaN coordinate)."""
    xyz = P[t]
    if not np.all(np.isfinite(xyz)):
        return None
    return [
        Landmark(float(x), float(y), float(z), float(v))
        for (x, y, z), v in zip(xyz.tolist(), V[t].tolist())
    ]


# --------------------------------------------------------------------------------------
# Recorded sessions
# --------------------------------------------------------------------------------------

def save_session_samples(path: str, samples: Sequence[SessionSample]) -> str:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([s.to_dict(include_poses=True) for s in samples], f)
    return path


def load_session_samples(path: str) -> List[SessionSample]:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Session log not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("samples")
    if not isinstance(data, list):
        raise ValueError(f"'{path}' does not hold a list of session samples")
    return [SessionSample.from_dict(d) for d in data]


__all__ = [
    "DEFAULT_FPS", "Track",
    "load_posetrack", "save_posetrack", "frame_pose",
    "save_session_samples", "load_session_samples",
]
