# tests/test_posetrack_io.py
#
# Tests for dccore/posetrack_io.py: NPZ / JSON track layouts, frame access,
# recorded session logs.

import json

import numpy as np
import pytest

from conftest import make_pose, make_session


def _arrays(T=4):
    pose = make_pose()
    P = np.tile(np.array([[lm["x"], lm["y"], 0.0] for lm in pose], dtype=np.float32), (T, 1, 1))
    V = np.full((T, 33), 0.9, dtype=np.float32)
    return P, V


def test_npz_current_layout(tmp_path):
    from dccore.posetrack_io import load_posetrack, save_posetrack
    P, V = _arrays()
    path = save_posetrack(str(tmp_path / "ref.posetrack.npz"), P, V, fps=24.0, meta={"source": "cam"})
    P2, V2, fps, meta = load_posetrack(path)
    assert P2.shape == (4, 33, 3) and V2.shape == (4, 33)
    assert fps == 24.0
    assert meta["source"] == "cam" and meta["fps"] == 24.0
    assert "source_path" in meta
    np.testing.assert_allclose(P2, P)


def test_npz_legacy_layout(tmp_path):
    from dccore.posetrack_io import load_posetrack
    P, V = _arrays(3)
    path = str(tmp_path / "old.npz")
    np.savez(path, kps_xyz=P, visibility=V * 2.0, fps=np.array([25.0]))
    P2, V2, fps, _ = load_posetrack(path)
    assert fps == 25.0
    assert V2.max() == pytest.approx(1.0)   # clipped


def test_npz_errors(tmp_path):
    from dccore.posetrack_io import load_posetrack
    with pytest.raises(FileNotFoundError):
        load_posetrack(str(tmp_path / "missing.npz"))

    path = str(tmp_path / "odd.npz")
    np.savez(path, something=np.zeros(3))
    with pytest.raises(KeyError):
        load_posetrack(path)

    path = str(tmp_path / "flat.npz")
    np.savez(path, P=np.zeros((5, 33)))
    with pytest.raises(ValueError):
        load_posetrack(path)

    path = str(tmp_path / "few.npz")
    np.savez(path, P=np.zeros((5, 17, 3)))
    with pytest.raises(ValueError):
        load_posetrack(path)


def test_json_track_with_missing_frames(tmp_path):
    from dccore.posetrack_io import DEFAULT_FPS, frame_pose, load_posetrack
    pose = make_pose()
    path = tmp_path / "user.json"
    path.write_text(json.dumps({"fps": 15, "frames": [pose, None, pose]}), encoding="utf-8")
    P, V, fps, _ = load_posetrack(str(path))
    assert fps == 15.0
    assert frame_pose(P, V, 1) is None
    first = frame_pose(P, V, 0)
    assert len(first) == 33
    assert first[11].x == pytest.approx(0.42)
    assert first[11].visibility == pytest.approx(0.9)

    bare = tmp_path / "bare.json"
    bare.write_text(json.dumps([pose]), encoding="utf-8")
    assert load_posetrack(str(bare))[2] == DEFAULT_FPS


def test_json_track_short_frame_raises(tmp_path):
    from dccore.posetrack_io import load_posetrack
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"frames": [make_pose()[:20]]}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_posetrack(str(path))


def test_session_log_keeps_poses_and_scores(tmp_path):
    from dccore.posetrack_io import load_session_samples, save_session_samples
    from dccore.segments import BodySegment
    session = make_session([70, 60, 50])
    path = save_session_samples(str(tmp_path / "log" / "samples.json"), session)
    loaded = load_session_samples(path)
    assert [s.overall for s in loaded] == [70, 60, 50]
    assert loaded[1].segments[BodySegment.TORSO] == 60
    assert loaded[2].video_time == 2.0
    assert loaded[0].has_poses and len(loaded[0].ref_pose) == 33

    with pytest.raises(FileNotFoundError):
        load_session_samples(str(tmp_path / "nope.json"))
