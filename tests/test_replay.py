# tests/test_replay.py
#
# Tests for dccore/replay.py: offline replay through PracticeSession and the CLI.

import json
import os

import numpy as np
import pytest

from conftest import RIGHT_ARM_UP, make_pose


def _track(pose, T, fps=30.0):
    P = np.tile(np.array([[lm["x"], lm["y"], 0.0] for lm in pose], dtype=np.float32), (T, 1, 1))
    V = np.array([[lm["visibility"] for lm in pose]] * T, dtype=np.float32)
    return P, V, fps, {"fps": fps}


def test_replay_samples_every_third_tick():
    from dccore.config import SessionConfig
    from dccore.replay import replay_tracks
    ref = _track(make_pose(RIGHT_ARM_UP), 60)
    user = _track(make_pose(), 60)
    session = replay_tracks(ref, user, config=SessionConfig(poll_interval_ms=100, voice_enabled=False))
    assert session.log.comparisons_seen == 20
    samples = session.samples
    assert len(samples) == 6
    assert samples[0].timestamp == 200.0
    assert samples[0].video_time == pytest.approx(0.2)
    assert not session.active


def test_replay_with_zero_poll_interval_ticks_every_millisecond():
    from dccore.config import SessionConfig
    from dccore.replay import replay_tracks
    session = replay_tracks(_track(make_pose(), 3), _track(make_pose(), 3),
                            config=SessionConfig(poll_interval_ms=0, voice_enabled=False))
    assert session.log.comparisons_seen == 100


def test_replay_uses_shorter_track_and_skips_missing_frames():
    from dccore.config import SessionConfig
    from dccore.replay import replay_tracks
    P, V, fps, meta = _track(make_pose(), 90)
    P[:30] = np.nan   # nobody in frame for the first second
    user = _track(make_pose(), 60)
    session = replay_tracks((P, V, fps, meta), user, config=SessionConfig(voice_enabled=False))
    assert session.log.comparisons_seen == 10


def test_mirrored_reference_matches_mirror_image():
    from dccore.config import SessionConfig
    from dccore.normalize import mirror_pose
    from dccore.replay import replay_tracks
    lean = make_pose({0: (0.56, 0.20), 11: (0.48, 0.30), 12: (0.64, 0.30)})
    mirrored = [{"x": lm.x + 1.0, "y": lm.y, "z": lm.z, "visibility": lm.visibility}
                for lm in mirror_pose(lean)]
    session = replay_tracks(_track(lean, 30), _track(mirrored, 30),
                            config=SessionConfig(sample_every=1, voice_enabled=False), mirror_ref=True)
    assert session.samples[0].overall == pytest.approx(100.0)


def test_voice_cues_reach_speaker():
    from dccore.config import SessionConfig
    from dccore.replay import replay_tracks
    heard = []
    replay_tracks(_track(make_pose(RIGHT_ARM_UP), 300), _track(make_pose(), 300),
                  config=SessionConfig(), speak=heard.append)
    # 10 s of a persistent mistake: once at 0 s, then every 8 s
    assert heard == ["Right arm is fully extended"] * 2


def test_cli_writes_reports(tmp_path, capsys):
    from dccore.posetrack_io import save_posetrack
    from dccore.replay import main
    ref = save_posetrack(str(tmp_path / "ref.npz"), *_track(make_pose(RIGHT_ARM_UP), 300)[:3])
    user = tmp_path / "user.json"
    user.write_text(json.dumps({"fps": 30, "frames": [make_pose()] * 300}), encoding="utf-8")
    out_dir = tmp_path / "out"
    samples_path = tmp_path / "samples.json"

    rc = main(["--ref", ref, "--user", str(user), "--out_dir", str(out_dir),
               "--no-narrative", "--no-voice", "--save_samples", str(samples_path)])
    assert rc == 0
    printed = capsys.readouterr().out
    assert "[save]" in printed and "[grade]" in printed
    with open(out_dir / "session_report.json", encoding="utf-8") as f:
        data = json.load(f)
    assert data["title"] == "user"
    assert data["nSamples"] == 33
    assert data["moments"]
    assert os.path.isfile(out_dir / "session_report.md")

    # re-analyse the recorded session without the tracks
    rc = main(["--session", str(samples_path), "--out_dir", str(tmp_path / "again"),
               "--no-narrative", "--title", "again"])
    assert rc == 0
    with open(tmp_path / "again" / "session_report.json", encoding="utf-8") as f:
        again = json.load(f)
    assert again["report"]["overallAvg"] == pytest.approx(data["report"]["overallAvg"])


def test_cli_errors(tmp_path):
    from dccore.replay import main
    assert main(["--ref", str(tmp_path / "a.npz"), "--user", str(tmp_path / "b.npz"),
                 "--out_dir", str(tmp_path)]) == 2
    with pytest.raises(SystemExit) as exc:
        main(["--ref", "a.npz", "--out_dir", str(tmp_path)])
    assert exc.value.code == 2
