# dccore/replay.py
"""
Offline practice session: replay a recorded reference track and a recorded
user track through PracticeSession at the session poll cadence, then write
the post-session report (session_report.json / session_report.md).

Usage:
  python -m dccore.replay --ref ref.posetrack.npz --user me.json --out_dir out/
  python -m dccore.replay --session out/session_samples.json --out_dir out/

A recorded session log (see --save_samples) can be re-analysed without the
tracks. Narrative feedback runs only when an API key is configured
(DCCORE_NARRATIVE_API_KEY or OPENAI_API_KEY) and --no-narrative is not set.
"""

from __future__ import annotations

import argparse
import logging
import math
import os
import sys
from typing import List, Optional

from dccore.config import CoachConfig, SessionConfig
from dccore.narrative import NarrativeClient, format_clock
from dccore.normalize import mirror_pose
from dccore.posetrack_io import Track, frame_pose, load_posetrack, load_session_samples, save_session_samples
from dccore.report import SessionSummary, build_report, write_reports
from dccore.session import LatestPose, PracticeSession
from dccore.voice_coach import Speaker, VoiceCoach

log = logging.getLogger(__name__)


class ReplayClock:
    """Manually advanced millisecond clock shared by the session and its voice coach."""

    def __init__(self, start_ms: float = 0.0):
        self.now_ms = float(start_ms)

    def __call__(self) -> float:
        return self.now_ms


def _frame_at(track: Track, seconds: float):
    P, V, fps, _ = track
    t = min(int(math.floor(seconds * fps + 1e-9)), P.shape[0] - 1)
    return frame_pose(P, V, t)


def track_duration(track: Track) -> float:
    P, _, fps, _ = track
    return P.shape[0] / fps


def replay_tracks(
    ref_track: Track,
    user_track: Track,
    config: Optional[SessionConfig] = None,
    mirror_ref: bool = False,
    speak: Optional[Speaker] = None,
) -> PracticeSession:
    """
    Drive a PracticeSession over the overlap of both tracks. Every poll the
    slots receive the frame at the current replay time (the reference slot
    also receives its playback position), then one tick runs.
    """
    cfg = config or SessionConfig()
    clock = ReplayClock()
    ref_slot, user_slot = LatestPose(), LatestPose()
    voice = VoiceCoach(enabled=cfg.voice_enabled, speak=speak, clock=clock)
    session = PracticeSession(ref_slot, user_slot, config=cfg, voice=voice, clock=clock)

    duration = min(track_duration(ref_track), track_duration(user_track))
    poll_ms = max(1, cfg.poll_interval_ms)
    n_ticks = int(math.floor(duration * 1000.0 / poll_ms))
    log.info("replaying %.2f s (%d ticks at %d ms)", duration, n_ticks, poll_ms)

    session.start()
    for i in range(n_ticks):
        clock.now_ms = i * poll_ms
        seconds = clock.now_ms / 1000.0
        ref = _frame_at(ref_track, seconds)
        if ref is not None and mirror_ref:
            ref = mirror_pose(ref)
        ref_slot.update(ref, position=seconds)
        user_slot.update(_frame_at(user_track, seconds))
        session.tick()
    session.stop()
    return session


def _warn(msg: str) -> None:
    print(f"[replay] {msg}", file=sys.stderr)


def _build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Replay recorded reference/user pose tracks and write a session report."
    )
    p.add_argument("--ref", type=str, default=None, help="Reference pose track (.npz or .json).")
    p.add_argument("--user", type=str, default=None, help="User pose track (.npz or .json).")
    p.add_argument("--session", type=str, default=None,
                   help="Recorded session log (JSON) to analyse instead of replaying tracks.")
    p.add_argument("--out_dir", type=str, required=True, help="Where to write the report files.")
    p.add_argument("--title", type=str, default=None)
    p.add_argument("--poll_ms", type=int, default=None, help="Comparison interval (default from config).")
    p.add_argument("--count", type=int, default=None, help="Number of worst moments.")
    p.add_argument("--window", type=float, default=None, help="Worst-moment window in seconds.")
    p.add_argument("--mirror_ref", action="store_true", help="Mirror the reference (follow-along mode).")
    p.add_argument("--no-voice", action="store_true", help="Do not print voice cues.")
    p.add_argument("--no-narrative", action="store_true", help="Skip the narrative feedback call.")
    p.add_argument("--save_samples", type=str, default=None,
                   help="Also write the session sample log to this JSON path.")
    p.add_argument("--verbose", action="store_true")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    ap = _build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.session is None and (args.ref is None or args.user is None):
        ap.error("either --session or both --ref and --user are required")

    cfg = CoachConfig.from_env()
    scfg = cfg.session
    if args.poll_ms is not None:
        scfg.poll_interval_ms = max(1, args.poll_ms)
    if args.count is not None:
        scfg.moment_count = max(1, args.count)
    if args.window is not None:
        scfg.moment_window_s = args.window
    if args.no_voice:
        scfg.voice_enabled = False
    if args.no_narrative:
        cfg.narrative.enabled = False

    try:
        if args.session is not None:
            samples = load_session_samples(args.session)
        else:
            ref_track = load_posetrack(args.ref)
            user_track = load_posetrack(args.user)

            def speak(text: str) -> None:
                print(f"[voice] {text}")

            session = replay_tracks(ref_track, user_track, config=scfg,
                                    mirror_ref=args.mirror_ref, speak=speak)
            samples = session.samples
    except (OSError, KeyError, ValueError) as e:
        _warn(str(e))
        return 2

    if args.save_samples:
        save_session_samples(args.save_samples, samples)
        print(f"[save] {args.save_samples}")

    narrator = NarrativeClient.from_config(cfg.narrative)
    summary: SessionSummary = build_report(
        samples,
        narrator=narrator,
        moment_count=scfg.moment_count,
        window_seconds=scfg.moment_window_s,
    )

    report = summary.report
    if report.available:
        print(f"[grade] {report.overall_grade.letter} ({report.overall_avg:.1f}%) from {len(samples)} samples")
    else:
        print(f"[grade] {report.overall_grade.letter}: {report.overall_grade.label}")
    for m in summary.moments:
        print(f"[moment] {format_clock(m.start_video_time)}-{format_clock(m.end_video_time)} "
              f"avg {m.avg_score:.1f}%")

    json_path, md_path = write_reports(args.out_dir, summary, title=args.title or _default_title(args))
    print(f"[save] {json_path}")
    print(f"[save] {md_path}")
    return 0


def _default_title(args: argparse.Namespace) -> str:
    src = args.session or args.user
    return os.path.basename(src).split(".")[0]


if __name__ == "__main__":
    raise SystemExit(main())
