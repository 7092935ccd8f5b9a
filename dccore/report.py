# dccore/report.py
#
# Post-session report: session statistics + worst moments + optional narrative,
# and JSON / Markdown writers for it.

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dccore.narrative import UNAVAILABLE, NarrativeClient, NarrativeFeedback, NarrativeResult, format_clock
from dccore.samples import SessionSample
from dccore.session_report import SessionReport, analyze_session
from dccore.similarity import round_score
from dccore.worst_moments import Moment, find_worst_moments, worst_segments

log = logging.getLogger(__name__)


@dataclass
class SessionSummary:
    report: SessionReport
    moments: List[Moment] = field(default_factory=list)
    narrative: NarrativeResult = field(default_factory=lambda: NarrativeResult.failure(UNAVAILABLE))
    n_samples: int = 0

    def feedback_for(self, index: int) -> Optional[NarrativeFeedback]:
        if self.narrative.ok and index < len(self.narrative.feedback):
            return self.narrative.feedback[index]
        return None

    def to_dict(self) -> Dict[str, Any]:
        moments = []
        for i, m in enumerate(self.moments):
            fb = self.feedback_for(i)
            moments.append({
                "startVideoTime": m.start_video_time,
                "endVideoTime": m.end_video_time,
                "avgScore": m.avg_score,
                "startIndex": m.start_index,
                "endIndex": m.end_index,
                "centerIndex": m.center_index,
                "worstSegments": [
                    {"segment": seg.value, "avg": round_score(avg, 1)} for seg, avg in worst_segments(m.samples)
                ],
                "feedback": None if fb is None else {"observation": fb.observation, "tip": fb.tip},
            })
        return {
            "nSamples": self.n_samples,
            "report": self.report.to_dict(),
            "moments": moments,
            "narrative": {"status": self.narrative.status, "message": self.narrative.message},
        }


def build_report(
    samples: Sequence[SessionSample],
    narrator: Optional[NarrativeClient] = None,
    moment_count: int = 3,
    window_seconds: float = 3.0,
) -> SessionSummary:
    """Local analysis always runs; the narrative is attempted only when moments exist."""
    report = analyze_session(samples)
    moments = find_worst_moments(samples, count=moment_count, window_seconds=window_seconds)
    log.info("report: %d samples, grade %s, %d moments", len(samples), report.overall_grade.letter, len(moments))

    if narrator is not None and moments:
        narrative = narrator.generate(moments)
    else:
        narrative = NarrativeResult.failure(UNAVAILABLE)

    return SessionSummary(report=report, moments=moments, narrative=narrative, n_samples=len(samples))


# --------------------------------------------------------------------------------------
# Writers
# --------------------------------------------------------------------------------------

def render_markdown(summary: SessionSummary, title: Optional[str] = None) -> str:
    r = summary.report
    md: List[str] = [f"# Session Report{': ' + title if title else ''}\n"]

    if not r.available:
        md.append("Not enough data for a session summary. Try a longer session.")
        return "\n".join(md)

    g = r.overall_grade
    md.append(f"**Grade:** {g.letter} — {g.label}  ")
    md.append(f"**Overall:** {r.overall_avg:.1f}%  ")
    md.append(f"**Samples:** {summary.n_samples}\n")

    md.append("## Tips")
    for t in r.tips:
        md.append(f"- {t.icon} {t.text}")

    if r.focus_areas:
        md.append("\n## Focus areas")
        for f in r.focus_areas:
            md.append(f"### {f.stats.label} ({f.stats.avg:.0f}%)")
            md.extend(f"- {line}" for line in f.feedback)
            md.append("- Exercises: " + "; ".join(f"{e['name']} ({e['desc']})" for e in f.exercises))

    if r.strengths:
        md.append("\n## Strengths")
        md.extend(f"- {s.stats.label} ({s.stats.avg:.0f}%): {s.feedback}" for s in r.strengths)

    md.append("\n## Timeline")
    for p in r.timeline:
        weakest = f", weakest {p.weakest_segment} ({p.weakest_score}%)" if p.weakest_segment else ""
        md.append(f"- {p.label}: {p.avg}%{weakest}")

    md.append("\n## Moments to review")
    if not summary.moments:
        md.append("Not enough pose data collected for an improvement review.")
    for i, m in enumerate(summary.moments):
        md.append(f"{i + 1}. {format_clock(m.start_video_time)}–{format_clock(m.end_video_time)} "
                  f"avg {m.avg_score:.1f}%")
        fb = summary.feedback_for(i)
        if fb is not None:
            md.append(f"   - {fb.observation}")
            md.append(f"   - Tip: {fb.tip}")
    if summary.moments and not summary.narrative.ok:
        md.append(f"\n_{summary.narrative.message}_")

    return "\n".join(md)


def write_reports(out_dir: str, summary: SessionSummary, title: Optional[str] = None) -> Tuple[str, str]:
    os.makedirs(out_dir, exist_ok=True)
    json_path = os.path.join(out_dir, "session_report.json")
    md_path = os.path.join(out_dir, "session_report.md")

    data = summary.to_dict()
    data["title"] = title
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    with open(md_path, "w", encoding="utf-8") as f:
        f.write(render_markdown(summary, title))
    return json_path, md_path


__all__ = ["SessionSummary", "build_report", "render_markdown", "write_reports"]
