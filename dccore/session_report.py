# session_report.py
# Session-level statistics, letter grade, timeline and prioritized tips.
# Thresholds come from dccore.coaching_thresholds; text tables from dccore.segments.

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from dccore.coaching_thresholds import (
    FOCUS_AREA_BELOW,
    MAX_TIPS,
    MIN_SESSION_SAMPLES,
    MULTI_FOCUS_TIP,
    NO_GRADE,
    NO_SCORE_COLOR,
    STRENGTH_EXCELLENT,
    STRUGGLE_BELOW,
    STRUGGLE_MIN_LEN,
    TIMELINE_CHUNKS,
    TREND_FEEDBACK,
    TREND_TIP,
    grade_for,
)
from dccore.segments import SPECIFIC_FEEDBACK, BodySegment, exercises_for
from dccore.similarity import round_score

# =========================
# Result types
# =========================

@dataclass
class Grade:
    letter: str
    label: str
    color: str


@dataclass
class SegmentStatistics:
    segment: BodySegment
    avg: float
    min: float
    max: float
    trend: float                      # second-half mean minus first-half mean
    consistency: float                # 100 - 2*std, deliberately unclamped
    struggles: List[Tuple[int, int]]  # inclusive index ranges into the segment's scores

    @property
    def label(self) -> str:
        return self.segment.label


@dataclass
class FocusArea:
    stats: SegmentStatistics
    feedback: List[str]
    exercises: List[Dict[str, str]]


@dataclass
class Strength:
    stats: SegmentStatistics
    feedback: str


@dataclass
class TimelinePhase:
    label: str
    avg: int
    weakest_segment: Optional[str]
    weakest_score: Optional[int]


@dataclass
class Tip:
    icon: str
    text: str


@dataclass
class SessionReport:
    overall_grade: Grade
    overall_avg: Optional[float] = None
    focus_areas: List[FocusArea] = field(default_factory=list)
    strengths: List[Strength] = field(default_factory=list)
    timeline: List[TimelinePhase] = field(default_factory=list)
    tips: List[Tip] = field(default_factory=list)
    segment_stats: Dict[BodySegment, SegmentStatistics] = field(default_factory=dict)

    @property
    def available(self) -> bool:
        return self.overall_grade.letter != NO_GRADE

    @classmethod
    def not_available(cls) -> "SessionReport":
        return cls(overall_grade=Grade(NO_GRADE, "Not enough data", NO_SCORE_COLOR))

    def to_dict(self) -> Dict[str, Any]:
        def stats(s: SegmentStatistics) -> Dict[str, Any]:
            d = asdict(s)
            d["segment"] = s.segment.value
            d["label"] = s.label
            d["struggles"] = [{"start": a, "end": b} for a, b in s.struggles]
            return d

        return {
            "overallGrade": asdict(self.overall_grade),
            "overallAvg": self.overall_avg,
            "focusAreas": [
                {**stats(f.stats), "feedback": f.feedback, "exercises": f.exercises}
                for f in self.focus_areas
            ],
            "strengths": [{**stats(s.stats), "feedback": s.feedback} for s in self.strengths],
            "timeline": [asdict(p) for p in self.timeline],
            "tips": [asdict(t) for t in self.tips],
            "segmentStats": {seg.value: stats(s) for seg, s in self.segment_stats.items()},
        }


# =========================
# Statistics helpers
# =========================

def find_struggles(
    scores: Sequence[float],
    threshold: float = STRUGGLE_BELOW,
    min_length: int = STRUGGLE_MIN_LEN,
) -> List[Tuple[int, int]]:
    """Maximal runs of scores < threshold lasting >= min_length, as inclusive (start, end)."""
    runs: List[Tuple[int, int]] = []
    start: Optional[int] = None
    for i, s in enumerate(scores):
        if s < threshold:
            if start is None:
                start = i
        else:
            if start is not None and i - start >= min_length:
                runs.append((start, i - 1))
            start = None
    if start is not None and len(scores) - start >= min_length:
        runs.append((start, len(scores) - 1))
    return runs


def half_trend(scores: Sequence[float]) -> float:
    """mean(second half) - mean(first half), split at floor(n/2); 0 with fewer than 2 scores."""
    half = len(scores) // 2
    if half == 0:
        return 0.0
    return float(np.mean(scores[half:]) - np.mean(scores[:half]))


def segment_statistics(session: Sequence[Any]) -> Dict[BodySegment, SegmentStatistics]:
    out: Dict[BodySegment, SegmentStatistics] = {}
    for seg in BodySegment:
        scores = [s.segments.get(seg) for s in session]
        scores = [float(v) for v in scores if v is not None]
        if not scores:
            continue
        arr = np.asarray(scores)
        out[seg] = SegmentStatistics(
            segment=seg,
            avg=float(arr.mean()),
            min=float(arr.min()),
            max=float(arr.max()),
            trend=half_trend(scores),
            consistency=float(100.0 - 2.0 * arr.std()),
            struggles=find_struggles(scores),
        )
    return out


def grade(score: float) -> Grade:
    letter, label, color = grade_for(score)
    return Grade(letter, label, color)


# =========================
# Text generation
# =========================

def segment_feedback(stats: SegmentStatistics) -> List[str]:
    label = stats.label.lower()
    lines: List[str] = []
    if stats.avg < 40:
        lines.append(f"Your {label} positioning was significantly different from the reference.")
    elif stats.avg < 55:
        lines.append(f"Your {label} needs considerable work.")
    else:
        lines.append(f"Your {label} was close but not consistently matching.")

    if stats.struggles:
        lines.append(f"There were {len(stats.struggles)} periods where your {label} dropped below 50%.")
    if stats.trend > TREND_FEEDBACK:
        lines.append(f"Good news: your {label} improved (+{int(round_score(stats.trend))}% in second half).")
    elif stats.trend < -TREND_FEEDBACK:
        lines.append(f"Your {label} accuracy dropped towards the end.")

    lines.append(SPECIFIC_FEEDBACK[stats.segment])
    return lines


def strength_feedback(stats: SegmentStatistics) -> str:
    label = stats.label.lower()
    if stats.avg >= STRENGTH_EXCELLENT:
        return f"Your {label} positioning is excellent!"
    return f"Your {label} is good overall — minor adjustments would make it perfect."


def analyze_timeline(session: Sequence[Any], chunks: int = TIMELINE_CHUNKS) -> List[TimelinePhase]:
    """
    Mean score, elapsed label and weakest segment for each of `chunks`
    chronological chunks. Chunk sizes differ by at most one and never grow
    towards the end; sessions shorter than `chunks` get one chunk per sample.
    """
    if not session:
        return []
    t0 = session[0].timestamp
    phases: List[TimelinePhase] = []

    for idx in np.array_split(np.arange(len(session)), chunks):
        if idx.size == 0:
            continue
        chunk = session[int(idx[0]):int(idx[-1]) + 1]
        avg = float(np.mean([d.overall for d in chunk]))
        start_s = int(round_score((chunk[0].timestamp - t0) / 1000.0))
        end_s = int(round_score((chunk[-1].timestamp - t0) / 1000.0))

        per_seg: Dict[BodySegment, List[float]] = {}
        for d in chunk:
            for seg, v in d.segments.items():
                if v is not None:
                    per_seg.setdefault(seg, []).append(v)

        weakest, weakest_avg = None, 100.0
        for seg, vals in per_seg.items():
            a = float(np.mean(vals))
            if a < weakest_avg:
                weakest, weakest_avg = seg, a

        phases.append(TimelinePhase(
            label=f"{start_s}s–{end_s}s",
            avg=int(round_score(avg)),
            weakest_segment=weakest.label if weakest else None,
            weakest_score=int(round_score(weakest_avg)) if weakest else None,
        ))
    return phases


def generate_top_tips(
    focus_areas: Sequence[FocusArea],
    segment_stats: Dict[BodySegment, SegmentStatistics],
) -> List[Tip]:
    if not focus_areas:
        return [Tip("🌟", "Amazing work! All body parts are matching well. "
                          "Try increasing the speed or a harder routine.")]

    tips: List[Tip] = []
    if len(focus_areas) >= MULTI_FOCUS_TIP:
        tips.append(Tip("🎯", "Multiple areas need work. Focus on ONE body part at a time at half speed."))

    worst = focus_areas[0].stats
    tips.append(Tip("⚡", f"Priority fix: your {worst.label.lower()} ({int(round_score(worst.avg))}%). "
                         "Slow to 0.5× and practice just this area."))

    improving = [s.label for s in segment_stats.values() if s.trend > TREND_TIP]
    if improving:
        tips.append(Tip("📈", f"Your {' and '.join(improving)} improved during the session!"))

    declining = [s.label for s in segment_stats.values() if s.trend < -TREND_TIP]
    if declining:
        tips.append(Tip("💤", f"Your {' and '.join(declining)} got worse towards the end — take a break."))

    tips.append(Tip("💡", "Pro tip: Use mirror mode if the reference dancer faces you. "
                         "Use speed controls to slow down."))
    return tips[:MAX_TIPS]


# =========================
# Public API
# =========================

def analyze_session(session: Sequence[Any]) -> SessionReport:
    """
    Aggregate a session's samples (anything with .overall, .segments, .timestamp)
    into a SessionReport. Fewer than 3 samples -> SessionReport.not_available().
    """
    if not session or len(session) < MIN_SESSION_SAMPLES:
        return SessionReport.not_available()

    stats = segment_statistics(session)
    ranked = sorted(stats.values(), key=lambda s: s.avg)

    focus_areas = [
        FocusArea(stats=s, feedback=segment_feedback(s), exercises=exercises_for(s.segment))
        for s in ranked if s.avg < FOCUS_AREA_BELOW
    ]
    strengths = [
        Strength(stats=s, feedback=strength_feedback(s))
        for s in reversed(ranked) if s.avg >= FOCUS_AREA_BELOW
    ]

    overall_avg = float(np.mean([d.overall for d in session]))
    return SessionReport(
        overall_grade=grade(overall_avg),
        overall_avg=overall_avg,
        focus_areas=focus_areas,
        strengths=strengths,
        timeline=analyze_timeline(session),
        tips=generate_top_tips(focus_areas, stats),
        segment_stats=stats,
    )


__all__ = [
    "Grade", "SegmentStatistics", "FocusArea", "Strength", "TimelinePhase", "Tip", "SessionReport",
    "find_struggles", "half_trend", "segment_statistics", "grade",
    "segment_feedback", "strength_feedback", "analyze_timeline", "generate_top_tips",
    "analyze_session",
]
