# tests/test_report.py
#
# Tests for dccore/report.py: summary assembly and the JSON / Markdown writers.

import json
import os
from types import SimpleNamespace

import httpx
import openai

from conftest import make_session

DIP = [90, 88, 91, 89, 90, 40, 38, 42, 90, 92]


class FakeNarrator:
    """Stands in for NarrativeClient.generate."""

    def __init__(self, result):
        self.result = result
        self.seen = None

    def generate(self, moments):
        self.seen = list(moments)
        return self.result


def test_build_report_without_narrator():
    from dccore.report import build_report
    s = build_report(make_session(DIP))
    assert s.n_samples == 10
    assert s.report.available
    assert [(m.start_index, m.end_index) for m in s.moments] == [(5, 7)]
    assert s.narrative.status == "unavailable"
    assert s.feedback_for(0) is None


def test_build_report_attaches_feedback():
    from dccore.narrative import OK, NarrativeFeedback, NarrativeResult
    from dccore.report import build_report
    fb = NarrativeFeedback("Arms dropped out of second position.", "Hold the arms from the back.")
    narrator = FakeNarrator(NarrativeResult(status=OK, feedback=[fb]))
    s = build_report(make_session(DIP), narrator=narrator)
    assert len(narrator.seen) == 1
    assert s.feedback_for(0) == fb
    d = s.to_dict()
    assert d["moments"][0]["feedback"] == {"observation": fb.observation, "tip": fb.tip}
    assert d["moments"][0]["worstSegments"][0] == {"segment": "leftArm", "avg": 40.0}
    assert d["narrative"]["status"] == "ok"


def test_narrator_not_called_without_moments():
    from dccore.narrative import OK, NarrativeResult
    from dccore.report import build_report
    narrator = FakeNarrator(NarrativeResult(status=OK))
    s = build_report(make_session([80, 80, 80]), narrator=narrator)
    assert narrator.seen is None
    assert s.moments == []
    assert s.report.available


def test_markdown_sections():
    from dccore.narrative import OK, NarrativeFeedback, NarrativeResult
    from dccore.report import build_report, render_markdown
    narrator = FakeNarrator(NarrativeResult(status=OK, feedback=[NarrativeFeedback("obs", "fix it")]))
    md = render_markdown(build_report(make_session(DIP), narrator=narrator), title="demo")
    assert md.startswith("# Session Report: demo")
    assert "**Grade:** B" in md
    assert "## Tips" in md and "## Timeline" in md
    assert "1. 0:05–0:07 avg 40.0%" in md
    assert "   - Tip: fix it" in md


def test_markdown_shows_narrative_failure():
    from dccore.narrative import NarrativeClient
    from dccore.report import build_report, render_markdown
    req = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    err = openai.RateLimitError("slow", response=httpx.Response(429, request=req), body=None)

    def create(**kwargs):
        raise err
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    md = render_markdown(build_report(make_session(DIP), narrator=NarrativeClient(client)))
    assert "_Rate limit exceeded, please try again later._" in md


def test_markdown_not_enough_data():
    from dccore.report import build_report, render_markdown
    md = render_markdown(build_report(make_session([70, 70])))
    assert "Not enough data" in md


def test_write_reports(tmp_path):
    from dccore.report import build_report, write_reports
    out = tmp_path / "out"
    json_path, md_path = write_reports(str(out), build_report(make_session(DIP)), title="run 1")
    assert os.path.isfile(json_path) and os.path.isfile(md_path)
    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["title"] == "run 1"
    assert data["nSamples"] == 10
    assert data["report"]["overallGrade"]["letter"] == "B"
    assert data["moments"][0]["startVideoTime"] == 5.0
