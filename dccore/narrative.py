# narrative.py
# Post-session narrative feedback for the worst moments via an OpenAI-compatible
# chat endpoint. Scores, moments and statistics never depend on this module:
# every failure comes back as a NarrativeResult with a user-facing message.

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from dccore.config import NarrativeConfig
from dccore.posecodes import serialize_posecodes
from dccore.similarity import round_score
from dccore.worst_moments import Moment, worst_segments

log = logging.getLogger(__name__)


# =========================
# Status taxonomy
# =========================

OK = "ok"
RATE_LIMITED = "rate_limited"
PAYMENT_REQUIRED = "payment_required"
FAILED = "failed"
UNAVAILABLE = "unavailable"

STATUS_MESSAGES: Dict[str, str] = {
    OK: "",
    RATE_LIMITED: "Rate limit exceeded, please try again later.",
    PAYMENT_REQUIRED: "Payment required, please add credits.",
    FAILED: "AI coach feedback failed. Your scores and moments are still available.",
    UNAVAILABLE: "No narrative feedback available for this session.",
}


@dataclass
class NarrativeFeedback:
    observation: str
    tip: str


@dataclass
class NarrativeResult:
    status: str
    feedback: List[NarrativeFeedback] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == OK

    @classmethod
    def failure(cls, status: str, detail: str = "") -> "NarrativeResult":
        if detail:
            log.warning("narrative feedback %s: %s", status, detail)
        return cls(status=status, message=STATUS_MESSAGES[status])


# =========================
# Request payload
# =========================

SYSTEM_PROMPT = (
    "You are a professional dance coach giving feedback after a practice session. "
    "You are reviewing the student's weakest moments, where their pose differed most "
    "from the reference.\n\n"
    "For each moment, provide:\n"
    "1. A clear, encouraging coaching observation (1-2 sentences) describing what went "
    "wrong in dance terminology\n"
    "2. A specific, actionable tip to fix it (1 sentence)\n\n"
    "Use dance terminology naturally (e.g. port de bras, alignment, extension, turnout, "
    "spotting). Be specific about body parts and movements. Be encouraging but honest. "
    "Keep each moment's feedback to 3 sentences maximum. "
    "Return exactly one entry per moment, in the order given."
)

FEEDBACK_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "provide_coaching_feedback",
        "description": "Return coaching feedback for each worst moment",
        "parameters": {
            "type": "object",
            "properties": {
                "feedback": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "observation": {
                                "type": "string",
                                "description": "What went wrong in dance terminology (1-2 sentences)",
                            },
                            "tip": {"type": "string", "description": "Specific actionable fix (1 sentence)"},
                        },
                        "required": ["observation", "tip"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["feedback"],
            "additionalProperties": False,
        },
    },
}


def format_clock(seconds: float) -> str:
    """m:ss"""
    s = max(0.0, float(seconds))
    return f"{int(s // 60)}:{int(math.floor(s % 60)):02d}"


def moment_payload(moment: Moment) -> Dict[str, Any]:
    """{timeRange, avgScore, worstSegments, posecodeContext} for one moment."""
    worst = worst_segments(moment.samples)
    center = moment.center_sample
    return {
        "timeRange": f"{format_clock(moment.start_video_time)}–{format_clock(moment.end_video_time)}",
        "avgScore": moment.avg_score,
        "worstSegments": ", ".join(f"{seg.label} ({int(round_score(avg))}%)" for seg, avg in worst),
        "posecodeContext": serialize_posecodes(center.ref_pose, center.user_pose),
    }


def build_messages(payloads: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    blocks = []
    for i, m in enumerate(payloads, start=1):
        blocks.append(
            f"Moment {i} ({m['timeRange']}, average accuracy: {m['avgScore']}%):\n"
            f"Worst body parts: {m['worstSegments']}\n"
            f"{m['posecodeContext']}"
        )
    user = (
        f"Here are the {len(payloads)} worst moments from my dance practice session:\n\n"
        + "\n\n".join(blocks)
        + "\n\nPlease provide coaching feedback for each moment."
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


# =========================
# Response parsing
# =========================

def _feedback_items(raw: Any) -> List[NarrativeFeedback]:
    if isinstance(raw, dict):
        raw = raw.get("feedback")
    if not isinstance(raw, list):
        raise ValueError(f"expected a feedback list, got {type(raw).__name__}")
    out: List[NarrativeFeedback] = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValueError("feedback entries must be objects")
        out.append(NarrativeFeedback(
            observation=str(item.get("observation", "")).strip(),
            tip=str(item.get("tip", "")).strip(),
        ))
    return out


def parse_feedback(message: Any) -> List[NarrativeFeedback]:
    """Feedback from the forced tool call, else from JSON in the message content."""
    tool_calls = getattr(message, "tool_calls", None) or []
    for call in tool_calls:
        fn = getattr(call, "function", None)
        args = getattr(fn, "arguments", None)
        if args:
            return _feedback_items(json.loads(args))

    content = (getattr(message, "content", None) or "").strip()
    if content.startswith("```"):
        content = content.strip("`")
        content = content[content.find("\n") + 1:] if "\n" in content else ""
    if not content:
        raise ValueError("empty response")
    return _feedback_items(json.loads(content))


# =========================
# Client
# =========================

class NarrativeClient:
    """
    Wraps an OpenAI-style client (anything exposing chat.completions.create).
    Use NarrativeClient.from_config(cfg) for the real SDK client.
    """

    def __init__(self, client: Any, config: Optional[NarrativeConfig] = None):
        self.client = client
        self.config = config or NarrativeConfig()

    @classmethod
    def from_config(cls, config: NarrativeConfig) -> Optional["NarrativeClient"]:
        """None when narrative feedback is disabled or no API key is configured."""
        if not config.enabled or not config.api_key:
            return None
        from openai import OpenAI

        client = OpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout_s,
            max_retries=0,
        )
        return cls(client, config)

    def generate(self, moments: Sequence[Moment]) -> NarrativeResult:
        if not moments:
            return NarrativeResult.failure(UNAVAILABLE)
        payloads = [moment_payload(m) for m in moments]
        return self.generate_from_payloads(payloads)

    def generate_from_payloads(self, payloads: Sequence[Dict[str, Any]]) -> NarrativeResult:
        if not payloads:
            return NarrativeResult.failure(UNAVAILABLE)
        import openai  # error types

        cfg = self.config
        try:
            resp = self.client.chat.completions.create(
                model=cfg.model,
                messages=build_messages(payloads),
                tools=[FEEDBACK_TOOL],
                tool_choice={"type": "function", "function": {"name": "provide_coaching_feedback"}},
                temperature=cfg.temperature,
                max_tokens=cfg.max_tokens,
            )
        except openai.APIStatusError as e:
            if e.status_code == 429:
                return NarrativeResult.failure(RATE_LIMITED, str(e))
            if e.status_code == 402:
                return NarrativeResult.failure(PAYMENT_REQUIRED, str(e))
            return NarrativeResult.failure(FAILED, f"HTTP {e.status_code}: {e}")
        except openai.OpenAIError as e:
            return NarrativeResult.failure(FAILED, str(e))

        try:
            feedback = parse_feedback(resp.choices[0].message)
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            return NarrativeResult.failure(FAILED, f"unusable response: {e}")

        if not feedback:
            return NarrativeResult.failure(UNAVAILABLE, "empty feedback list")
        return NarrativeResult(status=OK, feedback=feedback[:len(payloads)])


__all__ = [
    "OK", "RATE_LIMITED", "PAYMENT_REQUIRED", "FAILED", "UNAVAILABLE", "STATUS_MESSAGES",
    "NarrativeFeedback", "NarrativeResult",
    "SYSTEM_PROMPT", "FEEDBACK_TOOL",
    "format_clock", "moment_payload", "build_messages", "parse_feedback",
    "NarrativeClient",
]
