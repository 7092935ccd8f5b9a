# dccore/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

_FALSE = {"0", "false", "off", "no", ""}


@dataclass
class SessionConfig:
    """Live comparison loop."""
    poll_interval_ms: int = 100      # ~10 Hz
    sample_every: int = 3            # keep every n-th comparison in the session log
    voice_enabled: bool = True
    posecode_cues: bool = True       # feed posecode-based cues to the voice coach
    min_summary_samples: int = 6     # a summary needs more than 5 samples
    moment_count: int = 3
    moment_window_s: float = 3.0


@dataclass
class NarrativeConfig:
    """OpenAI-compatible chat endpoint used for post-session narrative feedback."""
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None   # None = SDK default
    api_key: Optional[str] = None
    temperature: float = 0.6
    max_tokens: int = 600
    timeout_s: float = 30.0
    enabled: bool = True


@dataclass
class CoachConfig:
    session: SessionConfig = field(default_factory=SessionConfig)
    narrative: NarrativeConfig = field(default_factory=NarrativeConfig)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "CoachConfig":
        """
        Defaults overridden by:
          DCCORE_VOICE, DCCORE_POLL_MS, DCCORE_SAMPLE_EVERY,
          DCCORE_NARRATIVE_MODEL, DCCORE_NARRATIVE_BASE_URL,
          DCCORE_NARRATIVE_API_KEY (falls back to OPENAI_API_KEY), DCCORE_NARRATIVE
        """
        env = os.environ if env is None else env
        cfg = cls()
        s, n = cfg.session, cfg.narrative

        if "DCCORE_VOICE" in env:
            s.voice_enabled = env["DCCORE_VOICE"].strip().lower() not in _FALSE
        if env.get("DCCORE_POLL_MS"):
            s.poll_interval_ms = max(1, int(env["DCCORE_POLL_MS"]))
        if env.get("DCCORE_SAMPLE_EVERY"):
            s.sample_every = max(1, int(env["DCCORE_SAMPLE_EVERY"]))

        n.model = env.get("DCCORE_NARRATIVE_MODEL") or n.model
        n.base_url = env.get("DCCORE_NARRATIVE_BASE_URL") or n.base_url
        n.api_key = env.get("DCCORE_NARRATIVE_API_KEY") or env.get("OPENAI_API_KEY") or n.api_key
        if "DCCORE_NARRATIVE" in env:
            n.enabled = env["DCCORE_NARRATIVE"].strip().lower() not in _FALSE
        return cfg


__all__ = ["SessionConfig", "NarrativeConfig", "CoachConfig"]
