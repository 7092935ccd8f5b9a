# tests/test_config.py

def test_defaults():
    from dccore.config import CoachConfig
    cfg = CoachConfig()
    assert cfg.session.poll_interval_ms == 100
    assert cfg.session.sample_every == 3
    assert cfg.session.voice_enabled
    assert cfg.narrative.api_key is None


def test_from_env_overrides():
    from dccore.config import CoachConfig
    cfg = CoachConfig.from_env({
        "DCCORE_VOICE": "off",
        "DCCORE_POLL_MS": "50",
        "DCCORE_SAMPLE_EVERY": "2",
        "DCCORE_NARRATIVE_MODEL": "local-model",
        "DCCORE_NARRATIVE_BASE_URL": "http://localhost:8000/v1",
        "OPENAI_API_KEY": "sk-fallback",
    })
    assert not cfg.session.voice_enabled
    assert cfg.session.poll_interval_ms == 50
    assert cfg.session.sample_every == 2
    assert cfg.narrative.model == "local-model"
    assert cfg.narrative.base_url == "http://localhost:8000/v1"
    assert cfg.narrative.api_key == "sk-fallback"
    assert cfg.narrative.enabled


def test_specific_key_wins_and_narrative_can_be_disabled():
    from dccore.config import CoachConfig
    cfg = CoachConfig.from_env({
        "DCCORE_NARRATIVE_API_KEY": "sk-specific",
        "OPENAI_API_KEY": "sk-fallback",
        "DCCORE_NARRATIVE": "0",
    })
    assert cfg.narrative.api_key == "sk-specific"
    assert not cfg.narrative.enabled


def test_empty_env_keeps_defaults():
    from dccore.config import CoachConfig
    assert CoachConfig.from_env({}) == CoachConfig()


def test_zero_intervals_from_env_are_clamped():
    from dccore.config import CoachConfig
    cfg = CoachConfig.from_env({"DCCORE_POLL_MS": "0", "DCCORE_SAMPLE_EVERY": "-3"})
    assert cfg.session.poll_interval_ms == 1
    assert cfg.session.sample_every == 1
