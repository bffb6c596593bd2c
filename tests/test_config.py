import pytest
from pydantic import ValidationError

from codescore.config import DetectorSelection, ReviewConfig, Settings
from codescore.models import ReviewType


def test_defaults() -> None:
    config = ReviewConfig()

    assert config.timeout_ms == 10_000
    assert config.max_auto_fixes_per_line == 1
    assert config.enabled_detectors == DetectorSelection.ALL
    assert config.disabled_rules == frozenset()
    assert config.weights.accuracy == 0.30


def test_review_config_is_validated() -> None:
    with pytest.raises(ValidationError):
        ReviewConfig(timeout_ms=0)
    with pytest.raises(ValidationError):
        ReviewConfig(max_workers=0)


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("CODESCORE_TIMEOUT_MS", "2500")
    monkeypatch.setenv("CODESCORE_REVIEW_TYPE", "security_only")
    monkeypatch.setenv("CODESCORE_DISABLED_RULES", '["GEN-LONG-LINE", "GEN-TODO-MARKER"]')

    settings = Settings(_env_file=None)

    assert settings.timeout_ms == 2500
    assert settings.review_type == ReviewType.SECURITY_ONLY
    assert settings.review_config().disabled_rules == frozenset({"GEN-LONG-LINE", "GEN-TODO-MARKER"})


def test_settings_read_env_file(tmp_path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text("CODESCORE_MAX_WORKERS=2\nCODESCORE_SLACK_ENABLED=false\n", encoding="utf-8")

    settings = Settings(_env_file=env_file)

    assert settings.max_workers == 2
    assert settings.slack_enabled is False


def test_review_config_overrides_skip_none() -> None:
    settings = Settings(_env_file=None, timeout_ms=3000)

    config = settings.review_config(timeout_ms=None, max_workers=8)

    assert config.timeout_ms == 3000
    assert config.max_workers == 8
