import os

import pytest

import env_validation
from env_validation import get_env_int, validate_environment

_MANAGED = (
    "DB_PATH",
    "PROFILE_STORAGE_KEY",
    "ANALYSIS_PROVIDER",
    "ANALYSIS_URL",
    "MODEL_ID",
    "ANALYSIS_TIMEOUT",
    "ANALYSIS_MAX_TOKENS",
    "ANALYSIS_CACHE_SIZE",
    "ROADMAP_TIMEFRAME_WEEKS",
)


@pytest.fixture
def clean_env(monkeypatch):
    for var in _MANAGED:
        monkeypatch.delenv(var, raising=False)
    yield monkeypatch
    # defaults written by validate_environment go through os.environ directly
    for var in _MANAGED:
        os.environ.pop(var, None)


def test_defaults_are_applied(clean_env):
    validate_environment()
    assert os.environ["DB_PATH"] == "data.db"
    assert os.environ["ANALYSIS_PROVIDER"] == "heuristic"
    assert os.environ["PROFILE_STORAGE_KEY"] == "GamifiedUserProfile"
    assert os.environ["ROADMAP_TIMEFRAME_WEEKS"] == "4"


def test_invalid_url_rejected(clean_env):
    clean_env.setenv("ANALYSIS_URL", "ftp://example.org")
    with pytest.raises(env_validation.EnvironmentError, match="Invalid URL format"):
        validate_environment()


def test_unknown_provider_rejected(clean_env):
    clean_env.setenv("ANALYSIS_PROVIDER", "oracle")
    with pytest.raises(env_validation.EnvironmentError, match="ANALYSIS_PROVIDER"):
        validate_environment()


@pytest.mark.parametrize("value", ["zero", "0", "-3"])
def test_non_positive_integers_rejected(clean_env, value):
    clean_env.setenv("ANALYSIS_TIMEOUT", value)
    with pytest.raises(env_validation.EnvironmentError, match="ANALYSIS_TIMEOUT"):
        validate_environment()


def test_get_env_int_falls_back_on_bad_values(monkeypatch):
    monkeypatch.setenv("WC_INT", "12")
    monkeypatch.setenv("WC_BAD_INT", "twelve")
    monkeypatch.setenv("WC_BLANK", "  ")
    monkeypatch.delenv("WC_MISSING", raising=False)

    assert get_env_int("WC_INT", 1) == 12
    assert get_env_int("WC_BAD_INT", 7) == 7
    assert get_env_int("WC_BLANK", 3) == 3
    assert get_env_int("WC_MISSING", 5) == 5
