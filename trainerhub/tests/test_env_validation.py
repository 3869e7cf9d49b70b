"""Tests for environment and config validation."""

import logging
from types import SimpleNamespace

import pytest

from trainerhub.core.config import Settings, validate_config
from trainerhub.core.validation import EnvValidationError, validate_env
from trainerhub.gateway.factory import build_gateway
from trainerhub.gateway.memory import InMemoryGateway
from trainerhub.gateway.rest import RestGateway
from trainerhub.identity.backends import InMemoryAuthBackend, build_auth_backend


@pytest.fixture(autouse=True)
def enforce_validation(monkeypatch):
    monkeypatch.delenv("SKIP_ENV_VALIDATION", raising=False)


def make_settings(**overrides):
    defaults = dict(
        ENV="development",
        BAAS_URL=None,
        BAAS_ANON_KEY=None,
        BAAS_JWT_SECRET=None,
        PREVIEW_CHARS=150,
        PASSWORD_MIN_LENGTH=6,
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def test_development_without_backend_passes():
    assert validate_env(settings_obj=make_settings())


def test_valid_production_config_passes():
    settings = make_settings(
        ENV="production",
        BAAS_URL="https://project.example.co",
        BAAS_ANON_KEY="anon",
        BAAS_JWT_SECRET="secret",
    )
    assert validate_env(settings_obj=settings)


def test_missing_secret_in_production_fails():
    settings = make_settings(ENV="production", BAAS_URL="https://project.example.co", BAAS_ANON_KEY="anon")
    with pytest.raises(EnvValidationError, match="BAAS_JWT_SECRET"):
        validate_env(settings_obj=settings)


def test_invalid_backend_url_fails():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(BAAS_URL="project.example.co"))


def test_non_positive_presentation_rules_fail():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(PREVIEW_CHARS=0))


def test_skip_env_validation_bypass(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
    assert validate_env(settings_obj=make_settings(ENV="production"))


def test_config_warns_or_raises_on_missing_keys(caplog):
    cfg = Settings(BAAS_URL=None, BAAS_ANON_KEY=None, BAAS_JWT_SECRET=None)
    with caplog.at_level(logging.WARNING, logger="trainerhub"):
        assert validate_config(strict=False, settings_obj=cfg)
    assert "BAAS_URL" in caplog.text

    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=cfg)


def test_cors_origins_split():
    cfg = Settings(CORS_ORIGINS="http://a.test, http://b.test,")
    assert cfg.cors_origins == ["http://a.test", "http://b.test"]


def test_problems_are_reported_together():
    settings = make_settings(ENV="production", BAAS_URL="not-a-url", PREVIEW_CHARS=-1)
    with pytest.raises(EnvValidationError) as excinfo:
        validate_env(settings_obj=settings)
    problems = excinfo.value.problems
    assert problems[0].startswith("BAAS_URL must be an http(s) URL")
    assert "BAAS_JWT_SECRET is required in production" in problems
    assert "PREVIEW_CHARS must be positive" in problems


def test_factories_fall_back_to_memory_stores():
    local = Settings(BAAS_URL=None)
    assert isinstance(build_gateway(local), InMemoryGateway)
    assert isinstance(build_auth_backend(local), InMemoryAuthBackend)

    hosted = Settings(BAAS_URL="https://project.example.co", BAAS_ANON_KEY="anon")
    assert hosted.uses_hosted_backend
    assert isinstance(build_gateway(hosted), RestGateway)
