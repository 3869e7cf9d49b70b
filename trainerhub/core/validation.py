"""
Startup checks on the environment.

Problems are collected and reported together so a bad deploy shows every
misconfigured key at once. Set SKIP_ENV_VALIDATION=1 to bypass (tests, local scripts).
"""

import os
from typing import List, Optional
from urllib.parse import urlparse

from trainerhub.core.config import settings

BAAS_KEYS = ("BAAS_URL", "BAAS_ANON_KEY", "BAAS_JWT_SECRET")
POSITIVE_INTS = ("PREVIEW_CHARS", "PASSWORD_MIN_LENGTH")


class EnvValidationError(RuntimeError):
    def __init__(self, problems: List[str]):
        super().__init__("; ".join(problems))
        self.problems = problems


def _http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def env_problems(cfg, mode: str) -> List[str]:
    problems: List[str] = []
    url = getattr(cfg, "BAAS_URL", None)
    if url and not _http_url(url):
        problems.append("BAAS_URL must be an http(s) URL, e.g. https://project.example.co")
    if url and not getattr(cfg, "BAAS_ANON_KEY", None):
        problems.append("BAAS_ANON_KEY is required when BAAS_URL is set")

    if mode == "production":
        problems.extend(f"{key} is required in production" for key in BAAS_KEYS if not getattr(cfg, key, None))

    for key in POSITIVE_INTS:
        if getattr(cfg, key, 1) <= 0:
            problems.append(f"{key} must be positive")
    if getattr(cfg, "COMMENT_PREVIEW_COUNT", 0) < 0:
        problems.append("COMMENT_PREVIEW_COUNT must not be negative")
    return problems


def validate_env(env: Optional[str] = None, settings_obj=None) -> bool:
    """Raise ``EnvValidationError`` listing every problem; ``env`` overrides ``settings.ENV``."""
    if os.getenv("SKIP_ENV_VALIDATION") == "1":
        return True

    cfg = settings_obj or settings
    mode = (env or getattr(cfg, "ENV", None) or "development").lower()
    problems = env_problems(cfg, mode)
    if problems:
        raise EnvValidationError(problems)
    return True
