import logging
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Without these the app falls back to the in-memory gateway and header-based identity
BAAS_SETTINGS = ("BAAS_URL", "BAAS_ANON_KEY", "BAAS_JWT_SECRET")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Hosted backend: REST tables under /rest/v1, accounts under /auth/v1
    BAAS_URL: Optional[str] = None
    BAAS_ANON_KEY: Optional[str] = None
    BAAS_JWT_SECRET: Optional[str] = None
    BAAS_TIMEOUT_SECONDS: float = 10.0

    PREVIEW_CHARS: int = 150
    PASSWORD_MIN_LENGTH: int = 6
    COMMENT_PREVIEW_COUNT: int = 2

    CORS_ORIGINS: str = "http://localhost:5173"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def uses_hosted_backend(self) -> bool:
        return bool(self.BAAS_URL)


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Report unset hosted-backend settings by name, never by value.

    Strict mode (argument, else ``CONFIG_STRICT``) raises ``RuntimeError``; otherwise
    the gap is logged as a warning and the app runs against the in-memory stores.
    """
    cfg = settings_obj or settings
    unset = [name for name in BAAS_SETTINGS if not getattr(cfg, name, None)]
    if not unset:
        return True

    message = "Hosted backend not fully configured, unset: " + ", ".join(unset)
    if strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False):
        raise RuntimeError(message)
    (logger or logging.getLogger("trainerhub")).warning(message)
    return True
