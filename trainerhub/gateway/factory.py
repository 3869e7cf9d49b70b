import logging
from typing import Optional

from trainerhub.core.config import Settings, settings
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.memory import InMemoryGateway
from trainerhub.gateway.rest import RestGateway

logger = logging.getLogger("trainerhub")


def build_gateway(settings_obj: Optional[Settings] = None) -> DataGateway:
    """REST gateway when the hosted backend is configured, else the in-memory store."""
    cfg = settings_obj or settings
    if cfg.uses_hosted_backend:
        return RestGateway(cfg.BAAS_URL, cfg.BAAS_ANON_KEY or "", timeout=cfg.BAAS_TIMEOUT_SECONDS)
    logger.warning("BAAS_URL not set; using in-memory gateway (data is lost on restart)")
    return InMemoryGateway()
