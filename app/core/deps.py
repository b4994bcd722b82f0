import hmac
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from app.core.config import Settings, get_settings
from app.core.errors import http_401_unauthorized, http_503_service_unavailable
from app.core.database import get_db  # noqa: F401  re-exported for route dependencies

bearer_scheme = HTTPBearer(auto_error=False)

def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings)
) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>` on trigger routes"""
    if not settings.CRON_SECRET:
        raise http_503_service_unavailable("Manual triggers are disabled (CRON_SECRET not set)")
    if credentials is None or not hmac.compare_digest(credentials.credentials, settings.CRON_SECRET):
        raise http_401_unauthorized("Invalid cron secret")
