"""
Shared-secret gate for admin operations.

The secret may arrive in several places; the first one present wins, in this
order: ``X-Admin-Token`` header, ``Authorization: Bearer <token>``,
``admin_token`` query parameter, ``admin_token`` cookie.
"""

from typing import Mapping, Optional

from fastapi import Depends, Request

from .config import Settings, get_settings
from .errors import NotConfigured, Unauthorized

ADMIN_HEADER = "x-admin-token"
ADMIN_PARAM = "admin_token"


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credentials = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


def extract_admin_token(
    headers: Mapping[str, str],
    query_params: Mapping[str, str],
    cookies: Mapping[str, str],
) -> Optional[str]:
    candidates = (
        headers.get(ADMIN_HEADER),
        _bearer_token(headers.get("authorization")),
        query_params.get(ADMIN_PARAM),
        cookies.get(ADMIN_PARAM),
    )
    for candidate in candidates:
        if candidate:
            return candidate
    return None


def authorize(token: Optional[str], secret: Optional[str]) -> None:
    """Raise unless ``token`` matches the configured secret.

    Plain equality, not constant-time.
    """
    if not secret:
        raise NotConfigured("Admin token is not configured on this server")
    if not token or token != secret:
        raise Unauthorized("Invalid or missing admin token")


def require_admin(request: Request, settings: Settings = Depends(get_settings)) -> None:
    token = extract_admin_token(request.headers, request.query_params, request.cookies)
    authorize(token, settings.admin_token)
