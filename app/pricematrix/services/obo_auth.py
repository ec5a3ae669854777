"""
On-Behalf-Of (OBO) authentication helper.

Extracts user identity from HTTP headers injected by the Databricks Apps
reverse proxy.  In production, ``x-forwarded-email`` and ``x-forwarded-user``
are set automatically by the SSO layer.  For local development these headers
will be absent and an anonymous, non-admin identity is returned.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from pricematrix.utils.config import ADMIN_USERS


def get_user_identity(request: Request) -> dict[str, Any]:
    """Extract user identity from the forwarded request headers.

    Returns
    -------
    dict
        Keys: ``user_id``, ``user_email``, ``is_admin``.
    """
    headers = dict(request.headers)
    user_email: str = headers.get("x-forwarded-email", "anonymous@suspensionprice.my")
    user_id: str = headers.get("x-forwarded-user", "anonymous")
    is_admin: bool = user_email.lower() in ADMIN_USERS

    return {
        "user_id": user_id,
        "user_email": user_email,
        "is_admin": is_admin,
    }


def require_admin(request: Request) -> dict[str, Any]:
    """FastAPI dependency that rejects callers outside ``ADMIN_USERS``."""
    identity = get_user_identity(request)
    if not identity["is_admin"]:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity
