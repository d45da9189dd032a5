"""Caller identity for the HTTP surface.

Authentication happens at the gateway, which forwards the verified user id
and role as headers. This module only turns those headers into an Actor.
"""

from __future__ import annotations

from fastapi import Header, HTTPException

from roombook.domain.models import Actor

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"
ADMIN_ROLE = "ADMIN"


def _actor(user_id: str | None, role: str | None) -> Actor | None:
    if not user_id or not user_id.strip():
        return None
    return Actor(
        user_id=user_id.strip(),
        is_admin=(role or "").strip().upper() == ADMIN_ROLE,
    )


def get_optional_caller(
    user_id: str | None = Header(None, alias=USER_ID_HEADER),
    role: str | None = Header(None, alias=USER_ROLE_HEADER),
) -> Actor | None:
    """Actor for the request, or None for anonymous viewers."""
    return _actor(user_id, role)


def get_caller(
    user_id: str | None = Header(None, alias=USER_ID_HEADER),
    role: str | None = Header(None, alias=USER_ROLE_HEADER),
) -> Actor:
    """Actor for the request; 401 when the gateway sent no identity."""
    actor = _actor(user_id, role)
    if actor is None:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    return actor
