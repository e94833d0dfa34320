# backend/therasoul/api/dependencies/auth.py
"""
Actor identity dependencies.

The identity provider sits in front of this service and forwards the
authenticated actor in trusted headers; credentials are never verified here.
"""

import logging
from typing import Optional

from fastapi import Header

from ...core.enums import RoleName
from ...core.exceptions import UnauthorizedException
from ...principal import ActorPrincipal

logger = logging.getLogger(__name__)

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


def get_current_actor(
    x_actor_id: Optional[str] = Header(None, alias=ACTOR_ID_HEADER),
    x_actor_role: Optional[str] = Header(None, alias=ACTOR_ROLE_HEADER),
) -> ActorPrincipal:
    """Build the principal from the identity headers (401 when absent or malformed)."""
    actor_id = (x_actor_id or "").strip()
    role_raw = (x_actor_role or "").strip().lower()
    if not actor_id or not role_raw:
        raise UnauthorizedException("Missing actor identity", code="MISSING_IDENTITY")
    try:
        role = RoleName(role_raw)
    except ValueError:
        logger.warning("Rejected request with unknown role %r", role_raw)
        raise UnauthorizedException(
            "Unknown actor role", code="INVALID_ROLE", details={"role": role_raw}
        )
    return ActorPrincipal(actor_id=actor_id, role=role)

