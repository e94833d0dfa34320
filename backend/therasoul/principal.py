"""Principal abstraction for the actor making a request."""

from __future__ import annotations

from dataclasses import dataclass

from .core.enums import RoleName


@dataclass(frozen=True)
class ActorPrincipal:
    """Identity and role supplied by the identity provider; trusted as given."""

    actor_id: str
    role: RoleName

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN

    @property
    def is_therapist(self) -> bool:
        return self.role == RoleName.THERAPIST

    @property
    def is_client(self) -> bool:
        return self.role == RoleName.CLIENT
