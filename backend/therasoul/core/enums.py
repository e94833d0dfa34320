# backend/therasoul/core/enums.py
"""
Core enums for the TheraSoul platform.

Role names are issued by the identity provider with every request;
the session lifecycle authorizes each transition against them.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles an authenticated actor can carry."""

    ADMIN = "admin"
    THERAPIST = "therapist"
    CLIENT = "client"


class NotificationType(str, Enum):
    """Visual category of an in-app notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
