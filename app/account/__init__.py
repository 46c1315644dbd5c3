"""
Account and entitlement management: sign-up, sign-in, roles and plan tiers.
"""

from .errors import (
    AccountError,
    AlreadyExists,
    InvalidCredential,
    NotFound,
    Unauthenticated,
    UpstreamError,
    UserCancelled,
)
from .models import PlanTier, UserEntitlement, Identity, Session, UNLIMITED
from .services import AccountService

__all__ = [
    "AccountError",
    "AlreadyExists",
    "InvalidCredential",
    "NotFound",
    "Unauthenticated",
    "UpstreamError",
    "UserCancelled",
    "PlanTier",
    "UserEntitlement",
    "Identity",
    "Session",
    "UNLIMITED",
    "AccountService",
]
