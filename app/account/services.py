"""
Account and entitlement services.

The service owns the plan -> feature mapping and translates identity
provider failures into the account error taxonomy. Sessions are always
passed in explicitly; nothing here reads a process-wide "current user".
"""
import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from pydantic import ValidationError

from .errors import (
    AlreadyExists,
    InvalidCredential,
    NotFound,
    Unauthenticated,
    UpstreamError,
    UserCancelled,
)
from .models import (
    PlanTier,
    Session,
    UserEntitlement,
    Identity,
    new_account_document,
    tier_bundle,
    utc_now_iso,
)
from .ports import (
    DocumentNotFound,
    DocumentStore,
    IdentityProvider,
    InteractiveSignIn,
    ProviderError,
)

logger = logging.getLogger(__name__)

USERS = "users"

T = TypeVar("T")

# Provider error code -> (account error, message override)
_PROVIDER_ERRORS = {
    ProviderError.USER_NOT_FOUND: (NotFound, None),
    ProviderError.WRONG_PASSWORD: (InvalidCredential, None),
    ProviderError.INVALID_TOKEN: (InvalidCredential, "Google sign-in could not be verified. Please try again."),
    ProviderError.EMAIL_IN_USE: (AlreadyExists, None),
    ProviderError.POPUP_CLOSED: (UserCancelled, None),
    ProviderError.POPUP_EXPIRED: (UserCancelled, "Google sign-in timed out. Please try again."),
}


class AccountService:
    """Creates, upgrades and reads per-account entitlement records."""

    def __init__(self, store: DocumentStore, identity_provider: IdentityProvider):
        self.store = store
        self.identity_provider = identity_provider

    # =====================
    # Sign-up / sign-in
    # =====================

    def create_or_link_account(self, identity: Identity) -> UserEntitlement:
        """Ensure an entitlement record exists for ``identity``.

        A record that already has a role is returned untouched. Otherwise the
        free-plan defaults are merged in, filling only fields the record does
        not have yet, so an existing plan or creation time is never reset.
        """
        existing = self._call(lambda: self._load_document(identity.uid))
        if existing is not None and existing.get("role") is not None:
            return self._entitlement(existing)

        defaults = new_account_document(identity.email, role=None)
        if existing is None:
            partial = defaults
            logger.info(f"Creating entitlement record for {identity.uid}")
        else:
            partial = {key: value for key, value in defaults.items() if key not in existing}
            if existing.get("email") is None and identity.email:
                partial["email"] = identity.email
            logger.info(f"Linking entitlement record for {identity.uid} (role not set)")

        merged = self._call(lambda: self.store.merge_set(USERS, identity.uid, partial))
        return self._entitlement(merged)

    def register_with_role(self, email: str, password: str, role: str) -> Tuple[Session, UserEntitlement]:
        """Create a password credential and a free-plan record with ``role``."""
        role = self._validate_role(role)
        session = self._call(lambda: self.identity_provider.create_credential(email, password))
        document = new_account_document(session.identity.email, role=role)
        self._call(lambda: self.store.set(USERS, session.account_id, document))
        logger.info(f"Registered {session.account_id} with role {role!r}")
        return session, self._entitlement(document)

    def authenticate(self, email: str, password: str) -> Tuple[Session, UserEntitlement]:
        """Verify an email/password pair and stamp ``email`` and ``lastLoginAt``."""
        session = self._call(lambda: self.identity_provider.sign_in_with_credential(email, password))
        login_fields = {"email": session.identity.email, "lastLoginAt": utc_now_iso()}
        merged = self._call(lambda: self.store.merge_set(USERS, session.account_id, login_fields))
        return session, self._entitlement(merged)

    def begin_interactive_sign_in(self) -> str:
        return self._call(self.identity_provider.begin_interactive)

    def sign_in_interactive(self, request: InteractiveSignIn) -> Tuple[Session, UserEntitlement]:
        """Finish the popup sign-in, then create or link the account record."""
        session = self._call(lambda: self.identity_provider.sign_in_interactive(request))
        return session, self.create_or_link_account(session.identity)

    def sign_out(self, session: Optional[Session]) -> None:
        """End the session. Signing out twice is harmless."""
        if session is None:
            return
        self._call(lambda: self.identity_provider.sign_out(session.token))
        logger.info(f"Signed out {session.account_id}")

    def current_session(self, token: Optional[str]) -> Optional[Session]:
        """Resolve a session token into an explicit session value."""
        if not token:
            return None
        identity = self._call(lambda: self.identity_provider.current_identity(token))
        if identity is None:
            return None
        return Session(token=token, identity=identity)

    # =====================
    # Entitlements
    # =====================

    def get_entitlement(self, account_id: str) -> UserEntitlement:
        document = self._call(lambda: self._load_document(account_id))
        if document is None:
            raise NotFound("No profile found for this account.")
        return self._entitlement(document)

    def assign_role(self, account_id: str, role: str) -> UserEntitlement:
        role = self._validate_role(role)
        merged = self._call(lambda: self.store.merge_set(USERS, account_id, {"role": role}))
        logger.info(f"User role updated for {account_id}: {role!r}")
        return self._entitlement(merged)

    def upgrade_to_pro(self, session: Optional[Session]) -> UserEntitlement:
        return self._apply_tier(session, PlanTier.PRO)

    def upgrade_to_premium(self, session: Optional[Session]) -> UserEntitlement:
        return self._apply_tier(session, PlanTier.PREMIUM)

    def _apply_tier(self, session: Optional[Session], tier: PlanTier) -> UserEntitlement:
        """Merge the full canonical bundle for ``tier`` into the record.

        Plans only move up: a record already on ``tier`` or a higher plan is
        returned unchanged.
        """
        if session is None:
            raise Unauthenticated()
        existing = self._call(lambda: self._load_document(session.account_id))
        if existing is not None:
            current = self._entitlement(existing)
            if current.plan >= tier:
                logger.info(
                    f"Skipping {tier.name.lower()} purchase for {session.account_id}: already on plan {current.plan}"
                )
                return current
        merged = self._call(lambda: self.store.merge_set(USERS, session.account_id, tier_bundle(tier)))
        logger.info(f"{tier.name.title()} plan purchased for {session.account_id}")
        return self._entitlement(merged)

    # =====================
    # Private helpers
    # =====================

    def _load_document(self, account_id: str) -> Optional[dict]:
        try:
            return self.store.get(USERS, account_id)
        except DocumentNotFound:
            return None

    def _entitlement(self, document: Dict[str, Any]) -> UserEntitlement:
        return self._call(lambda: UserEntitlement.from_document(document))

    @staticmethod
    def _validate_role(role: Optional[str]) -> str:
        if not isinstance(role, str) or not role.strip():
            raise ValueError("Role cannot be empty")
        return role.strip()

    def _call(self, operation: Callable[[], T]) -> T:
        """Run a collaborator call, translating its failures."""
        try:
            return operation()
        except ProviderError as e:
            translated = _PROVIDER_ERRORS.get(e.code)
            if translated is None:
                logger.error(f"Identity provider error {e.code}: {e}")
                raise UpstreamError(e) from e
            logger.warning(f"Identity provider rejected request: {e.code}")
            error_cls, message = translated
            raise error_cls(message) from e
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Document store failure: {e}")
            raise UpstreamError(e) from e
        except ValidationError as e:
            logger.error(f"Stored entitlement record is malformed: {e}")
            raise UpstreamError(e) from e
