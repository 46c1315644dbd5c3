"""
Identity/session provider backed by the document store.

Email/password credentials are hashed with bcrypt. Interactive sign-in is
the Google popup flow: the client obtains an ID token in the popup and posts
it back together with the state issued by ``begin_interactive``.
"""
import logging
import secrets
import time
import uuid
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

import bcrypt
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from .models import Identity, Session, utc_now_iso
from .ports import (
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    IdentityListener,
    IdentityProvider,
    InteractiveSignIn,
    InvalidDocumentId,
    ProviderError,
)

logger = logging.getLogger(__name__)

CREDENTIALS = "credentials"
SESSIONS = "sessions"
INTERACTIVE = "interactive_sign_ins"

# Error values the sign-in popup reports when the user closes it.
POPUP_DISMISSED_ERRORS = {"popup_closed_by_user", "popup_closed", "access_denied"}

TokenVerifier = Callable[[str], Dict[str, Any]]


def google_token_verifier(client_id: str) -> TokenVerifier:
    """Build a verifier that checks Google ID tokens for ``client_id``."""
    def verify(token: str) -> Dict[str, Any]:
        return id_token.verify_oauth2_token(token, google_requests.Request(), client_id)
    return verify


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class LocalIdentityProvider(IdentityProvider):
    """Identity provider storing credentials and sessions as documents."""

    def __init__(
        self,
        store: DocumentStore,
        token_verifier: TokenVerifier,
        interactive_timeout_seconds: float = 120,
        session_ttl_seconds: float = 60 * 60 * 24 * 30,
        bcrypt_rounds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.token_verifier = token_verifier
        self.interactive_timeout_seconds = interactive_timeout_seconds
        self.session_ttl_seconds = session_ttl_seconds
        self.bcrypt_rounds = bcrypt_rounds
        self.clock = clock
        self._listeners: List[IdentityListener] = []
        self._listeners_lock = Lock()

    # =====================
    # Credentials
    # =====================

    def _hash_password(self, password: str) -> str:
        if not password:
            raise ValueError("Password cannot be empty")
        if self.bcrypt_rounds is not None:
            salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
        else:
            salt = bcrypt.gensalt()
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def _check_password(self, password: str, password_hash: Optional[str]) -> bool:
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError:
            # Malformed stored hash
            return False

    def create_credential(self, email: str, password: str) -> Session:
        key = normalize_email(email)
        if not key:
            raise ValueError("Email cannot be empty")
        if self.store.exists(CREDENTIALS, key):
            raise ProviderError(ProviderError.EMAIL_IN_USE)

        uid = uuid.uuid4().hex
        try:
            self.store.create(CREDENTIALS, key, {
                "uid": uid,
                "email": key,
                "provider": "password",
                "password_hash": self._hash_password(password),
            })
        except DocumentExists:
            raise ProviderError(ProviderError.EMAIL_IN_USE) from None
        return self._open_session(Identity(uid=uid, email=key, provider="password"))

    def sign_in_with_credential(self, email: str, password: str) -> Session:
        key = normalize_email(email)
        try:
            credential = self.store.get(CREDENTIALS, key) if key else None
        except DocumentNotFound:
            credential = None
        if not credential:
            raise ProviderError(ProviderError.USER_NOT_FOUND)

        if not self._check_password(password, credential.get("password_hash")):
            raise ProviderError(ProviderError.WRONG_PASSWORD)

        return self._open_session(
            Identity(uid=credential["uid"], email=credential.get("email"), provider="password")
        )

    # =====================
    # Interactive sign-in
    # =====================

    def begin_interactive(self) -> str:
        self._purge_stale_states()
        state = secrets.token_urlsafe(24)
        self.store.set(INTERACTIVE, state, {"startedAt": self.clock()})
        return state

    def sign_in_interactive(self, request: InteractiveSignIn) -> Session:
        try:
            pending = self.store.get(INTERACTIVE, request.state)
        except (DocumentNotFound, InvalidDocumentId):
            raise ProviderError(ProviderError.INVALID_TOKEN, "Unknown or reused sign-in state") from None
        # One-time state
        self.store.delete(INTERACTIVE, request.state)

        if request.error:
            if request.error in POPUP_DISMISSED_ERRORS:
                raise ProviderError(ProviderError.POPUP_CLOSED)
            logger.warning(f"Sign-in popup reported unrecognised error {request.error!r}")
            raise ProviderError(ProviderError.POPUP_CLOSED, f"Popup reported {request.error!r}")

        elapsed = self.clock() - float(pending.get("startedAt", 0))
        if elapsed > self.interactive_timeout_seconds:
            raise ProviderError(
                ProviderError.POPUP_EXPIRED,
                f"Sign-in completed after {elapsed:.0f}s (limit {self.interactive_timeout_seconds}s)",
            )

        if not request.id_token:
            raise ProviderError(ProviderError.POPUP_CLOSED)

        try:
            claims = self.token_verifier(request.id_token)
        except ValueError as e:
            raise ProviderError(ProviderError.INVALID_TOKEN, str(e)) from e
        except google_exceptions.GoogleAuthError as e:
            raise ProviderError(ProviderError.NETWORK_FAILED, str(e)) from e

        email = normalize_email(claims.get("email", ""))
        if not email:
            raise ProviderError(ProviderError.INVALID_TOKEN, "ID token carries no email")
        if claims.get("email_verified") not in (True, "true"):
            raise ProviderError(ProviderError.INVALID_TOKEN, f"Google email {email} is not verified")

        # Link to an existing credential for the same email
        try:
            uid = self.store.get(CREDENTIALS, email)["uid"]
        except DocumentNotFound:
            uid = uuid.uuid4().hex
            try:
                self.store.create(CREDENTIALS, email, {"uid": uid, "email": email, "provider": "google"})
            except DocumentExists:
                uid = self.store.get(CREDENTIALS, email)["uid"]

        return self._open_session(Identity(uid=uid, email=email, provider="google"))

    def _purge_stale_states(self) -> None:
        """Drop popup states whose timeout has passed without completion."""
        cutoff = self.clock() - self.interactive_timeout_seconds
        for state in self.store.list_ids(INTERACTIVE):
            try:
                started_at = float(self.store.get(INTERACTIVE, state).get("startedAt", 0))
            except DocumentNotFound:
                continue
            if started_at < cutoff:
                self.store.delete(INTERACTIVE, state)

    # =====================
    # Sessions
    # =====================

    def _open_session(self, identity: Identity) -> Session:
        token = secrets.token_urlsafe(32)
        self.store.set(SESSIONS, token, {
            "uid": identity.uid,
            "email": identity.email,
            "provider": identity.provider,
            "createdAt": utc_now_iso(),
            "expiresAt": self.clock() + self.session_ttl_seconds,
        })
        self._notify(identity)
        return Session(token=token, identity=identity)

    def sign_out(self, token: str) -> None:
        if not token:
            return
        try:
            self.store.get(SESSIONS, token)
        except (DocumentNotFound, InvalidDocumentId):
            return
        self.store.delete(SESSIONS, token)
        self._notify(None)

    def current_identity(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None
        try:
            data = self.store.get(SESSIONS, token)
        except (DocumentNotFound, InvalidDocumentId):
            return None
        expires_at = data.get("expiresAt")
        if expires_at is not None and self.clock() >= float(expires_at):
            self.store.delete(SESSIONS, token)
            return None
        return Identity(uid=data["uid"], email=data.get("email"), provider=data.get("provider", "password"))

    def on_identity_change(self, callback: IdentityListener) -> Callable[[], None]:
        with self._listeners_lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, identity: Optional[Identity]) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(identity)
            except Exception:
                logger.exception("Identity change listener failed")
