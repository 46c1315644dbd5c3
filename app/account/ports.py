"""
Collaborator interfaces consumed by the account service.

Concrete adapters live in ``store.py`` and ``identity.py``; tests and
alternative backends only need to honour these contracts.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .models import Identity, Session


class DocumentNotFound(Exception):
    """Raised by a document store when ``collection/doc_id`` does not exist."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} not found")


class InvalidDocumentId(ValueError):
    """Raised when a collection or document id cannot be used as a key."""


class DocumentExists(Exception):
    """Raised by ``create`` when ``collection/doc_id`` is already taken."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} already exists")


class ProviderError(Exception):
    """Identity provider failure identified by a provider-specific code."""

    USER_NOT_FOUND = "auth/user-not-found"
    WRONG_PASSWORD = "auth/wrong-password"
    EMAIL_IN_USE = "auth/email-already-in-use"
    POPUP_CLOSED = "auth/popup-closed-by-user"
    POPUP_EXPIRED = "auth/popup-expired"
    INVALID_TOKEN = "auth/invalid-id-token"
    NETWORK_FAILED = "auth/network-request-failed"

    def __init__(self, code: str, message: str = ""):
        self.code = code
        super().__init__(message or code)


class DocumentStore(ABC):
    """Hosted document database: collections of JSON-like records."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        """Return the document or raise ``DocumentNotFound``."""

    @abstractmethod
    def merge_set(self, collection: str, doc_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert with field-level merge; unspecified fields are preserved."""

    @abstractmethod
    def create(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        """Write a new document; raise ``DocumentExists`` if the id is taken."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        """Create or fully replace a document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document; missing documents are ignored."""

    @abstractmethod
    def list_ids(self, collection: str) -> List[str]:
        """Return the ids of every document in ``collection``."""

    def exists(self, collection: str, doc_id: str) -> bool:
        try:
            self.get(collection, doc_id)
        except DocumentNotFound:
            return False
        return True


@dataclass(frozen=True)
class InteractiveSignIn:
    """Result posted back by the client once the sign-in popup settles."""
    state: str
    id_token: Optional[str] = None
    error: Optional[str] = None


IdentityListener = Callable[[Optional[Identity]], None]


class IdentityProvider(ABC):
    """Identity/session provider (password credentials + interactive sign-in)."""

    @abstractmethod
    def begin_interactive(self) -> str:
        """Start an interactive sign-in and return its one-time state."""

    @abstractmethod
    def sign_in_interactive(self, request: InteractiveSignIn) -> Session:
        """Complete an interactive sign-in started by ``begin_interactive``."""

    @abstractmethod
    def sign_in_with_credential(self, email: str, password: str) -> Session:
        """Verify an email/password pair and open a session."""

    @abstractmethod
    def create_credential(self, email: str, password: str) -> Session:
        """Register a new email/password credential and open a session."""

    @abstractmethod
    def sign_out(self, token: str) -> None:
        """Terminate the session; unknown tokens are ignored."""

    @abstractmethod
    def current_identity(self, token: Optional[str]) -> Optional[Identity]:
        """Resolve a session token to its identity, or ``None`` when it is not active."""

    @abstractmethod
    def on_identity_change(self, callback: IdentityListener) -> Callable[[], None]:
        """Subscribe to sign-in/sign-out transitions; returns an unsubscribe callable."""
