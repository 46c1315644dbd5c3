"""
Factory for creating the account module.
"""
import logging
from pathlib import Path
from typing import Optional

from .identity import LocalIdentityProvider, TokenVerifier, google_token_verifier
from .routes import create_account_routes
from .services import AccountService
from .store import JsonDocumentStore

logger = logging.getLogger(__name__)


def create_account_module(
    user_data_dir: Path,
    google_client_id: str = "",
    interactive_timeout_seconds: float = 120,
    bcrypt_rounds: Optional[int] = None,
    cookie_max_age: int = 60 * 60 * 24 * 30,
    token_verifier: Optional[TokenVerifier] = None,
) -> dict:
    """Create account module with store, identity provider, service and routes.

    Args:
        user_data_dir: Directory holding the JSON documents
        google_client_id: OAuth client ID the Google ID tokens must target
        interactive_timeout_seconds: How long a sign-in popup may stay open
        bcrypt_rounds: Optional bcrypt cost (lowered in tests)
        cookie_max_age: Lifetime of the session cookie and the server-side session in seconds
        token_verifier: Override for Google ID token verification

    Returns:
        Dictionary containing the store, provider, service and blueprint
    """
    store = JsonDocumentStore(user_data_dir)

    identity_provider = LocalIdentityProvider(
        store=store,
        token_verifier=token_verifier or google_token_verifier(google_client_id),
        interactive_timeout_seconds=interactive_timeout_seconds,
        session_ttl_seconds=cookie_max_age,
        bcrypt_rounds=bcrypt_rounds,
    )

    def log_identity_change(identity):
        if identity is None:
            logger.info("Session ended")
        else:
            logger.info(f"Session started for {identity.uid} via {identity.provider}")

    identity_provider.on_identity_change(log_identity_change)

    account_service = AccountService(store, identity_provider)
    blueprint = create_account_routes(account_service, cookie_max_age)

    return {
        "store": store,
        "identity_provider": identity_provider,
        "service": account_service,
        "blueprint": blueprint,
    }
