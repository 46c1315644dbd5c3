"""
Tests for the document-backed identity provider.
"""
import pytest
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import MagicMock

from app.account.identity import LocalIdentityProvider, CREDENTIALS, INTERACTIVE, SESSIONS
from app.account.ports import InteractiveSignIn, ProviderError
from app.account.store import JsonDocumentStore


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestLocalIdentityProvider:
    """Test credentials, sessions, interactive sign-in and listeners."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.store = JsonDocumentStore(self.temp_dir / "docs")
        self.clock = FakeClock()
        self.verifier = MagicMock(return_value={"email": "user@example.com", "email_verified": True})
        self.provider = LocalIdentityProvider(
            store=self.store,
            token_verifier=self.verifier,
            interactive_timeout_seconds=60,
            bcrypt_rounds=4,
            clock=self.clock,
        )

    def teardown_method(self):
        """Clean up test fixtures."""
        import shutil
        shutil.rmtree(self.temp_dir)

    def test_password_is_hashed(self):
        self.provider.create_credential("user@example.com", "secret1")

        credential = self.store.get(CREDENTIALS, "user@example.com")
        assert credential["password_hash"] != "secret1"
        assert credential["password_hash"].startswith("$2")

    def test_error_codes(self):
        self.provider.create_credential("user@example.com", "secret1")

        with pytest.raises(ProviderError) as exc_info:
            self.provider.create_credential("USER@example.com", "secret2")
        assert exc_info.value.code == ProviderError.EMAIL_IN_USE

        with pytest.raises(ProviderError) as exc_info:
            self.provider.sign_in_with_credential("user@example.com", "nope")
        assert exc_info.value.code == ProviderError.WRONG_PASSWORD

        with pytest.raises(ProviderError) as exc_info:
            self.provider.sign_in_with_credential("other@example.com", "secret1")
        assert exc_info.value.code == ProviderError.USER_NOT_FOUND

    def test_google_only_account_has_no_password(self):
        state = self.provider.begin_interactive()
        self.provider.sign_in_interactive(InteractiveSignIn(state=state, id_token="tok"))

        with pytest.raises(ProviderError) as exc_info:
            self.provider.sign_in_with_credential("user@example.com", "anything")
        assert exc_info.value.code == ProviderError.WRONG_PASSWORD

    def test_session_lifecycle(self):
        session = self.provider.create_credential("user@example.com", "secret1")

        identity = self.provider.current_identity(session.token)
        assert identity == session.identity

        self.provider.sign_out(session.token)
        assert self.provider.current_identity(session.token) is None
        assert self.provider.current_identity(None) is None
        assert self.provider.current_identity("../../etc") is None

    def test_interactive_timeout_is_popup_expired(self):
        state = self.provider.begin_interactive()
        self.clock.now += 61

        with pytest.raises(ProviderError) as exc_info:
            self.provider.sign_in_interactive(InteractiveSignIn(state=state, id_token="tok"))
        assert exc_info.value.code == ProviderError.POPUP_EXPIRED
        self.verifier.assert_not_called()

    def test_interactive_within_timeout(self):
        state = self.provider.begin_interactive()
        self.clock.now += 59

        session = self.provider.sign_in_interactive(InteractiveSignIn(state=state, id_token="tok"))
        assert session.identity.email == "user@example.com"
        assert session.identity.provider == "google"

    def test_interactive_state_is_single_use(self):
        state = self.provider.begin_interactive()
        self.provider.sign_in_interactive(InteractiveSignIn(state=state, id_token="tok"))

        assert self.store.exists(INTERACTIVE, state) is False
        with pytest.raises(ProviderError) as exc_info:
            self.provider.sign_in_interactive(InteractiveSignIn(state=state, id_token="tok"))
        assert exc_info.value.code == ProviderError.INVALID_TOKEN

    def test_interactive_missing_token_counts_as_closed(self):
        state = self.provider.begin_interactive()

        with pytest.raises(ProviderError) as exc_info:
            self.provider.sign_in_interactive(InteractiveSignIn(state=state))
        assert exc_info.value.code == ProviderError.POPUP_CLOSED

    def test_identity_change_listeners(self):
        events = []
        unsubscribe = self.provider.on_identity_change(events.append)

        session = self.provider.create_credential("user@example.com", "secret1")
        self.provider.sign_out(session.token)
        self.provider.sign_out(session.token)

        assert events == [session.identity, None]

        unsubscribe()
        self.provider.sign_in_with_credential("user@example.com", "secret1")
        assert len(events) == 2

    def test_failing_listener_does_not_break_sign_in(self):
        self.provider.on_identity_change(MagicMock(side_effect=RuntimeError("boom")))

        session = self.provider.create_credential("user@example.com", "secret1")
        assert self.provider.current_identity(session.token) is not None

    def test_unverified_google_email_is_rejected(self):
        password_session = self.provider.create_credential("user@example.com", "secret1")
        self.verifier.return_value = {"email": "user@example.com", "email_verified": False}
        state = self.provider.begin_interactive()

        with pytest.raises(ProviderError) as exc_info:
            self.provider.sign_in_interactive(InteractiveSignIn(state=state, id_token="tok"))
        assert exc_info.value.code == ProviderError.INVALID_TOKEN

        self.verifier.return_value = {"email": "user@example.com"}
        state = self.provider.begin_interactive()
        with pytest.raises(ProviderError):
            self.provider.sign_in_interactive(InteractiveSignIn(state=state, id_token="tok"))
        assert self.store.get(CREDENTIALS, "user@example.com")["uid"] == password_session.account_id

    def test_unknown_popup_error_counts_as_closed(self):
        state = self.provider.begin_interactive()

        with pytest.raises(ProviderError) as exc_info:
            self.provider.sign_in_interactive(InteractiveSignIn(state=state, error="interaction_required"))
        assert exc_info.value.code == ProviderError.POPUP_CLOSED

    def test_abandoned_states_are_purged(self):
        for _ in range(5):
            self.provider.begin_interactive()
        assert len(self.store.list_ids(INTERACTIVE)) == 5

        self.clock.now += 61
        fresh = self.provider.begin_interactive()

        assert self.store.list_ids(INTERACTIVE) == [fresh]

    def test_pending_states_within_timeout_are_kept(self):
        first = self.provider.begin_interactive()
        self.clock.now += 30
        second = self.provider.begin_interactive()

        assert sorted(self.store.list_ids(INTERACTIVE)) == sorted([first, second])

    def test_session_expires(self):
        provider = LocalIdentityProvider(
            store=self.store,
            token_verifier=self.verifier,
            session_ttl_seconds=3600,
            bcrypt_rounds=4,
            clock=self.clock,
        )
        session = provider.create_credential("user@example.com", "secret1")

        self.clock.now += 3599
        assert provider.current_identity(session.token) == session.identity

        self.clock.now += 1
        assert provider.current_identity(session.token) is None
        assert self.store.exists(SESSIONS, session.token) is False

    def test_concurrent_signups_for_one_email(self):
        def signup(_):
            try:
                return self.provider.create_credential("race@example.com", "secret1")
            except ProviderError as e:
                return e.code

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(signup, range(8)))

        sessions = [r for r in results if not isinstance(r, str)]
        assert len(sessions) == 1
        assert results.count(ProviderError.EMAIL_IN_USE) == 7
        assert self.store.get(CREDENTIALS, "race@example.com")["uid"] == sessions[0].account_id
