"""
Integration tests for the account and question bank routes.
"""
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

from config_manager import ConfigManager
from app.account.models import UNLIMITED
from app.main import create_app


QUESTIONS = {
    "Investment Banking": [
        {"role": "Investment Banking", "tags": "basic", "question": "IB basic 1", "answer": "a1"},
        {"role": "Investment Banking", "tags": "basic", "question": "IB basic 2", "answer": "a2"},
        {"role": "Investment Banking", "tags": "basic", "question": "IB basic 3", "answer": "a3"},
        {"role": "Investment Banking", "tags": "advanced", "question": "IB adv 1", "answer": "a4"},
    ],
    "Equity Research": [
        {"role": "Equity Research", "tags": "basic", "question": "ER basic 1", "answer": "b1"},
    ],
}


class TestWebRoutes:
    """Drive the full application through the Flask test client."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = Path(tempfile.mkdtemp())
        questions_file = self.temp_dir / "questions.json"
        questions_file.write_text(json.dumps(QUESTIONS), encoding="utf-8")

        config_file = self.temp_dir / "config.json"
        config_file.write_text(json.dumps({
            "auth": {"bcrypt_rounds": 4, "google_client_id": "client-123"},
            "question_bank": {"per_page": 2},
            "paths": {
                "user_data_dir": str(self.temp_dir / "user_data"),
                "questions_file": str(questions_file),
            },
        }), encoding="utf-8")

        with patch.dict("os.environ", {}, clear=True):
            self.app = create_app(ConfigManager(str(config_file)))
        self.client = self.app.test_client()

    def teardown_method(self):
        """Clean up test fixtures."""
        import shutil
        shutil.rmtree(self.temp_dir)

    def _signup(self, email="user@example.com", password="secret1", role="Investment Banking"):
        return self.client.post("/account/signup", json={"email": email, "password": password, "role": role})

    def test_health(self):
        assert self.client.get("/health").get_json() == {"status": "ok"}

    def test_signup_sets_session_cookie(self):
        response = self._signup()

        assert response.status_code == 201
        data = response.get_json()
        assert data["profile"]["role"] == "Investment Banking"
        assert data["profile"]["plan"] == 0
        assert data["profile"]["interviewQuota"] == 3
        assert "session_token=" in response.headers.get("Set-Cookie", "")

        me = self.client.get("/account/me")
        assert me.status_code == 200
        assert me.get_json()["uid"] == data["uid"]
        assert me.get_json()["interviews_remaining"] == 3

    def test_signup_validation(self):
        assert self._signup(password="123").status_code == 400
        assert self._signup(email="").status_code == 400
        assert self._signup(role="").status_code == 400

    def test_duplicate_signup_conflict(self):
        self._signup()
        self.client.post("/account/logout")

        response = self._signup()
        assert response.status_code == 409
        assert response.get_json()["error"] == "already_exists"

    def test_login_errors(self):
        self._signup()
        self.client.post("/account/logout")

        response = self.client.post("/account/login", json={"email": "nobody@example.com", "password": "x"})
        assert response.status_code == 404
        assert response.get_json()["message"] == "No account found with this email. Please sign up."

        response = self.client.post("/account/login", json={"email": "user@example.com", "password": "bad"})
        assert response.status_code == 401
        assert response.get_json()["error"] == "invalid_credential"

        response = self.client.post("/account/login", json={"email": "user@example.com", "password": "secret1"})
        assert response.status_code == 200
        assert response.get_json()["profile"]["lastLoginAt"] is not None

    def test_purchase_requires_session(self):
        response = self.client.post("/account/purchase/pro")

        assert response.status_code == 401
        assert response.get_json() == {"error": "unauthenticated", "message": "User is not logged in."}

    def test_purchase_premium(self):
        self._signup()

        response = self.client.post("/account/purchase/premium")

        profile = response.get_json()["profile"]
        assert profile["plan"] == 2
        assert profile["caseStudy"] == {"plan": 2, "perWeek": UNLIMITED}

    def test_logout_is_idempotent(self):
        self._signup()

        assert self.client.post("/account/logout").status_code == 200
        assert self.client.post("/account/logout").status_code == 200
        assert self.client.get("/account/me").status_code == 401

    def test_questions_unauthenticated(self):
        data = self.client.get("/questions").get_json()

        assert data["state"] == "unauthenticated"
        assert "basic" not in data

    def test_questions_free_plan_hides_advanced(self):
        self._signup()

        data = self.client.get("/questions").get_json()

        assert data["state"] == "ready"
        assert data["question_bank_access"] == 0
        assert [q["question"] for q in data["basic"]["items"]] == ["IB basic 1", "IB basic 2"]
        assert data["basic"]["pagination"]["total_pages"] == 2
        assert data["advanced"] == {"locked": True, "total_items": 1}

    def test_questions_paging_and_pro_access(self):
        self._signup()
        self.client.post("/account/purchase/pro")

        data = self.client.get("/questions?basic_page=2&per_page=2").get_json()

        assert [q["question"] for q in data["basic"]["items"]] == ["IB basic 3"]
        assert data["advanced"]["locked"] is False
        assert [q["question"] for q in data["advanced"]["items"]] == ["IB adv 1"]

    def test_questions_role_change_and_no_content(self):
        self._signup()

        self.client.post("/account/role", json={"role": "equity research"})
        data = self.client.get("/questions").get_json()
        assert data["state"] == "ready"
        assert [q["question"] for q in data["basic"]["items"]] == ["ER basic 1"]

        self.client.post("/account/role", json={"role": "Venture Capital"})
        data = self.client.get("/questions").get_json()
        assert data["state"] == "no_content"

    def test_roles_listing(self):
        assert self.client.get("/roles").get_json() == {"roles": ["Investment Banking", "Equity Research"]}

    def test_interactive_sign_in_flow(self):
        state = self.client.post("/account/interactive/start").get_json()["state"]

        with patch("app.account.identity.id_token.verify_oauth2_token",
                   return_value={"email": "popup@example.com", "email_verified": True}) as verify:
            response = self.client.post("/account/interactive/complete",
                                        json={"state": state, "id_token": "tok"})

        assert response.status_code == 200
        assert verify.call_args[0][0] == "tok"
        assert verify.call_args[0][2] == "client-123"
        assert response.get_json()["profile"]["role"] is None

        # Signed in but no role yet
        assert self.client.get("/questions").get_json()["state"] == "unauthenticated"

    def test_interactive_popup_closed(self):
        state = self.client.post("/account/interactive/start").get_json()["state"]

        response = self.client.post("/account/interactive/complete",
                                    json={"state": state, "error": "popup_closed_by_user"})

        assert response.status_code == 400
        assert response.get_json()["error"] == "user_cancelled"

    def test_interactive_requires_state(self):
        response = self.client.post("/account/interactive/complete", json={"id_token": "tok"})
        assert response.status_code == 400
