"""
Account routes for sign-up, sign-in, role selection and plan purchases.
"""
from flask import Blueprint, request, jsonify, make_response

from .errors import (
    AccountError,
    AlreadyExists,
    InvalidCredential,
    NotFound,
    Unauthenticated,
    UpstreamError,
    UserCancelled,
)
from .ports import InteractiveSignIn
from .services import AccountService

SESSION_COOKIE = "session_token"

_STATUS_CODES = {
    UserCancelled: 400,
    InvalidCredential: 401,
    Unauthenticated: 401,
    NotFound: 404,
    AlreadyExists: 409,
    UpstreamError: 502,
}


def error_response(error: AccountError):
    """Translate an account error into a JSON response tuple."""
    return jsonify(error.to_dict()), _STATUS_CODES.get(type(error), 400)


def current_session(account_service: AccountService):
    """Resolve the session carried by the request cookie, if any."""
    return account_service.current_session(request.cookies.get(SESSION_COOKIE))


def create_account_routes(account_service: AccountService, cookie_max_age: int) -> Blueprint:
    """Create account management routes."""
    bp = Blueprint('account', __name__, url_prefix='/account')

    def signed_in(session, entitlement, status=200):
        resp = make_response(jsonify({
            "status": "ok",
            "uid": session.account_id,
            "profile": entitlement.to_document(),
        }), status)
        resp.set_cookie(
            SESSION_COOKIE, session.token,
            max_age=cookie_max_age, httponly=True, samesite="Lax",
        )
        return resp

    @bp.errorhandler(AccountError)
    def handle_account_error(error):
        return error_response(error)

    @bp.errorhandler(ValueError)
    def handle_bad_input(error):
        return jsonify({"error": "invalid_request", "message": str(error)}), 400

    @bp.route("/signup", methods=["POST"])
    def signup():
        """Register with email, password and role."""
        data = request.get_json(silent=True) or {}
        email = (data.get("email") or "").strip()
        password = data.get("password") or ""

        if not email:
            return jsonify({"error": "invalid_request", "message": "Email cannot be empty"}), 400
        if len(password) < 6:
            return jsonify({
                "error": "invalid_request",
                "message": "Password must be at least 6 characters long",
            }), 400

        session, entitlement = account_service.register_with_role(email, password, data.get("role"))
        return signed_in(session, entitlement, status=201)

    @bp.route("/login", methods=["POST"])
    def login():
        """Sign in with email and password."""
        data = request.get_json(silent=True) or {}
        session, entitlement = account_service.authenticate(
            (data.get("email") or "").strip(), data.get("password") or ""
        )
        return signed_in(session, entitlement)

    @bp.route("/interactive/start", methods=["POST"])
    def interactive_start():
        """Issue the state the sign-in popup must echo back."""
        return jsonify({"state": account_service.begin_interactive_sign_in()})

    @bp.route("/interactive/complete", methods=["POST"])
    def interactive_complete():
        """Finish the popup sign-in with an ID token or the popup's error."""
        data = request.get_json(silent=True) or {}
        state = (data.get("state") or "").strip()
        if not state:
            return jsonify({"error": "invalid_request", "message": "Missing sign-in state"}), 400

        session, entitlement = account_service.sign_in_interactive(InteractiveSignIn(
            state=state,
            id_token=data.get("id_token"),
            error=data.get("error"),
        ))
        return signed_in(session, entitlement)

    @bp.route("/logout", methods=["POST"])
    def logout():
        """Sign out; succeeds even without an active session."""
        account_service.sign_out(current_session(account_service))
        resp = make_response(jsonify({"status": "ok"}))
        resp.delete_cookie(SESSION_COOKIE)
        return resp

    @bp.route("/me", methods=["GET"])
    def me():
        """Return the signed-in user's entitlement record."""
        session = current_session(account_service)
        if session is None:
            raise Unauthenticated()
        entitlement = account_service.get_entitlement(session.account_id)
        return jsonify({
            "uid": session.account_id,
            "profile": entitlement.to_document(),
            "interviews_remaining": entitlement.interviews_remaining(),
        })

    @bp.route("/role", methods=["POST"])
    def set_role():
        """Assign a role to the signed-in user."""
        session = current_session(account_service)
        if session is None:
            raise Unauthenticated()
        data = request.get_json(silent=True) or {}
        entitlement = account_service.assign_role(session.account_id, data.get("role"))
        return jsonify({"status": "ok", "profile": entitlement.to_document()})

    @bp.route("/purchase/pro", methods=["POST"])
    def purchase_pro():
        entitlement = account_service.upgrade_to_pro(current_session(account_service))
        return jsonify({"status": "ok", "profile": entitlement.to_document()})

    @bp.route("/purchase/premium", methods=["POST"])
    def purchase_premium():
        entitlement = account_service.upgrade_to_premium(current_session(account_service))
        return jsonify({"status": "ok", "profile": entitlement.to_document()})

    return bp
