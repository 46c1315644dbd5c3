"""
Question browser routes.
"""
from flask import Blueprint, request, jsonify

from app.account.errors import AccountError
from app.account.routes import current_session, error_response
from app.account.services import AccountService
from .services import ContentGate, QuestionBrowser


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def create_question_routes(
    question_browser: QuestionBrowser,
    content_gate: ContentGate,
    account_service: AccountService,
) -> Blueprint:
    """Create question browser routes."""
    bp = Blueprint('question_bank', __name__)

    @bp.errorhandler(AccountError)
    def handle_account_error(error):
        return error_response(error)

    @bp.route("/questions", methods=["GET"])
    def questions():
        """Return the current page of basic and advanced questions."""
        page = question_browser.browse(
            current_session(account_service),
            basic_page=_int_arg("basic_page", 1),
            advanced_page=_int_arg("advanced_page", 1),
            per_page=_int_arg("per_page", question_browser.default_per_page),
        )
        return jsonify(page)

    @bp.route("/roles", methods=["GET"])
    def roles():
        """List the roles the question bank has content for."""
        return jsonify({"roles": content_gate.roles()})

    return bp
