"""
Factory for creating the question bank module.
"""
from pathlib import Path

from app.account.services import AccountService
from .routes import create_question_routes
from .services import ContentGate, QuestionBrowser, QuestionSource


def create_question_bank_module(
    questions_file: Path,
    account_service: AccountService,
    per_page: int = 1,
) -> dict:
    """Create question bank module with services and routes.

    Args:
        questions_file: JSON dataset mapping role name -> questions
        account_service: Account service used to resolve entitlements
        per_page: Default number of questions per page

    Returns:
        Dictionary containing the source, gate, browser and blueprint
    """
    source = QuestionSource.from_file(questions_file)
    content_gate = ContentGate(source)
    question_browser = QuestionBrowser(content_gate, account_service, default_per_page=per_page)

    blueprint = create_question_routes(question_browser, content_gate, account_service)

    return {
        "source": source,
        "gate": content_gate,
        "browser": question_browser,
        "blueprint": blueprint,
    }
