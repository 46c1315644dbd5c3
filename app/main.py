import logging
from pathlib import Path

from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from config_manager import ConfigManager, config_manager as default_config_manager
from app.account.factory import create_account_module
from app.question_bank.factory import create_question_bank_module

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent.parent


def create_app(config: ConfigManager = None) -> Flask:
    """Build the Flask application with the account and question bank modules."""
    config = config or default_config_manager
    app_config = config.get_app_config()
    auth_config = config.get_auth_config()
    qb_config = config.get_question_bank_config()
    paths_config = config.get_paths_config()

    app = Flask(__name__)
    # Trust one proxy hop for scheme, host and prefix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1, x_prefix=1)

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------

    user_data_dir = BASE_DIR / paths_config.user_data_dir
    questions_file = BASE_DIR / paths_config.questions_file

    account_module = create_account_module(
        user_data_dir=user_data_dir,
        google_client_id=auth_config.google_client_id,
        interactive_timeout_seconds=auth_config.interactive_sign_in_timeout_seconds,
        bcrypt_rounds=auth_config.bcrypt_rounds,
        cookie_max_age=app_config.session_cookie_max_age,
    )

    question_bank_module = create_question_bank_module(
        questions_file=questions_file,
        account_service=account_module["service"],
        per_page=qb_config.per_page,
    )

    app.register_blueprint(account_module["blueprint"])
    app.register_blueprint(question_bank_module["blueprint"])

    app.extensions["account_module"] = account_module
    app.extensions["question_bank_module"] = question_bank_module

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    logger.info(f"Application ready (user data: {user_data_dir}, questions: {questions_file})")
    return app

