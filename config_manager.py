"""
Configuration management for the Interview Prep Portal.
Handles loading, validating, and providing access to application settings.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class AppConfig:
    """Application configuration settings."""
    host: str
    port: int
    debug: bool
    session_cookie_max_age: int


@dataclass
class AuthConfig:
    """Authentication configuration settings."""
    interactive_sign_in_timeout_seconds: int
    google_client_id: str
    bcrypt_rounds: Optional[int]


@dataclass
class QuestionBankConfig:
    """Question browser configuration settings."""
    per_page: int


@dataclass
class PathsConfig:
    """Path configuration settings."""
    user_data_dir: str
    questions_file: str


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = "web_app_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        # Start with default config
        self._config = self._get_default_config()

        # Load base config from file
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                    self._merge_config(file_config)
            except (json.JSONDecodeError, FileNotFoundError):
                # Keep default config if file is invalid or not found
                pass

        # Override with environment variables
        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "app": {
                "host": "0.0.0.0",
                "port": 22581,
                "debug": False,
                "session_cookie_max_age": 60 * 60 * 24 * 30
            },
            "auth": {
                "interactive_sign_in_timeout_seconds": 120,
                "google_client_id": "",
                "bcrypt_rounds": None
            },
            "question_bank": {
                "per_page": 1
            },
            "paths": {
                "user_data_dir": "user_data",
                "questions_file": "data/questions.json"
            }
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config:
                if isinstance(values, dict):
                    self._config[section].update(values)
                else:
                    self._config[section] = values
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        # App settings
        if os.getenv("APP_HOST"):
            self._config["app"]["host"] = os.getenv("APP_HOST")

        if os.getenv("APP_PORT"):
            self._config["app"]["port"] = int(os.getenv("APP_PORT"))

        if os.getenv("APP_DEBUG"):
            self._config["app"]["debug"] = os.getenv("APP_DEBUG").lower() == "true"

        if os.getenv("SESSION_COOKIE_MAX_AGE"):
            self._config["app"]["session_cookie_max_age"] = int(os.getenv("SESSION_COOKIE_MAX_AGE"))

        # Auth settings
        if os.getenv("INTERACTIVE_SIGN_IN_TIMEOUT"):
            self._config["auth"]["interactive_sign_in_timeout_seconds"] = int(
                os.getenv("INTERACTIVE_SIGN_IN_TIMEOUT")
            )

        if os.getenv("GOOGLE_CLIENT_ID"):
            self._config["auth"]["google_client_id"] = os.getenv("GOOGLE_CLIENT_ID")

        if os.getenv("BCRYPT_ROUNDS"):
            self._config["auth"]["bcrypt_rounds"] = int(os.getenv("BCRYPT_ROUNDS"))

        # Question bank settings
        if os.getenv("QUESTIONS_PER_PAGE"):
            self._config["question_bank"]["per_page"] = int(os.getenv("QUESTIONS_PER_PAGE"))

        # Paths
        if os.getenv("USER_DATA_DIR"):
            self._config["paths"]["user_data_dir"] = os.getenv("USER_DATA_DIR")

        if os.getenv("QUESTIONS_FILE"):
            self._config["paths"]["questions_file"] = os.getenv("QUESTIONS_FILE")

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=app_config["port"],
            debug=app_config["debug"],
            session_cookie_max_age=app_config["session_cookie_max_age"]
        )

    def get_auth_config(self) -> AuthConfig:
        """Get authentication configuration."""
        auth_config = self._config["auth"]
        return AuthConfig(
            interactive_sign_in_timeout_seconds=auth_config["interactive_sign_in_timeout_seconds"],
            google_client_id=auth_config["google_client_id"],
            bcrypt_rounds=auth_config["bcrypt_rounds"]
        )

    def get_question_bank_config(self) -> QuestionBankConfig:
        """Get question browser configuration."""
        qb_config = self._config["question_bank"]
        return QuestionBankConfig(per_page=qb_config["per_page"])

    def get_paths_config(self) -> PathsConfig:
        """Get paths configuration."""
        paths_config = self._config["paths"]
        return PathsConfig(
            user_data_dir=paths_config["user_data_dir"],
            questions_file=paths_config["questions_file"]
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)


# Global configuration instance
config_manager = ConfigManager()


def get_app_config() -> AppConfig:
    """Get application configuration."""
    return config_manager.get_app_config()


def get_auth_config() -> AuthConfig:
    """Get authentication configuration."""
    return config_manager.get_auth_config()


def get_question_bank_config() -> QuestionBankConfig:
    """Get question browser configuration."""
    return config_manager.get_question_bank_config()


def get_paths_config() -> PathsConfig:
    """Get paths configuration."""
    return config_manager.get_paths_config()


def reload_config() -> None:
    """Reload configuration."""
    config_manager.reload()


def save_config() -> None:
    """Save current configuration."""
    config_manager.save_config()
