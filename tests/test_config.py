import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from conftest import make_settings
from jalsetu.core.config import Settings
from jalsetu.core.exceptions import (
    DatabaseError,
    ErrorCategory,
    JalSetuError,
    NotFoundError,
    ValidationError as RequestError,
    create_error_response,
    get_http_status_code,
)


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.chat_provider == "gemini"
    assert settings.api_port == 5000
    assert settings.weather_location == "Noida"
    assert settings.default_farm_id == 1


def test_gemini_key_accepts_google_prefixed_variable(monkeypatch):
    monkeypatch.setenv("GOOGLE_GEMINI_API_KEY", "from-google-var")

    assert Settings(_env_file=None).gemini_api_key == "from-google-var"


def test_blank_keys_count_as_missing():
    assert make_settings(perplexity_api_key="   ").perplexity_api_key is None


def test_chat_provider_is_normalized():
    assert make_settings(chat_provider=" EdenAI ").chat_provider == "edenai"


def test_unknown_chat_provider_rejected():
    with pytest.raises(ValidationError):
        make_settings(chat_provider="ollama")


def test_invalid_log_level_rejected():
    with pytest.raises(ValidationError):
        make_settings(log_level="LOUD")


def test_error_bodies():
    assert create_error_response(RequestError("Message is required")) == {"error": "Message is required"}
    assert create_error_response(NotFoundError("Farm 3 not found")) == {"error": "Farm 3 not found", "message": "NotFoundError"}


def test_error_status_codes():
    assert get_http_status_code(RequestError("bad")) == 400
    assert get_http_status_code(NotFoundError("gone")) == 404
    assert get_http_status_code(DatabaseError("down")) == 503


def test_every_error_category_has_a_status():
    statuses = {category: get_http_status_code(JalSetuError("x", category=category)) for category in ErrorCategory}

    assert statuses == {
        ErrorCategory.VALIDATION: 400,
        ErrorCategory.NOT_FOUND: 404,
        ErrorCategory.AUTHENTICATION: 401,
        ErrorCategory.DATABASE: 503,
        ErrorCategory.EXTERNAL_API: 502,
        ErrorCategory.CONFIGURATION: 500,
        ErrorCategory.TIMEOUT: 408,
        ErrorCategory.UNKNOWN: 500,
    }


def test_client_errors_are_not_logged_as_errors(caplog):
    with caplog.at_level(logging.DEBUG, logger="jalsetu.core.exceptions"):
        RequestError("Message is required")
        NotFoundError("Farm 3 not found")
        DatabaseError("connection refused")

    levels = {record.getMessage(): record.levelno for record in caplog.records}
    assert levels["ValidationError: Message is required"] == logging.DEBUG
    assert levels["NotFoundError: Farm 3 not found"] == logging.DEBUG
    assert levels["DatabaseError: connection refused"] == logging.ERROR


def test_package_metadata_does_not_reuse_design_docs_as_readme():
    tomllib = pytest.importorskip("tomllib")
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"

    project = tomllib.loads(pyproject.read_text(encoding="utf-8"))["project"]

    assert "readme" not in project
