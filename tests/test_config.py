"""
Tests for settings loading and logging setup.
"""

import json
import logging

from lexflow.core.config import Settings, get_settings
from lexflow.core.logging_config import JSONFormatter, setup_logging
from lexflow.core.utc import parse_iso, to_iso


def test_defaults():
    settings = Settings()
    assert settings.gemini_model == "gemini-2.5-flash"
    assert settings.max_concurrent_tasks == 5
    assert settings.courtlistener_base_url.endswith("/api/rest/v4")


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "gem")
    monkeypatch.setenv("MAX_CONCURRENT_TASKS", "9")
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.gemini_api_key == "gem"
    assert settings.max_concurrent_tasks == 9


def test_google_key_fallback(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "goog")
    assert Settings().gemini_api_key == "goog"


def test_gemini_key_wins_over_google_key(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "goog")
    monkeypatch.setenv("GEMINI_API_KEY", "gem")
    assert Settings().gemini_api_key == "gem"


def test_json_formatter():
    record = logging.LogRecord("lexflow.test", logging.WARNING, __file__, 1, "queue full (%d)", (5,), None)
    payload = json.loads(JSONFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "lexflow.test"
    assert payload["message"] == "queue full (5)"
    assert payload["timestamp"].endswith("Z")


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "lexflow.log"
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(level="info", json_format=True, log_file=log_file)
        logging.getLogger("lexflow.test").info("task queued")
        for handler in root.handlers:
            handler.flush()
        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["message"] == "task queued"
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


def test_iso_round_trip():
    assert to_iso(parse_iso("2025-12-08T03:00:00Z")) == "2025-12-08T03:00:00Z"
    assert parse_iso("2025-12-08").hour == 0
