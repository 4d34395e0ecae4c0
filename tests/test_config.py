"""Tests for configuration loading and saving."""
from __future__ import annotations

import json
from unittest.mock import patch

from phrase_trainer.config import CONTENT_URL_ENV, Settings, load_settings, save_settings


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.session_size == 20
        assert s.due_after_hours == 12.0
        assert s.fetch_timeout_seconds == 15.0

    def test_to_dict(self):
        d = Settings().to_dict()
        assert len(d) == 10  # all fields present
        assert d["user_id"] == "local"

    def test_session_size_clamped(self):
        assert Settings(session_size=50).effective_session_size == 20
        assert Settings(session_size=5).effective_session_size == 5

    def test_probe_url_falls_back_to_content_url(self):
        assert Settings(content_url="https://x/csv").probe_url == "https://x/csv"
        s = Settings(content_url="https://x/csv", reachability_url="https://ping")
        assert s.probe_url == "https://ping"


class TestLoadSaveSettings:
    def test_load_from_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONTENT_URL_ENV, raising=False)
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"content_url": "https://x/csv", "session_size": 10}))

        with patch("phrase_trainer.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.content_url == "https://x/csv"
        assert s.session_size == 10
        assert s.db_path == "progress.db"

    def test_load_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONTENT_URL_ENV, raising=False)
        with patch("phrase_trainer.config.CONFIG_PATH", tmp_path / "nonexistent.json"):
            s = load_settings()
        assert s.content_url == ""

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONTENT_URL_ENV, "https://env/csv")
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"content_url": "https://file/csv"}))
        with patch("phrase_trainer.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.content_url == "https://env/csv"

    def test_unknown_keys_ignored(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONTENT_URL_ENV, raising=False)
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"user_id": "ada", "unknown_key": 1}))
        with patch("phrase_trainer.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.user_id == "ada"
        assert not hasattr(s, "unknown_key")

    def test_save_creates_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        with patch("phrase_trainer.config.CONFIG_PATH", config_path):
            save_settings(Settings(user_id="ada"))
        assert json.loads(config_path.read_text())["user_id"] == "ada"
