from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

CONTENT_URL_ENV = "PHRASE_TRAINER_CONTENT_URL"

# Sessions never hold more cards than this, whatever the config says.
MAX_SESSION_SIZE = 20

DEFAULTS = {
    "content_url": "",
    "fetch_timeout_seconds": 15.0,
    "reachability_url": "",
    "reachability_timeout_seconds": 3.0,
    "session_size": MAX_SESSION_SIZE,
    "due_after_hours": 12.0,
    "db_path": "progress.db",
    "audio_cache_dir": "audio_cache",
    "audio_cache_max_bytes": 200 * 1024 * 1024,
    "user_id": "local",
}


@dataclass
class Settings:
    content_url: str = DEFAULTS["content_url"]
    fetch_timeout_seconds: float = DEFAULTS["fetch_timeout_seconds"]
    reachability_url: str = DEFAULTS["reachability_url"]
    reachability_timeout_seconds: float = DEFAULTS["reachability_timeout_seconds"]
    session_size: int = DEFAULTS["session_size"]
    due_after_hours: float = DEFAULTS["due_after_hours"]
    db_path: str = DEFAULTS["db_path"]
    audio_cache_dir: str = DEFAULTS["audio_cache_dir"]
    audio_cache_max_bytes: int = DEFAULTS["audio_cache_max_bytes"]
    user_id: str = DEFAULTS["user_id"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    @property
    def audio_cache_full_path(self) -> Path:
        return self.project_root / self.audio_cache_dir

    @property
    def effective_session_size(self) -> int:
        return max(1, min(MAX_SESSION_SIZE, self.session_size))

    @property
    def probe_url(self) -> str:
        return self.reachability_url or self.content_url

    def to_dict(self) -> dict:
        return {
            "content_url": self.content_url,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "reachability_url": self.reachability_url,
            "reachability_timeout_seconds": self.reachability_timeout_seconds,
            "session_size": self.session_size,
            "due_after_hours": self.due_after_hours,
            "db_path": self.db_path,
            "audio_cache_dir": self.audio_cache_dir,
            "audio_cache_max_bytes": self.audio_cache_max_bytes,
            "user_id": self.user_id,
        }


def load_settings() -> Settings:
    raw: dict = {}
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    filtered = {k: v for k, v in raw.items() if k in known}
    env_url = os.environ.get(CONTENT_URL_ENV)
    if env_url:
        filtered["content_url"] = env_url
    return Settings(**filtered)


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
