"""Content-addressed local cache for remote audio files."""
from __future__ import annotations

import hashlib
import logging
import re
import shutil
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import httpx

if TYPE_CHECKING:
    from phrase_trainer.db import Database

DEFAULT_EXTENSION = ".mp3"

log = logging.getLogger("phrase_trainer.audio")


def ref_hash(remote_ref: str) -> str:
    return hashlib.sha256(remote_ref.encode()).hexdigest()


def infer_extension(remote_ref: str) -> str:
    suffix = Path(urlparse(remote_ref).path).suffix
    if re.fullmatch(r"\.[A-Za-z0-9]+", suffix):
        return suffix.lower()
    return DEFAULT_EXTENSION


class AssetCache:
    """Maps a remote reference to a local file, downloading on first use.

    When a download fails the remote reference itself is returned, so
    callers must accept either a local path or a URL. With ``max_bytes``
    set, least recently used files are evicted after each download.
    """

    def __init__(
        self,
        db: Database,
        cache_dir: Path,
        max_bytes: int = 0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.db = db
        self.cache_dir = cache_dir
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.transport = transport

    def local_path_for(self, remote_ref: str) -> Path:
        return self.cache_dir / f"{ref_hash(remote_ref)}{infer_extension(remote_ref)}"

    async def get(self, remote_ref: str) -> str:
        if not remote_ref:
            raise ValueError("Remote reference is empty")
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        h = ref_hash(remote_ref)

        cached_path = self.db.get_audio_cache(h)
        if cached_path and Path(cached_path).exists():
            self.db.touch_audio_cache(h)
            return cached_path

        output_path = self.local_path_for(remote_ref)
        try:
            size = await self._download(remote_ref, output_path)
        except (httpx.HTTPError, OSError) as e:
            log.warning("Failed to cache %s, falling back to remote: %s", remote_ref, e)
            return remote_ref

        self.db.set_audio_cache(h, remote_ref, str(output_path), size)
        self._evict(keep=h)
        return str(output_path)

    async def _download(self, remote_ref: str, output_path: Path) -> int:
        tmp_path = output_path.with_suffix(output_path.suffix + ".part")
        size = 0
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport, follow_redirects=True
            ) as client:
                async with client.stream("GET", remote_ref) as resp:
                    resp.raise_for_status()
                    with open(tmp_path, "wb") as f:
                        async for chunk in resp.aiter_bytes():
                            f.write(chunk)
                            size += len(chunk)
            tmp_path.replace(output_path)
        finally:
            tmp_path.unlink(missing_ok=True)
        return size

    def _evict(self, keep: str) -> None:
        if self.max_bytes <= 0:
            return
        total = self.db.get_audio_cache_size()
        for entry in self.db.get_audio_cache_entries():
            if total <= self.max_bytes:
                break
            if entry["ref_hash"] == keep:
                continue
            Path(entry["file_path"]).unlink(missing_ok=True)
            self.db.delete_audio_cache(entry["ref_hash"])
            total -= entry["size_bytes"]
            log.info("Evicted %s (%d bytes)", entry["remote_ref"], entry["size_bytes"])

    def clear(self) -> None:
        shutil.rmtree(self.cache_dir, ignore_errors=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.db.clear_audio_cache()
