from __future__ import annotations

import hashlib
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import httpx

from master_lookup.errors import DatasetUnavailableError
from master_lookup.settings import Settings

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str], None]

PROVENANCE_CACHE = "cache"
PROVENANCE_NETWORK = "network"


@dataclass(frozen=True)
class DatasetSnapshot:
    text: str
    provenance: str


class ResponseCache:
    """Small file-backed cache: one file per key under ``root``.

    Entries are stored as raw UTF-8 bytes so line endings survive unchanged.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(str(key).encode("utf-8")).hexdigest()
        return self.root / f"{digest}.txt"

    def match(self, key: str) -> str | None:
        p = self._path(key)
        if not p.exists():
            return None
        return p.read_bytes().decode("utf-8")

    def put(self, key: str, text: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        p = self._path(key)
        tmp = p.with_suffix(".tmp")
        tmp.write_bytes(text.encode("utf-8"))
        tmp.replace(p)

    def delete(self) -> bool:
        if not self.root.exists():
            return False
        shutil.rmtree(self.root)
        return True


class DatasetFetcher:
    """Cache-first retrieval of master.csv.

    Once a copy is cached it is returned as-is; the network is only consulted
    when the cache is empty, and a fresh copy only arrives after
    :meth:`purge_cache`.
    """

    def __init__(
        self,
        cache: ResponseCache,
        url: str,
        *,
        cache_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        self.cache = cache
        self.url = url
        self.cache_key = cache_key or url
        self.timeout = float(timeout)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, *, client: httpx.Client | None = None) -> "DatasetFetcher":
        return cls(
            ResponseCache(settings.cache_dir),
            settings.dataset_url,
            cache_key=settings.DATASET_PATH,
            timeout=settings.DATASET_FETCH_TIMEOUT_SECONDS,
            client=client,
        )

    def _read_cache(self) -> str | None:
        try:
            return self.cache.match(self.cache_key)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read cached %s: %s", self.cache_key, e)
            return None

    def _download(self) -> str:
        # Ask intermediaries for a fresh copy.
        headers = {"Cache-Control": "no-cache", "Pragma": "no-cache"}
        try:
            if self._client is not None:
                resp = self._client.get(self.url, headers=headers, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                    resp = client.get(self.url, headers=headers)
        except httpx.HTTPError as e:
            raise DatasetUnavailableError(f"Could not download {self.url}: {e}") from e

        if not resp.is_success:
            raise DatasetUnavailableError(f"HTTP {resp.status_code}")
        return resp.content.decode("utf-8-sig", errors="replace")

    def fetch_dataset(self, on_progress: ProgressFn | None = None) -> DatasetSnapshot:
        notify = on_progress or (lambda _msg: None)

        notify("Looking for master.csv in the cache...")
        cached = self._read_cache()
        if cached is not None:
            notify("Loading master.csv from the cache...")
            logger.info("Dataset loaded from cache (%s)", self.cache_key)
            return DatasetSnapshot(text=cached, provenance=PROVENANCE_CACHE)

        notify("Downloading master.csv from the server...")
        text = self._download()

        try:
            self.cache.put(self.cache_key, text)
        except OSError as e:
            logger.warning("Could not cache %s: %s", self.cache_key, e)

        logger.info("Dataset downloaded from %s (%s chars)", self.url, len(text))
        return DatasetSnapshot(text=text, provenance=PROVENANCE_NETWORK)

    def purge_cache(self) -> bool:
        removed = self.cache.delete()
        if removed:
            logger.info("Dataset cache removed: %s", self.cache.root)
        return removed
