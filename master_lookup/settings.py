from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_DEFAULT_DATABASE_URL = f"sqlite:///{(Path('instance') / 'lookup.sqlite').as_posix()}"


@dataclass(frozen=True)
class Settings:
    # App
    APP_NAME: str = os.environ.get("APP_NAME", "Master Lookup")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # Storage
    INSTANCE_DIR: Path = Path(os.environ.get("INSTANCE_DIR", "instance")).resolve()
    DATABASE_URL: str = os.environ.get("DATABASE_URL", _DEFAULT_DATABASE_URL)

    # Dataset source. DATASET_PATH is also the key of the cached copy.
    DATASET_BASE_URL: str = os.environ.get("DATASET_BASE_URL", "http://127.0.0.1:8000/")
    DATASET_PATH: str = os.environ.get("DATASET_PATH", "./master.csv")
    DATASET_FETCH_TIMEOUT_SECONDS: float = float(os.environ.get("DATASET_FETCH_TIMEOUT_SECONDS", "30"))

    # Local response cache (a directory under INSTANCE_DIR)
    CACHE_NAME: str = os.environ.get("CACHE_NAME", "master-cache")

    def __post_init__(self) -> None:
        db_url_set = (
            os.environ.get("DATABASE_URL") is not None or self.DATABASE_URL != _DEFAULT_DATABASE_URL
        )

        object.__setattr__(self, "INSTANCE_DIR", Path(self.INSTANCE_DIR).resolve())

        # Without an explicit DATABASE_URL the DB always lives inside INSTANCE_DIR.
        if not db_url_set:
            abs_db = (self.INSTANCE_DIR / "lookup.sqlite").resolve()
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_db.as_posix()}")
            return

        db = str(self.DATABASE_URL or "").strip()
        if not db:
            abs_db = (self.INSTANCE_DIR / "lookup.sqlite").resolve()
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_db.as_posix()}")
            return

        # Relative SQLite paths are resolved against the project root, not the cwd.
        if db.startswith("sqlite:///") and not db.startswith("sqlite:////"):
            path_part = db[len("sqlite:///") :]
            if "?" in path_part:
                path_part = path_part.split("?", 1)[0]
            if path_part in ("", ":memory:"):
                return

            p = Path(path_part)
            if not p.is_absolute():
                project_root = Path(__file__).resolve().parents[1]
                abs_path = (project_root / p).resolve()
                object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_path.as_posix()}")

    @property
    def cache_dir(self) -> Path:
        return self.INSTANCE_DIR / str(self.CACHE_NAME)

    @property
    def dataset_url(self) -> str:
        base = str(self.DATASET_BASE_URL or "").strip()
        path = str(self.DATASET_PATH or "").strip()
        if not base:
            return path
        if not base.endswith("/"):
            base += "/"
        if path.startswith("./"):
            path = path[2:]
        return base + path.lstrip("/")

    def ensure_instance(self) -> None:
        self.INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
