from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent

# Fixed band line-up; availability for "all" members is read for exactly these names.
BAND_MEMBERS: tuple[str, ...] = ("Lead Guitar", "Bass", "Drums", "Keys", "Saxophone", "Vocals")

STORAGE_BACKENDS = ("flatfile", "relational")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Persistence
    storage_backend: str
    data_file: Path
    database_url: str
    backend_timeout_seconds: float

    # Serving
    host: str
    port: int
    public_dir: Path

    # Logging
    log_level: str


def get_settings() -> Settings:
    storage_backend = os.getenv("STORAGE_BACKEND", "flatfile").strip().lower()
    if storage_backend not in STORAGE_BACKENDS:
        raise ValueError(f"STORAGE_BACKEND must be one of {STORAGE_BACKENDS}, got {storage_backend!r}")

    data_file = Path(os.getenv("DATA_FILE", str(PROJECT_ROOT / "data.json")))

    # SQLite keeps the relational variant usable without a database server.
    default_db = PROJECT_ROOT / "data" / "store.db"
    database_url = os.getenv("DATABASE_URL", f"sqlite:///{default_db}")

    return Settings(
        storage_backend=storage_backend,
        data_file=data_file,
        database_url=database_url,
        backend_timeout_seconds=_env_float("BACKEND_TIMEOUT_SECONDS", 5.0),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3000),
        public_dir=Path(os.getenv("PUBLIC_DIR", str(PROJECT_ROOT / "public"))),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
