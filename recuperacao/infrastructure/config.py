# recuperacao/infrastructure/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Configuracao imutavel lida do ambiente.

    Invariantes:
      - submit_max_tentativas >= 1 e submit_atraso_base >= 0.
      - upload_timeout em segundos; estouro aborta o upload.
    """

    duckdb_path: str
    storage_url: str
    storage_bucket: str
    storage_api_key: str
    upload_timeout: float
    submit_max_tentativas: int
    submit_atraso_base: float
    service_types_cache_ttl: float
    debug: bool


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    max_tentativas = int(os.environ.get("SUBMIT_MAX_TENTATIVAS", "15"))
    if max_tentativas < 1:
        raise ValueError("SUBMIT_MAX_TENTATIVAS deve ser >= 1")
    return Settings(
        duckdb_path=os.environ.get("DUCKDB_PATH", ":memory:"),
        storage_url=os.environ.get("STORAGE_URL", "http://localhost:54321").rstrip("/"),
        storage_bucket=os.environ.get("STORAGE_BUCKET", "sector_photos"),
        storage_api_key=os.environ.get("STORAGE_API_KEY", ""),
        upload_timeout=float(os.environ.get("UPLOAD_TIMEOUT", "30")),
        submit_max_tentativas=max_tentativas,
        submit_atraso_base=float(os.environ.get("SUBMIT_ATRASO_BASE", "0.5")),
        service_types_cache_ttl=float(os.environ.get("SERVICE_TYPES_CACHE_TTL", "600")),
        debug=os.environ.get("API_DEBUG", "false").lower() == "true",
    )
