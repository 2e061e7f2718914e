"""
Settings for the catalog service.

Values come from the environment, after loading an optional .env file, so the
storage backend and its connection details can change without code edits.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

SERVICE_NAME = "catalog-service"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    storage_backend: str
    table_name: str
    aws_region: str
    dynamodb_endpoint: str
    aws_access_key_id: Optional[str]
    aws_secret_access_key: Optional[str]
    log_file: str
    log_level: str
    port: int


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    load_dotenv()

    def _int(value: str, default: int) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        storage_backend=(os.getenv("STORAGE_BACKEND") or "memory").strip().lower(),
        table_name=os.getenv("DYNAMODB_TABLE", "Products"),
        aws_region=os.getenv("AWS_REGION", "us-west-2"),
        dynamodb_endpoint=os.getenv("DYNAMODB_ENDPOINT", "http://localhost:8080"),
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID") or None,
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY") or None,
        log_file=os.getenv("LOG_FILE", "logs.json"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=_int(os.getenv("PORT"), 8000),
    )
