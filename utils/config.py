from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from models.partition import DEFAULT_PARTITIONS, PartitionQuery


PROJECT_ROOT = Path(__file__).resolve().parent.parent


@dataclass(slots=True)
class AccountConfig:
    address: str
    token_file: Path


@dataclass(slots=True)
class AppConfig:
    client_id: Optional[str]
    client_secret: Optional[str]
    redirect_uri: Optional[str]
    frontend_url: str
    host: str
    port: int
    log_dir: Path
    log_level: str
    max_results_per_partition: int
    result_limit: int
    detail_concurrency: int
    cache_ttl_seconds: float
    poll_interval_minutes: int
    partitions: Tuple[PartitionQuery, ...] = DEFAULT_PARTITIONS
    accounts: List[AccountConfig] = field(default_factory=list)
    accounts_file: Optional[Path] = None

    @property
    def oauth_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)


def _project_path(value: str) -> Path:
    candidate = Path(value)
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    return candidate


def _resolve_path(value: str | None, fallback: str) -> Path:
    return _project_path(value or fallback)


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


def load_partitions(path: Path) -> Tuple[PartitionQuery, ...]:
    if not path.exists():
        return DEFAULT_PARTITIONS
    data = json.loads(path.read_text(encoding="utf-8"))
    partitions = tuple(
        PartitionQuery(tag=item["tag"], selector=item["selector"])
        for item in data.get("partitions", [])
    )
    if not partitions:
        raise ValueError(f"No partitions defined in {path}")
    return partitions


def load_accounts(path: Path) -> List[AccountConfig]:
    if not path.exists():
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    accounts: List[AccountConfig] = []
    for item in data.get("accounts", []):
        address = item.get("address")
        token_file = item.get("token_file")
        if not address or not token_file:
            continue
        accounts.append(AccountConfig(address=address, token_file=_project_path(token_file)))
    return accounts


def load_config(env_file: str | os.PathLike[str] | None = None) -> AppConfig:
    """Load configuration values from a .env file and environment variables."""

    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    log_dir = _resolve_path(os.getenv("LOG_DIR"), "logs")
    accounts_file = _resolve_path(os.getenv("GMAIL_ACCOUNTS_FILE"), "accounts.json")
    partitions_file = _resolve_path(os.getenv("PARTITIONS_FILE"), "partitions.json")

    return AppConfig(
        client_id=os.getenv("GOOGLE_CLIENT_ID"),
        client_secret=os.getenv("GOOGLE_CLIENT_SECRET"),
        redirect_uri=os.getenv("GOOGLE_REDIRECT_URI"),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3001"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int_env("PORT", 3000, minimum=1),
        log_dir=log_dir,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        max_results_per_partition=_int_env("MAX_RESULTS_PER_PARTITION", 30, minimum=1),
        result_limit=_int_env("RESULT_LIMIT", 100),
        detail_concurrency=_int_env("DETAIL_CONCURRENCY", 10, minimum=1),
        cache_ttl_seconds=_float_env("CACHE_TTL_SECONDS", 0.0),
        poll_interval_minutes=_int_env("POLL_INTERVAL_MINUTES", 5, minimum=1),
        partitions=load_partitions(partitions_file),
        accounts=load_accounts(accounts_file),
        accounts_file=accounts_file,
    )
