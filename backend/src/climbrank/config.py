from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

STORE_BACKENDS = ("inmemory", "dynamodb")


def _load_dotenv(repo_root: Path) -> None:
    env_path = repo_root / "config" / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)


def _parse_origins(raw: str | None) -> tuple[str, ...]:
    if not raw or not raw.strip():
        return ("*",)
    return tuple(o.strip() for o in raw.split(",") if o.strip()) or ("*",)


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "inmemory"
    ddb_table_name: str = ""
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = ("*",)
    timezone: str = "Asia/Tokyo"

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def load(cls, repo_root: Path | None = None) -> "Settings":
        """環境変数(と config/.env があればその内容)から読み込む。不正値は起動時に落とす。"""

        if repo_root is not None:
            _load_dotenv(repo_root)
        env = os.environ

        store_backend = (env.get("STORE_BACKEND") or "inmemory").strip().lower()
        if store_backend not in STORE_BACKENDS:
            raise RuntimeError(f"Invalid STORE_BACKEND: {store_backend!r}")

        ddb_table_name = (env.get("DDB_TABLE_NAME") or "").strip()
        if store_backend == "dynamodb" and not ddb_table_name:
            raise RuntimeError("DDB_TABLE_NAME is required for dynamodb store")

        log_level = (env.get("LOG_LEVEL") or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise RuntimeError(f"Invalid LOG_LEVEL: {log_level!r}")

        timezone = (env.get("TIMEZONE") or "Asia/Tokyo").strip() or "Asia/Tokyo"
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise RuntimeError(f"Invalid TIMEZONE: {timezone!r}") from e

        return cls(
            store_backend=store_backend,
            ddb_table_name=ddb_table_name,
            log_level=log_level,
            cors_origins=_parse_origins(env.get("CORS_ORIGINS")),
            timezone=timezone,
        )


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    for name in ("boto3", "botocore", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)
