"""
ChaloStore — 設定

環境変数から設定を読み込む。外部サービスの URL が未設定の場合は
ローカル用の実装（常に承認する決済、ログ出力のみの通知）が使われる。
"""

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./chalostore.db"

_FALSY = {"0", "false", "no", "off"}


class Settings(BaseModel):
    database_url: str = DEFAULT_DATABASE_URL
    redis_url: str | None = None
    payment_service_url: str | None = None
    notification_service_url: str | None = None
    http_timeout: float = 30.0
    log_level: str = "INFO"
    seed_catalog: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("DATABASE_URL", DEFAULT_DATABASE_URL),
            redis_url=env.get("REDIS_URL") or None,
            payment_service_url=env.get("PAYMENT_SERVICE_URL") or None,
            notification_service_url=env.get("NOTIFICATION_SERVICE_URL") or None,
            http_timeout=float(env.get("HTTP_TIMEOUT", "30.0")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            seed_catalog=env.get("SEED_CATALOG", "true").lower() not in _FALSY,
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
