"""
ChaloStore — データベース

商品 (products) と注文 (orders) の 2 テーブルだけを持つ。
開発時は SQLite (aiosqlite)、本番は DATABASE_URL で切り替える。
"""

from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

# PostgreSQL は自動採番に SERIAL、日時はタイムゾーン付きで持つ
_COLUMN_TYPES = {
    "postgresql": {
        "id": "SERIAL PRIMARY KEY",
        "timestamp": "TIMESTAMP WITH TIME ZONE",
    },
}
_DEFAULT_COLUMN_TYPES = {
    "id": "INTEGER PRIMARY KEY",
    "timestamp": "TIMESTAMP",
}


def _schema(dialect: str) -> list[str]:
    types = _COLUMN_TYPES.get(dialect, _DEFAULT_COLUMN_TYPES)
    return [
        f"""
            CREATE TABLE IF NOT EXISTS products (
                id {types['id']},
                sku VARCHAR(64) NOT NULL UNIQUE,
                name VARCHAR(100) NOT NULL,
                stock INTEGER NOT NULL DEFAULT 0,
                price NUMERIC(12, 2) NOT NULL DEFAULT 0,
                updated_at {types['timestamp']}
            )
        """,
        f"""
            CREATE TABLE IF NOT EXISTS orders (
                id {types['id']},
                product_id INTEGER NOT NULL REFERENCES products (id),
                customer_email VARCHAR(320) NOT NULL,
                created_at {types['timestamp']} NOT NULL
            )
        """,
    ]


def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=False)


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """テーブルがなければ作成する。"""
    async with engine.begin() as conn:
        for statement in _schema(engine.dialect.name):
            await conn.execute(text(statement))


def as_datetime(value) -> datetime | None:
    """
    DB から読んだ日時を tz 付き datetime に揃える。

    SQLite は文字列で返し、タイムゾーンも落ちるので UTC として扱う。
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
