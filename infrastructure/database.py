"""
数据库引擎与会话工厂

支持 PostgreSQL（asyncpg）与 SQLite（aiosqlite，开发/测试）。
"""
from typing import Any, Dict

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.config import DatabaseSettings, settings
from infrastructure.models import Base


_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def _build_async_url(database_url: str) -> URL:
    """确保数据库URL使用异步驱动"""
    url = make_url(database_url)
    if "+" in url.drivername:
        return url
    if url.drivername not in _ASYNC_DRIVERS:
        raise ValueError(f"不支持的数据库驱动: {url.drivername}. 请使用 async 驱动或更新 DATABASE__URL")
    return url.set(drivername=_ASYNC_DRIVERS[url.drivername])


def _engine_options(url: URL, db: DatabaseSettings) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": db.echo}
    if url.get_backend_name() == "sqlite":
        # 内存库只存在于单个连接上
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        return options
    options.update(
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_pre_ping=True,
    )
    return options


def create_engine_from_settings(db: DatabaseSettings) -> AsyncEngine:
    url = _build_async_url(db.url)
    return create_async_engine(url, **_engine_options(url, db))


engine = create_engine_from_settings(settings.database)

# expire_on_commit=False：提交后仓储返回的实体仍可读取
AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_tables() -> None:
    """按 ORM 模型建表（仅开发环境使用，生产环境由运维执行建表脚本）"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()
