import logging
from pathlib import Path

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from marchamo.config import get_settings
from marchamo.domain.db_models import Base
from marchamo.domain.qr_token import PlateTokenCodec

"""
Conexion a la BDD (engine async) e inyeccion de sesiones (get_db).
Por defecto SQLite local; en produccion basta con apuntar DATABASE_URL a Postgres
(postgresql+asyncpg://...).
"""

logger = logging.getLogger(__name__)

DATABASE_URL = get_settings().database_url
_is_sqlite = DATABASE_URL.startswith("sqlite")


def _ensure_sqlite_dir(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


if _is_sqlite:
    _ensure_sqlite_dir(DATABASE_URL)
    # aiosqlite ata cada conexion a un event loop, por eso sin pool
    engine = create_async_engine(DATABASE_URL, poolclass=NullPool)

    # Activar foreign keys (ON DELETE CASCADE) en SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def _fk_pragma(dbapi_conn, conn_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
else:
    engine = create_async_engine(
        DATABASE_URL,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_pre_ping=True,
    )

SessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine, expire_on_commit=False
)


async def init_models() -> None:
    """Crea las tablas si no existen."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("[DB] esquema listo (%s)", engine.url.render_as_string(hide_password=True))


async def get_db() -> AsyncSession:
    async with SessionLocal() as session:
        yield session


def get_token_codec(request: Request) -> PlateTokenCodec:
    return request.app.state.token_codec
