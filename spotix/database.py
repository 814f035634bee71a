from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base

from spotix.config import DATABASE_URL

# ============================================================
#                      DATABASE CONFIG
# ============================================================
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True
)

async_session = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)

Base = declarative_base()


# ============================================================
#             SQLITE WRITE LOCKING (DEV / TESTS)
# ============================================================
if engine.dialect.name == "sqlite":

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # let the "begin" hook below emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        # take the write lock up front so concurrent settlements serialize
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# ============================================================
#                   INIT DB (STARTUP)
# ============================================================
async def init_db():
    """
    Create tables if they don't exist
    """
    from spotix import models  # noqa: F401  lazy import avoids circular errors

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
