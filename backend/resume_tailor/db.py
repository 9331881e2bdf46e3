from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from typing import AsyncGenerator
import logging

from resume_tailor.config import DATABASE_URL, SQL_ECHO, ENABLE_TELEMETRY

logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless the pragma is set per connection."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)
enable_sqlite_foreign_keys(engine)
logger.info(f"Database engine created for dialect: {engine.dialect.name}")

if ENABLE_TELEMETRY:
    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

    # Instrument the SQLAlchemy engine's synchronous part
    SQLAlchemyInstrumentor().instrument(
        engine=engine.sync_engine,
        enable_commenter=True,
        commenter_options={}
    )

async_session_maker = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# for dependency injection
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session

