# database.py - Async database setup
from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker


class Database:
    """Owns the async engine and session factory for one process."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo, "future": True, "pool_pre_ping": True}
        if not url.startswith("sqlite"):
            # Connection pooling for server databases
            engine_kwargs.update(pool_size=20, max_overflow=0, pool_recycle=3600)

        self.engine = create_async_engine(url, **engine_kwargs)

        if self.engine.dialect.name == "sqlite":
            # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_all(self):
        """Create tables that do not exist yet"""
        from models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self):
        from models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self):
        """Run a trivial query; raises if the database is unreachable"""
        async with self.session_maker() as session:
            await session.execute(text("SELECT 1"))

    async def dispose(self):
        """Close the connection pool"""
        await self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def get_db_session(request: Request):
    """Dependency for getting database session (FastAPI Depends)"""
    database: Database = request.app.state.database
    async with database.session_maker() as session:
        yield session
