# Database connection setup
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings
from .core.models.base import BaseModel

# Get settings
settings = get_settings()


def configure_sqlite_engine(engine: AsyncEngine) -> None:
    """Make SQLite open write transactions with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so two readers that both
    intend to write can deadlock on upgrade. Taking the reserved lock up
    front serializes writers; the driver busy timeout bounds the wait.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, echo: bool = False, lock_timeout_ms: int = 5000) -> AsyncEngine:
    """Create an async engine, applying SQLite write-lock settings when needed."""
    if database_url.startswith("sqlite"):
        new_engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": lock_timeout_ms / 1000},
        )
        configure_sqlite_engine(new_engine)
        return new_engine
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


# Create async engine using settings
engine = build_engine(
    settings.database_url,
    echo=settings.database_echo,
    lock_timeout_ms=settings.note_lock_timeout_ms,
)

# Session factory
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db_session():
    """Get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables(target_engine: AsyncEngine = None):
    """Create all tables."""
    async with (target_engine or engine).begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)
