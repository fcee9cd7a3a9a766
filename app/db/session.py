# app/db/session.py
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool
from app.core.config import settings

db_url = settings.DATABASE_URL

# Timeouts cortos: si la DB no responde → falla rápido (5s)
engine_kwargs: dict = {"pool_pre_ping": True}

if db_url.startswith("postgresql+psycopg"):
    engine_kwargs.update(
        pool_recycle=300,
        pool_size=5,
        max_overflow=10,
        connect_args={"connect_timeout": 5},
    )
elif db_url.startswith("postgresql+asyncpg"):
    engine_kwargs.update(
        pool_recycle=300,
        pool_size=5,
        max_overflow=10,
        connect_args={
            "timeout": 5,
            "server_settings": {"client_encoding": "UTF8"},
        },
    )
elif db_url.startswith("sqlite+aiosqlite"):
    # SQLite en memoria: una sola conexión compartida (dev / tests)
    if ":memory:" in db_url or db_url.rstrip("/").endswith("sqlite+aiosqlite:"):
        engine_kwargs.update(
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

engine = create_async_engine(db_url, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """Para tareas de larga vida (canal live) que abren su propia sesión por tick."""
    return AsyncSessionLocal


def dialect_name(db: AsyncSession) -> str:
    return db.get_bind().dialect.name
