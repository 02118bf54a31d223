from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def normalize_url(url: str) -> str:
    """Point bare postgres URLs (as issued by most hosts) at the asyncpg driver."""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def make_engine(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    return create_async_engine(normalize_url(url), echo=echo, **kwargs)


def make_session_factory(engine: AsyncEngine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
