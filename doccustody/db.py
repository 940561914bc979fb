from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from doccustody.config import settings


class Base(DeclarativeBase):
    pass


def get_engine():
    if settings.database_url.startswith("sqlite"):
        # SQLite has no statement_timeout; the busy timeout bounds lock waits.
        return create_engine(
            settings.database_url,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.db_statement_timeout_ms / 1000,
            },
        )
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        connect_args={
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}"
        },
    )


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
