"""
Database engine construction for the primary (Postgres + pgvector) store.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine


def create_db_engine(database_url: str) -> Engine:
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable is not set")
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        pool_recycle=60 * 30,
    )
