"""Database session and metadata helpers."""

from .base import Base
from .session import get_engine, get_session, get_sessionmaker, init_db

__all__ = [
    "Base",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_db",
]
