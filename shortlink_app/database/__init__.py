"""
Database wiring for the durable URL store.
"""

from .connection import Base, SessionLocal, engine, get_db

__all__ = ["Base", "SessionLocal", "engine", "get_db"]
