"""Database utilities for the recommendation engine."""

from .session import Database, build_engine

__all__ = ["Database", "build_engine"]
