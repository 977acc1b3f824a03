"""
Infrastructure adapters: database and Redis.
"""

from envoice.infrastructure.database import Base, Database, build_engine
from envoice.infrastructure.redis_client import RedisClient

__all__ = ["Base", "Database", "build_engine", "RedisClient"]
