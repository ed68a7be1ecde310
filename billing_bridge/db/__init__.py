"""Database package"""

from billing_bridge.db.session import AsyncSessionLocal, engine, get_db
from billing_bridge.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
