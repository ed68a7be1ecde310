"""
Data Access Object package.

WHY: Separates database operations from the billing services.
"""

from billing_bridge.dao.base import RecordStore

__all__ = ["RecordStore"]
