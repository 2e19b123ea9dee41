"""
Database module - PostgreSQL access layer.

This module handles:
- Connection pool and transaction management
- Table metadata mirroring the SQL migrations
- Migration runner and seed loader
"""
from crm.database.connection import DatabaseConnection, get_database, close_database
from crm.database.tables import metadata

__all__ = [
    "DatabaseConnection",
    "get_database",
    "close_database",
    "metadata",
]
