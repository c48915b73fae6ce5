"""
Database Connection and Utilities

Manages the relational store shared by the booking and user services.
"""

from shared.database.sql import Base, Database, get_db

__all__ = [
    "Base",
    "Database",
    "get_db",
]
