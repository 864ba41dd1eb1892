"""
Database Module

Declarative base, engine lifecycle and schema creation.
"""

from formapro.database.base import Base, ModelBase, metadata, utcnow

__all__ = ['Base', 'ModelBase', 'metadata', 'utcnow']
