"""
Database session helpers.
"""

from formapro.common.db.session import session_factory, transaction

__all__ = [
    'session_factory',
    'transaction',
]
