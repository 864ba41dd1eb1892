"""
SQLAlchemy Base Configuration

Declarative base shared by every table of the platform, with a constraint
naming convention so generated constraint names stay stable.
"""

import datetime
from typing import Any, Dict
from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata = MetaData(naming_convention=convention)

Base = declarative_base(metadata=metadata)


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class ModelBase(Base):
    """Base class for all SQLAlchemy models."""

    __abstract__ = True

    # Columns never returned by to_dict()
    __private_columns__ = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert model instance to dictionary."""
        return {
            column.name: getattr(self, column.key)
            for column in self.__table__.columns
            if column.name not in self.__private_columns__
        }
