"""Declarative base for the ORM tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for all tables.

    Timestamps are stored as naive UTC.
    """
