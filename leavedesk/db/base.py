"""Declarative base shared by all ORM models."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Models annotate plain ``Column`` attributes rather than ``Mapped[...]``.
    __allow_unmapped__ = True
