"""SQLAlchemy ORM models for the shortlink service.

This module defines the database schema for short links. A link row is written
once and never updated or deleted by the service.

Data Model Layout
=================
::
    short_links table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ original_url (TEXT NOT NULL, not unique)
    ├─ slug (VARCHAR(255) UNIQUE, INDEXED)
    ├─ created_at (TIMESTAMPTZ, DEFAULT NOW())
    └─ updated_at (TIMESTAMPTZ, DEFAULT NOW(), ON UPDATE)

How to Use
===========
**Step 1 — Import**::
    from shortlink.models import Link

**Step 2 — Validate and store**::
    link = Link(original_url="https://example.com", slug="a00000")
    if link.validate():
        db.add(link)
        await db.commit()

**Step 3 — Build the public URL**::
    link.full_short_url("https://sho.rt")  # "https://sho.rt/a00000"

Key Behaviours
===============
- slug carries the only uniqueness constraint; two rows may share an
  original_url when creations race.
- A caller-chosen slug must be 3-20 ASCII letters or digits; allocated slugs
  are assigned after validation and are not checked.
- errors is an in-memory list of human-readable failures; it is never stored.
- persisted is True only once the row has been flushed to the database.

Classes:
    Link:  A shortened URL mapping.

Functions:
    full_short_url():  Join a base URL and a link's slug.
"""

import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text, func, inspect
from sqlalchemy.orm import Mapped, mapped_column, reconstructor

from shortlink.database import Base

__all__ = ["BLANK_URL_MESSAGE", "SLUG_TAKEN_MESSAGE", "Link", "full_short_url", "slug_error"]

BLANK_URL_MESSAGE = "Original url cannot be blank"
SLUG_TAKEN_MESSAGE = "Slug has already been taken"
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 20


def slug_error(slug: str) -> Optional[str]:
    """Return why a requested slug is unusable, or None when it is fine."""
    if len(slug) < SLUG_MIN_LENGTH or len(slug) > SLUG_MAX_LENGTH:
        return f"Slug must be between {SLUG_MIN_LENGTH} and {SLUG_MAX_LENGTH} characters"
    if not (slug.isascii() and slug.isalnum()):
        return "Slug must be alphanumeric"
    return None


class Link(Base):
    __tablename__ = "short_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.errors: list[str] = []

    @reconstructor
    def _init_on_load(self) -> None:
        self.errors = []

    @property
    def persisted(self) -> bool:
        return inspect(self).persistent

    def validate(self) -> bool:
        """Reset and collect validation errors; True when the link may be stored."""
        self.errors = []
        if not (self.original_url or "").strip():
            self.errors.append(BLANK_URL_MESSAGE)
        if self.slug is not None:
            error = slug_error(self.slug)
            if error:
                self.errors.append(error)
        return not self.errors

    def full_short_url(self, base: str) -> str:
        return f"{base}/{self.slug}"

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, slug='{self.slug}')>"


def full_short_url(link: Link, base: str) -> str:
    return link.full_short_url(base)
