"""
forms/store.py -- SQLAlchemy Core persistence layer for business forms.

Pattern: Repository + Data Mapper, same as auth/store.py. FormStore is the
repository; _row_to_form is the mapper.

business_name is UNIQUE. create() pre-checks for a friendly error and maps an
IntegrityError from a concurrent insert to the same DuplicateError.

Incomes are stored as decimal strings: SQLite has no native DECIMAL type and
string storage keeps the exact value on every backend.

Usage:
    store = FormStore("sqlite:///formdesk.db")
    saved = store.create(BusinessForm(owner_id=claims.user_id, ...))
    latest = store.latest_for_owner(claims.user_id)
    store.close()
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Index, MetaData, String, Table, Text, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.db import make_engine
from core.errors import DuplicateError
from forms.models import BusinessForm

logger = logging.getLogger("formdesk.forms")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_forms = Table(
    "business_forms",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("owner_id", String(32), nullable=False),
    Column("business_name", String(255), nullable=False, unique=True),
    Column("period", String(100), nullable=False),
    Column("expected_income", String(32), nullable=False),
    Column("actual_income", String(32), nullable=False),
    Column("reason", Text, nullable=False),
    Column("category", String(100), nullable=False),
    Column("created_at", String(32), nullable=False),
    Index("ix_business_forms_owner_created", "owner_id", "created_at"),
)

_DUPLICATE_MESSAGE = "Business with this name already exists."


class FormStore:
    """Repository for BusinessForm entities."""

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def create(self, form: BusinessForm) -> BusinessForm:
        """Insert form and return a copy with id and created_at filled in.

        Raises DuplicateError if business_name is already taken.
        """
        if self.get_by_business_name(form.business_name) is not None:
            raise DuplicateError(_DUPLICATE_MESSAGE)

        saved = replace(form, id=uuid.uuid4().hex, created_at=datetime.now(timezone.utc))
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _forms.insert().values(
                        id=saved.id,
                        owner_id=saved.owner_id,
                        business_name=saved.business_name,
                        period=saved.period,
                        expected_income=str(saved.expected_income),
                        actual_income=str(saved.actual_income),
                        reason=saved.reason,
                        category=saved.category,
                        created_at=saved.created_at.isoformat(timespec="microseconds"),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateError(_DUPLICATE_MESSAGE) from exc
        logger.info("Stored business form %s for owner %s", saved.id, saved.owner_id)
        return saved

    def get_by_business_name(self, business_name: str) -> Optional[BusinessForm]:
        with self.engine.connect() as conn:
            row = conn.execute(select(_forms).where(_forms.c.business_name == business_name)).fetchone()
        return _row_to_form(row) if row is not None else None

    def latest_for_owner(self, owner_id: str) -> Optional[BusinessForm]:
        """Return the owner's most recently submitted form, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_forms).where(_forms.c.owner_id == owner_id).order_by(_forms.c.created_at.desc()).limit(1)
            ).fetchone()
        return _row_to_form(row) if row is not None else None

    def list_for_owner(self, owner_id: str) -> list[BusinessForm]:
        """Return all of the owner's forms, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(_forms).where(_forms.c.owner_id == owner_id).order_by(_forms.c.created_at.desc())
            ).fetchall()
        return [_row_to_form(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


def _row_to_form(row) -> BusinessForm:
    return BusinessForm(
        id=row.id,
        owner_id=row.owner_id,
        business_name=row.business_name,
        period=row.period,
        expected_income=Decimal(row.expected_income),
        actual_income=Decimal(row.actual_income),
        reason=row.reason,
        category=row.category,
        created_at=datetime.fromisoformat(row.created_at),
    )
