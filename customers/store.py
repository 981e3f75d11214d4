"""
customers/store.py -- SQLAlchemy-backed persistence layer for customers.

Uses SQLAlchemy Core (not ORM) so the dataclass in customers/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. CustomerStore is the repository;
_row_to_customer is the mapper. Route handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CustomerStore("sqlite:///crudadmin.db")
    customer_id = store.create_customer(Customer(name="Ada", email="ada@x.com"))
    store.update_customer(customer_id, phone="555-0100")
    store.delete_many([customer_id])
    store.close()
"""

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.db import create_db_engine
from core.errors import DuplicateEmailError
from customers.models import Customer

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_customers = Table(
    "customers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(50)),
    Column("address", Text),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CustomerStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = create_db_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, customer_id: str) -> Optional[Customer]:
        """Fetch a single customer by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_customers.select().where(_customers.c.id == customer_id)).fetchone()
        return _row_to_customer(row) if row is not None else None

    def get_by_email(self, email: str, exclude_id: Optional[str] = None) -> Optional[Customer]:
        """Look up a customer by exact email.

        exclude_id skips one record, so an update can keep its own email
        without tripping the uniqueness check.
        """
        query = _customers.select().where(_customers.c.email == email)
        if exclude_id is not None:
            query = query.where(_customers.c.id != exclude_id)
        with self.engine.connect() as conn:
            row = conn.execute(query).fetchone()
        return _row_to_customer(row) if row is not None else None

    def list_customers(
        self, search: Optional[str] = None, limit: Optional[int] = None, offset: int = 0
    ) -> list[Customer]:
        """Return customers newest first, optionally filtered by a name substring."""
        query = _customers.select().order_by(_customers.c.created_at.desc())
        if search:
            query = query.where(_customers.c.name.contains(search, autoescape=True))
        if limit is not None:
            query = query.limit(limit).offset(offset)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_customer(r) for r in rows]

    def count_customers(self, search: Optional[str] = None) -> int:
        query = select(func.count()).select_from(_customers)
        if search:
            query = query.where(_customers.c.name.contains(search, autoescape=True))
        with self.engine.connect() as conn:
            result = conn.execute(query).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_customer(self, customer: Customer) -> str:
        """Insert a new customer and return its generated ID.

        Raises DuplicateEmailError if another customer already uses the email.
        """
        customer_id = str(uuid.uuid4())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _customers.insert().values(
                        id=customer_id,
                        name=customer.name,
                        email=customer.email,
                        phone=customer.phone,
                        address=customer.address,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(customer.email) from exc
        return customer_id

    def create_many(self, customers: Iterable[Customer]) -> int:
        """Bulk insert customers in one transaction. Returns the number inserted."""
        rows = [
            {
                "id": str(uuid.uuid4()),
                "name": c.name,
                "email": c.email,
                "phone": c.phone,
                "address": c.address,
                "created_at": _now_iso(),
            }
            for c in customers
        ]
        if not rows:
            return 0
        try:
            with self.engine.connect() as conn:
                conn.execute(_customers.insert(), rows)
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError("") from exc
        return len(rows)

    def update_customer(self, customer_id: str, **fields) -> bool:
        """Update any subset of name, email, phone, address.

        Returns True if a row was updated, False if customer_id was not found.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _customers.update().where(_customers.c.id == customer_id).values(**fields)
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(fields.get("email", "")) from exc
        return result.rowcount > 0

    def delete_customer(self, customer_id: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_customers.delete().where(_customers.c.id == customer_id))
            conn.commit()
        return result.rowcount > 0

    def delete_many(self, customer_ids: Iterable[str]) -> int:
        """Delete every customer whose ID is in customer_ids. Returns rows removed."""
        ids = list(customer_ids)
        if not ids:
            return 0
        with self.engine.connect() as conn:
            result = conn.execute(_customers.delete().where(_customers.c.id.in_(ids)))
            conn.commit()
        return result.rowcount

    def delete_all(self) -> int:
        """Remove every customer. Used by the clean-customers CLI command."""
        with self.engine.connect() as conn:
            result = conn.execute(_customers.delete())
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_customer(row) -> Customer:
    return Customer(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        address=row.address,
        created_at=row.created_at,
    )
