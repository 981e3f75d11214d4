"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as customers/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Uniqueness:
  users.email carries a UNIQUE constraint. Callers pre-check with
  get_by_email() to produce a friendly message, but two concurrent requests
  can both pass that check; the constraint is the real guard, and
  IntegrityError is translated to core.errors.DuplicateEmailError.

Layer rule: no imports from api/, web/, or customers/.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.db import create_db_engine
from core.errors import DuplicateEmailError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),  # UUID4, never reused
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///crudadmin.db")
        user_id = store.create_user(User(email="a@x.com", password_hash=hash_password("secret1")))
        user = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = create_db_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, search: str | None = None, limit: int | None = None, offset: int = 0) -> list[User]:
        """Return users newest first, optionally filtered by an email substring."""
        query = _users.select().order_by(_users.c.created_at.desc())
        if search:
            query = query.where(_users.c.email.contains(search, autoescape=True))
        if limit is not None:
            query = query.limit(limit).offset(offset)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self, search: str | None = None) -> int:
        query = select(func.count()).select_from(_users)
        if search:
            query = query.where(_users.c.email.contains(search, autoescape=True))
        with self.engine.connect() as conn:
            result = conn.execute(query).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> str:
        """Insert a new user and return its generated ID.

        Raises DuplicateEmailError if the email is already registered.
        """
        user_id = str(uuid.uuid4())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user_id,
                        email=user.email,
                        password_hash=user.password_hash,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(user.email) from exc
        return user_id

    def update_user(self, user_id: str, **fields) -> bool:
        """Update mutable fields (email, password_hash) on an existing user.

        Returns True if a row was updated, False if user_id was not found.
        Raises DuplicateEmailError if the new email belongs to another user.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(fields.get("email", "")) from exc
        return result.rowcount > 0

    def delete_user(self, user_id: str) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Sessions already issued for this user are not revoked; they stop
        resolving to a record but still carry the identifier until they expire.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def delete_many(self, user_ids: Iterable[str]) -> int:
        """Delete every user whose ID is in user_ids. Returns the number of rows removed."""
        ids = list(user_ids)
        if not ids:
            return 0
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id.in_(ids)))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
