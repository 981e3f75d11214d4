"""
auth/credentials.py -- Registration and password authentication.

Security design decisions:
  [C1] authenticate() always runs bcrypt, whether or not the email exists.
       Unknown emails are checked against _DUMMY_HASH so response time does
       not reveal which accounts exist. Callers get None for both "no such
       user" and "wrong password" and must show one generic message.

  register() pre-checks the email for a friendly error, then relies on the
  store's UNIQUE constraint (DuplicateEmailError) for the race where two
  requests register the same address concurrently.

Layer rule: no imports from api/, web/, or customers/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from auth.models import User
from auth.passwords import hash_password, verify_password
from core.errors import DuplicateEmailError

if TYPE_CHECKING:
    from auth.store import UserStore

logger = logging.getLogger("crudadmin.auth")

DUPLICATE_EMAIL_MESSAGE = "User already exists with that email"

# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. [C1]
_DUMMY_HASH: str = hash_password("crudadmin_timing_dummy")


@dataclass
class RegisterResult:
    """Outcome of register(): exactly one of user / error is set."""

    user: User | None = None
    error: str | None = None


def register(store: UserStore, email: str, password: str) -> RegisterResult:
    """Create a new account. Fails with DUPLICATE_EMAIL_MESSAGE if the email is taken.

    A failed registration never touches the existing record.
    """
    if store.get_by_email(email) is not None:
        return RegisterResult(error=DUPLICATE_EMAIL_MESSAGE)

    try:
        user_id = store.create_user(User(email=email, password_hash=hash_password(password)))
    except DuplicateEmailError:
        return RegisterResult(error=DUPLICATE_EMAIL_MESSAGE)

    user = store.get_by_id(user_id)
    logger.info("Registered user %s", user_id)
    return RegisterResult(user=user)


def authenticate(store: UserStore, email: str, password: str) -> User | None:
    """Return the User for a correct email/password pair, None otherwise. [C1]"""
    user = store.get_by_email(email)
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt [C1]
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
