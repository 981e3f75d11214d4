"""
core/errors.py -- Domain exceptions shared by the stores and the web layer.

Stores translate driver-level failures (sqlalchemy.exc.IntegrityError) into
these types so callers can tell a uniqueness conflict apart from any other
infrastructure failure without importing SQLAlchemy.

Layer rule: core/ is the kernel. No imports from api/, web/, auth/, customers/.
"""


class DuplicateEmailError(ValueError):
    """Raised when a create or update would violate a unique email constraint."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Email already in use: {email!r}")
