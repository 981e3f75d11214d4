"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in customers/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/, web/, or customers/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An account that can sign in to the admin panel.

    email is unique and compared case-sensitively, exactly as stored.
    id is a UUID4 string assigned by the store on insert; it is never reused,
    which keeps stale session cookies from resolving to a different account.
    """

    email: str
    password_hash: str
    id: str | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert
