"""
customers/models.py -- Domain dataclass for customer records.

Pure data container with zero logic. Uniqueness and timestamps are the
store's concern (customers/store.py).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Customer:
    """A customer managed from the admin panel.

    email is unique across customers. id is None before the record is written
    to the database; the store assigns a UUID4 string on insert.
    """

    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
