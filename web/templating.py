"""
web/templating.py -- Jinja2 environment and helpers shared by the web routers.

Every HTML router (web/routes.py, web/users.py, web/customers.py) renders
through the single `templates` object defined here, so the layout's globals
are registered exactly once.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from fastapi.templating import Jinja2Templates

from auth.dependencies import get_current_user

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# Expose get_current_user as a Jinja2 global so layout.html can show the
# signed-in email without every handler adding it to the context.
templates.env.globals["get_current_user"] = get_current_user

PAGE_SIZE = 25

BULK_DELETE_INVALID = "Invalid bulk delete request"
BULK_DELETE_EMPTY = "No items selected"


def safe_redirect(target: Optional[str], default: str) -> str:
    """Validate a post-login redirect target. Only accept relative paths. [C2]

    Rejects absolute URLs and protocol-relative ones ("//evil.example"),
    both of which would send the browser off-site after login.
    """
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return default


def paginate(total: int, page: int, page_size: int = PAGE_SIZE) -> tuple[int, int, int]:
    """Clamp page into range. Returns (page, total_pages, offset)."""
    total_pages = max(1, (total + page_size - 1) // page_size)
    page = max(1, min(page, total_pages))
    return page, total_pages, (page - 1) * page_size


def parse_bulk_ids(ids_field: Optional[str], selected: list[str]) -> list[str]:
    """Collect the IDs submitted with a bulk-delete intent.

    Scripted clients send `ids` as a JSON array string; the HTML table sends
    one `selected` checkbox value per row. A JSON value that is not an array
    counts as an empty selection.

    Raises ValueError when `ids` is present but is not valid JSON.
    """
    if ids_field is None:
        return [s for s in selected if s]
    try:
        ids = json.loads(ids_field)
    except json.JSONDecodeError as exc:
        raise ValueError(BULK_DELETE_INVALID) from exc
    if not isinstance(ids, list):
        return []
    return [str(i) for i in ids]
