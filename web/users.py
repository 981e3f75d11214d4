"""
web/users.py -- User management pages (list, create, edit, duplicate, delete).

Every route on this router is gated by require_user_id, declared once at the
router level; there is no per-handler auth check to forget.

Route registration order matters: GET /users/new must be registered before
GET /users/{user_id} or FastAPI captures "new" as a path parameter.

Routes:
  GET  /users                     -- paginated list, ?q= filters by email
  POST /users                     -- intent=create|update|delete|bulk-delete
  GET  /users/new                 -- create form
  GET  /users/{user_id}/duplicate -- create form prefilled with clone-<email>
  GET  /users/{user_id}           -- edit page
  POST /users/{user_id}           -- apply edit, redirect /users
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from api.models import MIN_PASSWORD_LENGTH
from auth.dependencies import require_user_id
from auth.models import User
from auth.passwords import MAX_PASSWORD_BYTES, hash_password
from auth.store import UserStore
from core.errors import DuplicateEmailError
from web.templating import BULK_DELETE_EMPTY, PAGE_SIZE, paginate, parse_bulk_ids, templates

logger = logging.getLogger("crudadmin.web.users")

router = APIRouter(prefix="/users", dependencies=[Depends(require_user_id)])

_EMAIL_TAKEN = "Email already exists"
_NOT_FOUND = "User Not Found"


def _store(request: Request) -> UserStore:
    return request.app.state.user_store


def _password_error(password: str) -> Optional[str]:
    """Return a message if a non-empty password cannot be hashed safely, else None."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
    return None


def _list_page(
    request: Request,
    message: Optional[str] = None,
    error: Optional[str] = None,
) -> HTMLResponse:
    store = _store(request)
    q = (request.query_params.get("q") or "").strip()
    try:
        requested_page = int(request.query_params.get("page", "1"))
    except ValueError:
        requested_page = 1
    total = store.count_users(q or None)
    page, total_pages, offset = paginate(total, requested_page)
    users = store.list_users(q or None, limit=PAGE_SIZE, offset=offset)
    return templates.TemplateResponse(
        request,
        "users.html",
        {
            "users": users,
            "q": q,
            "page": page,
            "total_pages": total_pages,
            "total": total,
            "message": message,
            "error": error,
        },
    )


def _form_page(request: Request, form_data: dict, mode: str, error: Optional[str] = None) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "user_form.html",
        {"form_data": form_data, "mode": mode, "error": error},
    )


# ---------------------------------------------------------------------------
# GET /users -- list
# ---------------------------------------------------------------------------


@router.get("", response_class=HTMLResponse)
def users_list(request: Request) -> HTMLResponse:
    return _list_page(request)


# ---------------------------------------------------------------------------
# POST /users -- intent dispatch
# ---------------------------------------------------------------------------


@router.post("", response_class=HTMLResponse)
def users_action(
    request: Request,
    intent: str = Form(default=""),
    email: str = Form(default=""),
    password: str = Form(default=""),
    user_id: str = Form(default="", alias="userId"),
    ids: Optional[str] = Form(default=None),
    selected: list[str] = Form(default=[]),  # noqa: B006
) -> HTMLResponse:
    """Apply one of the list-page intents and re-render the list with the outcome.

    Unknown intents re-render the list with no message.
    """
    store = _store(request)

    if intent == "bulk-delete":
        try:
            id_list = parse_bulk_ids(ids, selected)
        except ValueError as exc:
            return _list_page(request, error=str(exc))
        if not id_list:
            return _list_page(request, error=BULK_DELETE_EMPTY)
        removed = store.delete_many(id_list)
        logger.info("Bulk deleted %d users (%d requested)", removed, len(id_list))
        return _list_page(request, message=f"{len(id_list)} users deleted successfully")

    if intent in ("create", "update"):
        form_data = {"email": email, "user_id": user_id}
        if not email:
            return _form_page(request, form_data, intent, "Email is required")
        if intent == "create" and not password:
            return _form_page(request, form_data, intent, "Password is required")
        if password and (problem := _password_error(password)):
            return _form_page(request, form_data, intent, problem)

        existing = store.get_by_email(email)
        if existing is not None and (intent == "create" or existing.id != user_id):
            return _form_page(request, form_data, intent, _EMAIL_TAKEN)

        try:
            if intent == "update":
                fields: dict = {"email": email}
                if password:
                    fields["password_hash"] = hash_password(password)
                if not store.update_user(user_id, **fields):
                    raise HTTPException(status_code=404, detail=_NOT_FOUND)
                return _list_page(request, message="User updated successfully")

            store.create_user(User(email=email, password_hash=hash_password(password)))
        except DuplicateEmailError:
            return _form_page(request, form_data, intent, _EMAIL_TAKEN)
        return _list_page(request, message="User created successfully")

    if intent == "delete":
        if not store.delete_user(user_id):
            raise HTTPException(status_code=404, detail=_NOT_FOUND)
        logger.info("Deleted user %s", user_id)
        return _list_page(request, message="User deleted successfully")

    return _list_page(request)


# ---------------------------------------------------------------------------
# GET /users/new, /users/{user_id}/duplicate -- create forms
# (registered BEFORE /users/{user_id})
# ---------------------------------------------------------------------------


@router.get("/new", response_class=HTMLResponse)
def user_new(request: Request) -> HTMLResponse:
    return _form_page(request, {"email": "", "user_id": ""}, "create")


@router.get("/{user_id}/duplicate", response_class=HTMLResponse)
def user_duplicate(request: Request, user_id: str) -> HTMLResponse:
    """Prefill the create form from an existing user. The password is never copied."""
    user = _store(request).get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return _form_page(request, {"email": f"clone-{user.email}", "user_id": ""}, "create")


# ---------------------------------------------------------------------------
# GET/POST /users/{user_id} -- edit page
# ---------------------------------------------------------------------------


@router.get("/{user_id}", response_class=HTMLResponse)
def user_edit(request: Request, user_id: str) -> HTMLResponse:
    user = _store(request).get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return templates.TemplateResponse(request, "user_edit.html", {"user": user, "email": user.email, "error": None})


@router.post("/{user_id}", response_class=HTMLResponse)
def user_update(
    request: Request,
    user_id: str,
    email: str = Form(default=""),
    password: str = Form(default=""),
) -> HTMLResponse:
    """Update email and, when given, password. A blank password leaves the hash alone."""
    store = _store(request)
    user = store.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)

    def _error(message: str) -> HTMLResponse:
        return templates.TemplateResponse(request, "user_edit.html", {"user": user, "email": email, "error": message})

    if not email:
        return _error("Email is required")
    fields: dict = {"email": email}
    if password:
        if problem := _password_error(password):
            return _error(problem)
        fields["password_hash"] = hash_password(password)

    try:
        updated = store.update_user(user_id, **fields)
    except DuplicateEmailError:
        return _error("Email already in use or update failed")
    if not updated:
        return _error("Email already in use or update failed")

    return RedirectResponse("/users", status_code=302)
