"""
web/customers.py -- Customer management pages.

Same shape as web/users.py: a router-level require_user_id gate, a list page
that dispatches on the `intent` form field, and per-record edit pages.

Routes:
  GET  /customers                         -- paginated list, ?q= filters by name
  POST /customers                         -- intent=create|update|delete|bulk-delete
  GET  /customers/new                     -- create form
  GET  /customers/{customer_id}/duplicate -- create form, each field prefixed "CLONE - "
  GET  /customers/{customer_id}           -- edit page
  POST /customers/{customer_id}           -- apply edit, redirect /customers
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from auth.dependencies import require_user_id
from core.errors import DuplicateEmailError
from customers.models import Customer
from customers.store import CustomerStore
from web.templating import BULK_DELETE_EMPTY, PAGE_SIZE, paginate, parse_bulk_ids, templates

logger = logging.getLogger("crudadmin.web.customers")

router = APIRouter(prefix="/customers", dependencies=[Depends(require_user_id)])

_REQUIRED = "Name and Email are required"
_EMAIL_TAKEN = "Email already exists"
_NOT_FOUND = "Customer Not Found"
_CLONE_PREFIX = "CLONE - "


def _store(request: Request) -> CustomerStore:
    return request.app.state.customer_store


def _form_data(customer: Optional[Customer] = None, **overrides) -> dict:
    data = {"customer_id": "", "name": "", "email": "", "phone": "", "address": ""}
    if customer is not None:
        data.update(
            customer_id=customer.id or "",
            name=customer.name,
            email=customer.email,
            phone=customer.phone or "",
            address=customer.address or "",
        )
    data.update(overrides)
    return data


def _list_page(request: Request, message: Optional[str] = None, error: Optional[str] = None) -> HTMLResponse:
    store = _store(request)
    q = (request.query_params.get("q") or "").strip()
    try:
        requested_page = int(request.query_params.get("page", "1"))
    except ValueError:
        requested_page = 1
    total = store.count_customers(q or None)
    page, total_pages, offset = paginate(total, requested_page)
    return templates.TemplateResponse(
        request,
        "customers.html",
        {
            "customers": store.list_customers(q or None, limit=PAGE_SIZE, offset=offset),
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
        "customer_form.html",
        {"form_data": form_data, "mode": mode, "error": error},
    )


# ---------------------------------------------------------------------------
# GET /customers -- list
# ---------------------------------------------------------------------------


@router.get("", response_class=HTMLResponse)
def customers_list(request: Request) -> HTMLResponse:
    return _list_page(request)


# ---------------------------------------------------------------------------
# POST /customers -- intent dispatch
# ---------------------------------------------------------------------------


@router.post("", response_class=HTMLResponse)
def customers_action(
    request: Request,
    intent: str = Form(default=""),
    name: str = Form(default=""),
    email: str = Form(default=""),
    phone: str = Form(default=""),
    address: str = Form(default=""),
    customer_id: str = Form(default="", alias="customerId"),
    ids: Optional[str] = Form(default=None),
    selected: list[str] = Form(default=[]),  # noqa: B006
) -> HTMLResponse:
    store = _store(request)

    if intent == "bulk-delete":
        try:
            id_list = parse_bulk_ids(ids, selected)
        except ValueError as exc:
            return _list_page(request, error=str(exc))
        if not id_list:
            return _list_page(request, error=BULK_DELETE_EMPTY)
        removed = store.delete_many(id_list)
        logger.info("Bulk deleted %d customers (%d requested)", removed, len(id_list))
        return _list_page(request, message=f"{len(id_list)} customers deleted successfully")

    if intent in ("create", "update"):
        form_data = _form_data(customer_id=customer_id, name=name, email=email, phone=phone, address=address)
        if not name or not email:
            return _form_page(request, form_data, intent, _REQUIRED)
        exclude = customer_id if intent == "update" else None
        if store.get_by_email(email, exclude_id=exclude) is not None:
            return _form_page(request, form_data, intent, _EMAIL_TAKEN)

        fields = {"name": name, "email": email, "phone": phone or None, "address": address or None}
        try:
            if intent == "update":
                if not store.update_customer(customer_id, **fields):
                    raise HTTPException(status_code=404, detail=_NOT_FOUND)
                return _list_page(request, message="Customer updated successfully")
            store.create_customer(Customer(**fields))
        except DuplicateEmailError:
            return _form_page(request, form_data, intent, _EMAIL_TAKEN)
        return _list_page(request, message="Customer created successfully")

    if intent == "delete":
        if not store.delete_customer(customer_id):
            raise HTTPException(status_code=404, detail=_NOT_FOUND)
        logger.info("Deleted customer %s", customer_id)
        return _list_page(request, message="Customer deleted successfully")

    return _list_page(request)


# ---------------------------------------------------------------------------
# Create forms (registered BEFORE /customers/{customer_id})
# ---------------------------------------------------------------------------


@router.get("/new", response_class=HTMLResponse)
def customer_new(request: Request) -> HTMLResponse:
    return _form_page(request, _form_data(), "create")


@router.get("/{customer_id}/duplicate", response_class=HTMLResponse)
def customer_duplicate(request: Request, customer_id: str) -> HTMLResponse:
    customer = _store(request).get_by_id(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    clone = {
        key: f"{_CLONE_PREFIX}{value}" if value else ""
        for key, value in _form_data(customer).items()
        if key != "customer_id"
    }
    return _form_page(request, _form_data(**clone), "create")


# ---------------------------------------------------------------------------
# GET/POST /customers/{customer_id} -- edit page
# ---------------------------------------------------------------------------


@router.get("/{customer_id}", response_class=HTMLResponse)
def customer_edit(request: Request, customer_id: str) -> HTMLResponse:
    customer = _store(request).get_by_id(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return templates.TemplateResponse(
        request,
        "customer_edit.html",
        {"customer": customer, "form_data": _form_data(customer), "error": None},
    )


@router.post("/{customer_id}", response_class=HTMLResponse)
def customer_update(
    request: Request,
    customer_id: str,
    name: str = Form(default=""),
    email: str = Form(default=""),
    phone: str = Form(default=""),
    address: str = Form(default=""),
) -> HTMLResponse:
    store = _store(request)
    customer = store.get_by_id(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)

    form_data = _form_data(customer_id=customer_id, name=name, email=email, phone=phone, address=address)

    def _error(message: str) -> HTMLResponse:
        return templates.TemplateResponse(
            request,
            "customer_edit.html",
            {"customer": customer, "form_data": form_data, "error": message},
        )

    if not name or not email:
        return _error(_REQUIRED)
    if store.get_by_email(email, exclude_id=customer_id) is not None:
        return _error(_EMAIL_TAKEN)

    try:
        updated = store.update_customer(
            customer_id, name=name, email=email, phone=phone or None, address=address or None
        )
    except DuplicateEmailError:
        return _error(_EMAIL_TAKEN)
    if not updated:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return RedirectResponse("/customers", status_code=302)
