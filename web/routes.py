"""
web/routes.py -- Login, registration, and logout pages.

These routes are public. They share app.state with the rest of the app
(user store, session store, rate limiter, settings) and return HTML.

Request flow for POST /login and POST /register:
  1. Rate limiter (app.state.limiter, keyed by X-Forwarded-For) -- both forms
     draw from the same bucket, so a client cannot alternate between them to
     double its attempts.
  2. Schema validation (api/models.py) -- first error is shown on the page.
  3. Credential service (auth/credentials.py).
  4. Session cookie issued, browser redirected.

Every failure is a 200 page with a message; nothing here returns 4xx.

Routes:
  GET  /, /login     -- login form (redirects to /users when already signed in)
  POST /, /login     -- handle password login
  GET  /register     -- registration form
  POST /register     -- create account and sign in
  POST /logout       -- clear cookie, redirect /
"""

import logging
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

from api.limiter import client_key
from api.models import LoginForm, RegisterForm, first_error
from auth.credentials import authenticate, register
from auth.dependencies import get_user_id, load_session
from auth.session import USER_ID_CLAIM, SessionStore
from auth.store import UserStore
from web.templating import safe_redirect, templates

logger = logging.getLogger("crudadmin.web")

router = APIRouter()

HOME_PATH = "/users"

LOGIN_FAILED = "Invalid email or password"
LOGIN_RATE_LIMITED = "Too many login attempts. Please try again later."
REGISTER_RATE_LIMITED = "Too many registration attempts. Please try again later."

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _rate_limited(request: Request) -> bool:
    """Record one credential attempt for this client and report whether it is over the limit."""
    settings = request.app.state.settings
    key = client_key(request.headers.get("x-forwarded-for"))
    limited = request.app.state.limiter.is_limited(
        key,
        limit=settings.auth_rate_limit,
        window_seconds=settings.auth_rate_window_seconds,
    )
    if limited:
        logger.warning("Rate limit exceeded for %s on %s", key, request.url.path)
    return limited


def _no_store(response):
    # Credential pages and cookie-bearing redirects must never be cached [M5]
    response.headers["Cache-Control"] = "no-store"
    return response


def _login_page(request: Request, error: Optional[str] = None, email: str = "", redirect_to: str = ""):
    return _no_store(
        templates.TemplateResponse(
            request,
            "login.html",
            {"error": error, "email": email, "redirect_to": redirect_to},
        )
    )


def _register_page(request: Request, error: Optional[str] = None, email: str = ""):
    return _no_store(templates.TemplateResponse(request, "register.html", {"error": error, "email": email}))


def _signed_in_redirect(request: Request, user_id: str, target: str) -> RedirectResponse:
    """Put user_id into the session and redirect with the signed cookie attached."""
    session_store: SessionStore = request.app.state.session_store
    session = load_session(request)
    session.set(USER_ID_CLAIM, user_id)
    resp = RedirectResponse(target, status_code=302)
    resp.headers.append("set-cookie", session_store.commit(session))
    return _no_store(resp)


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login form. Already-authenticated users go straight to /users."""
    if get_user_id(request) is not None:
        return RedirectResponse(HOME_PATH, status_code=302)
    redirect_to = safe_redirect(request.query_params.get("redirectTo"), "")
    return _login_page(request, redirect_to=redirect_to)


@router.post("/", response_class=HTMLResponse)
@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
    redirect_to: Optional[str] = Form(default=None, alias="redirectTo"),
) -> HTMLResponse:
    """Handle email/password login form submission."""
    redirect_to = redirect_to or request.query_params.get("redirectTo")
    echo_target = safe_redirect(redirect_to, "")

    if _rate_limited(request):
        return _login_page(request, LOGIN_RATE_LIMITED, email, echo_target)

    try:
        form = LoginForm(email=email, password=password)
    except ValidationError as exc:
        return _login_page(request, first_error(exc), email, echo_target)

    user_store: UserStore = request.app.state.user_store
    user = authenticate(user_store, form.email, form.password)  # [C1] timing equalization
    if user is None:
        logger.info("Failed login attempt for %s", client_key(request.headers.get("x-forwarded-for")))
        return _login_page(request, LOGIN_FAILED, email, echo_target)

    logger.info("User %s signed in", user.id)
    return _signed_in_redirect(request, user.id, safe_redirect(redirect_to, HOME_PATH))  # [C2]


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    return _register_page(request)


@router.post("/register", response_class=HTMLResponse)
def register_post(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
) -> HTMLResponse:
    """Create an account and sign it in. Duplicate emails never touch the existing record."""
    if _rate_limited(request):
        return _register_page(request, REGISTER_RATE_LIMITED, email)

    try:
        form = RegisterForm(email=email, password=password)
    except ValidationError as exc:
        return _register_page(request, first_error(exc), email)

    result = register(request.app.state.user_store, form.email, form.password)
    if result.error is not None or result.user is None:
        return _register_page(request, result.error or "Something went wrong", email)

    return _signed_in_redirect(request, result.user.id, HOME_PATH)


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Expire the session cookie and return to the login page."""
    session_store: SessionStore = request.app.state.session_store
    resp = RedirectResponse("/", status_code=302)
    resp.headers.append("set-cookie", session_store.destroy(load_session(request)))
    return _no_store(resp)
