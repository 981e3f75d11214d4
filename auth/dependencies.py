"""
auth/dependencies.py -- FastAPI Depends() helpers for the session auth gate.

get_user_id() is the soft variant (returns None when unauthenticated). The
login page uses it to bounce signed-in users to /users.

require_user_id() is the hard variant. It raises LoginRequired, which the
app-level exception handler in api/main.py turns into
    302 Location: /login?redirectTo=<requested path>
Only the path is remembered; the query string is dropped.

Protected routers declare require_user_id as a router-level dependency:
    router = APIRouter(dependencies=[Depends(require_user_id)])
so every handler on them is gated by construction. Handlers that also need
the identifier declare it again; FastAPI caches the result per request.

Layer rule: no imports from api/, web/, or customers/.
  auth/dependencies.py may import from fastapi because this module is part of
  the FastAPI dependency injection system.
"""

from __future__ import annotations

from urllib.parse import urlencode

from fastapi import Request

from auth.models import User
from auth.session import USER_ID_CLAIM, Session, SessionStore

LOGIN_PATH = "/login"


class LoginRequired(Exception):
    """Raised by the auth gate when a protected route is hit without a valid session."""

    def __init__(self, redirect_to: str) -> None:
        self.redirect_to = redirect_to
        super().__init__(f"Authentication required for {redirect_to}")

    @property
    def location(self) -> str:
        return login_url(self.redirect_to)


def login_url(redirect_to: str) -> str:
    """Build /login?redirectTo=<path>, leaving '/' readable in the query string."""
    return f"{LOGIN_PATH}?{urlencode({'redirectTo': redirect_to}, safe='/')}"


def load_session(request: Request) -> Session:
    """Return the verified session for this request, decoding the cookie at most once."""
    cached = getattr(request.state, "session", None)
    if cached is not None:
        return cached
    store: SessionStore = request.app.state.session_store
    session = store.load(request.headers.get("cookie"))
    request.state.session = session
    return session


def get_user_id(request: Request) -> str | None:
    """Return the signed-in user ID, or None. Never raises."""
    user_id = load_session(request).get(USER_ID_CLAIM)
    if not user_id or not isinstance(user_id, str):
        return None
    return user_id


def ensure_user_id(request: Request, redirect_to: str | None = None) -> str:
    """Return the signed-in user ID or raise LoginRequired.

    redirect_to defaults to the path of the current request.
    """
    user_id = get_user_id(request)
    if user_id is None:
        raise LoginRequired(redirect_to or request.url.path)
    return user_id


def require_user_id(request: Request) -> str:
    """Require a session. Use as a FastAPI dependency:
    @router.get("/protected")
    def route(user_id: str = Depends(require_user_id)): ...
    """
    return ensure_user_id(request)


def get_current_user(request: Request) -> User | None:
    """Resolve the signed-in User record, or None.

    A valid cookie whose user has since been deleted resolves to None here
    but still passes require_user_id -- there is no server-side revocation.
    """
    user_id = get_user_id(request)
    if user_id is None:
        return None
    return request.app.state.user_store.get_by_id(user_id)
