"""
auth/session.py -- Stateless cookie sessions signed with HS256.

The cookie *is* the session. The server keeps no session table: the value is
a JWT (python-jose, HS256, keyed by SESSION_SECRET) whose payload carries the
single recognized claim, userId, plus an exp matching the cookie Max-Age.

Security design decisions:
  Tampering: any cookie that fails signature, format, or expiry checks loads
      as an empty session. It is never surfaced as an error -- a forged
      cookie and no cookie look the same to every caller.

  Cookie attributes: HttpOnly (no JS access), Path=/, SameSite=lax (not sent
      on cross-site POST). Production renames the cookie to __Host-session
      and adds Secure; browsers refuse __Host- cookies without Secure.

  Revocation: impossible before expiry without an external blocklist.
      Logout only asks the browser to drop its copy.

Layer rule: no imports from api/, web/, or customers/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from http.cookies import SimpleCookie
from typing import TYPE_CHECKING, Any

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode
from starlette.requests import cookie_parser

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("crudadmin.auth.session")

_ALGORITHM = "HS256"

USER_ID_CLAIM = "userId"
_CLAIMS = frozenset({USER_ID_CLAIM})

_EPOCH = "Thu, 01 Jan 1970 00:00:00 GMT"


class Session:
    """A mutable bag of recognized claims. Unknown keys are rejected."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        for key, value in (data or {}).items():
            if key in _CLAIMS:
                self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if key not in _CLAIMS:
            raise KeyError(f"Unrecognized session claim: {key!r}")
        self._data[key] = value

    def unset(self, key: str) -> None:
        self._data.pop(key, None)

    @property
    def data(self) -> dict[str, Any]:
        return dict(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"Session(claims={sorted(self._data)})"


class SessionStore:
    """Creates, loads, and serializes signed cookie sessions.

    Usage:
        store = SessionStore.from_settings(get_settings())
        session = store.load(request.headers.get("cookie"))
        session.set("userId", user.id)
        response.headers.append("set-cookie", store.commit(session))
    """

    def __init__(
        self,
        secret: str,
        *,
        cookie_name: str = "_session",
        secure: bool = False,
        max_age: int = 7 * 24 * 60 * 60,
    ) -> None:
        self._secret = secret
        self.cookie_name = cookie_name
        self.secure = secure
        self.max_age = max_age

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionStore:
        return cls(
            settings.session_secret,
            cookie_name=settings.session_cookie_name,
            secure=settings.secure_cookies,
            max_age=settings.session_max_age,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self) -> Session:
        return Session()

    def load(self, cookie_header: str | None) -> Session:
        """Parse a raw Cookie header and verify the session cookie.

        Returns an empty Session when the cookie is missing, malformed,
        expired, or carries a bad signature. Never raises.
        """
        if not cookie_header:
            return Session()
        token = cookie_parser(cookie_header).get(self.cookie_name)
        if not token:
            return Session()
        return Session(self._decode(token))

    def sign(self, session: Session) -> str:
        """Return the signed cookie value for session (no cookie attributes)."""
        payload: dict[str, Any] = session.data
        payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=self.max_age)
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def commit(self, session: Session) -> str:
        """Sign and serialize session into a Set-Cookie header value."""
        return self._cookie_header(self.sign(session), max_age=self.max_age)

    def destroy(self, session: Session) -> str:
        """Return a Set-Cookie header value that makes the browser drop the cookie now."""
        return self._cookie_header("", max_age=0, expires=_EPOCH)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _decode(self, token: str) -> dict[str, Any]:
        if not _canonical_signature(token):
            logger.debug("Rejected session cookie (non-canonical signature encoding)")
            return {}
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except JWTError:
            logger.debug("Rejected session cookie (bad signature, format, or expiry)")
            return {}
        user_id = payload.get(USER_ID_CLAIM)
        if not isinstance(user_id, str) or not user_id:
            return {}
        return {USER_ID_CLAIM: user_id}

    def _cookie_header(self, value: str, *, max_age: int, expires: str | None = None) -> str:
        cookie: SimpleCookie = SimpleCookie()
        cookie[self.cookie_name] = value
        morsel = cookie[self.cookie_name]
        morsel["path"] = "/"
        morsel["httponly"] = True
        morsel["samesite"] = "lax"
        morsel["max-age"] = max_age
        if expires is not None:
            morsel["expires"] = expires
        if self.secure:
            morsel["secure"] = True
        return cookie.output(header="").strip()


def _canonical_signature(token: str) -> bool:
    """True if the signature segment is the exact base64url encoding of its bytes.

    The last character of an HS256 signature carries two unused bits, so up
    to four spellings decode to the same digest. Only the spelling the signer
    produced is accepted.
    """
    signature = token.rsplit(".", 1)[-1]
    try:
        raw = signature.encode("ascii")
        return base64url_encode(base64url_decode(raw)) == raw
    except ValueError:
        return False
