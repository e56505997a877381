import logging
from functools import wraps

from flask import current_app, g, redirect, request

from messageboard.errors import BackendError
from messageboard.services.backend import get_backend
from messageboard.views.navigation import LOGIN_ROUTE


logger = logging.getLogger(__name__)


def extract_access_token(auth=None):
    if isinstance(auth, dict):
        token = auth.get("token") or auth.get("access_token")
        if token:
            return token

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip()

    cookie_name = current_app.config.get("JWT_ACCESS_COOKIE_NAME", "access_token_cookie")
    return request.cookies.get(cookie_name)


class SessionGuard:
    """Answers whether a token belongs to a live session, once per activation."""

    def __init__(self, backend):
        self._backend = backend

    def check(self, token):
        # A failed lookup is the same as no session; nothing is retried or cached.
        try:
            return self._backend.auth.get_current_user(token)
        except BackendError as e:
            logger.info("Session rejected: %s", e)
            return None


def session_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = extract_access_token()
        user = SessionGuard(get_backend()).check(token)
        if user is None:
            return redirect(LOGIN_ROUTE)

        g.current_user = user
        g.access_token = token
        return view(*args, **kwargs)

    return wrapper
