# ============================================================
# SQLDesk - Remote SQL Console
# core/auth.py — Shared-Password Session & Route Guard
# ============================================================

import hmac
from typing import Optional

from loguru import logger

from config import auth_config
from core.errors import AuthenticationRequired

LOGIN_ROUTE = "login"
CONSOLE_ROUTE = "console"


class SessionContext:
    """
    The one place that knows whether the operator is logged in.

    Passed explicitly to the route guard and to the console controller.
    No token, no expiry: the flag lives until logout() or process exit.
    """

    def __init__(self, password: Optional[str] = None):
        self._password = password if password is not None else auth_config.password
        self._authenticated = False

    def login(self, candidate: str) -> bool:
        """Compare against the shared password. Returns True on match."""
        ok = hmac.compare_digest(candidate.encode(), self._password.encode())
        if ok:
            self._authenticated = True
            logger.info("Session authenticated")
        else:
            logger.warning("Login rejected: invalid password")
        return ok

    def logout(self):
        self._authenticated = False
        logger.info("Session logged out")

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    def require_authenticated(self):
        if not self._authenticated:
            raise AuthenticationRequired()


class RouteGuard:
    """Maps a requested route to the one that should actually be shown."""

    def __init__(self, session: SessionContext):
        self.session = session

    def resolve(self, route: str) -> str:
        if not self.session.is_authenticated and route != LOGIN_ROUTE:
            return LOGIN_ROUTE
        if self.session.is_authenticated and route == LOGIN_ROUTE:
            return CONSOLE_ROUTE
        return route
