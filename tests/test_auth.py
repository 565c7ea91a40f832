import pytest

from core.auth import CONSOLE_ROUTE, LOGIN_ROUTE, RouteGuard, SessionContext
from core.errors import AuthenticationRequired


def test_login_with_wrong_password():
    session = SessionContext(password="secret")
    assert session.login("guess") is False
    assert not session.is_authenticated


def test_login_and_logout():
    session = SessionContext(password="secret")
    assert session.login("secret") is True
    assert session.is_authenticated

    session.logout()
    assert not session.is_authenticated
    with pytest.raises(AuthenticationRequired):
        session.require_authenticated()


def test_guard_sends_anonymous_users_to_login():
    guard = RouteGuard(SessionContext(password="secret"))
    assert guard.resolve(CONSOLE_ROUTE) == LOGIN_ROUTE
    assert guard.resolve("anything") == LOGIN_ROUTE
    assert guard.resolve(LOGIN_ROUTE) == LOGIN_ROUTE


def test_guard_sends_authenticated_users_to_console():
    session = SessionContext(password="secret")
    session.login("secret")
    guard = RouteGuard(session)
    assert guard.resolve(LOGIN_ROUTE) == CONSOLE_ROUTE
    assert guard.resolve(CONSOLE_ROUTE) == CONSOLE_ROUTE
