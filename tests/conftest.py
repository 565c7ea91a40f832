"""Shared fakes for the gateway and the chat model."""

import threading
from typing import Dict, List, Union

import pytest

from core.models import QueryResult, Row


class FakeGateway:
    """
    Answers execute(sql) from a dict of canned responses.
    A value may be a list of rows or an exception instance to raise.
    """

    def __init__(self, responses: Dict[str, Union[List[Row], Exception]] = None, default=None):
        self.responses = dict(responses or {})
        self.default = default
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def execute(self, sql: str) -> QueryResult:
        with self._lock:
            self.calls.append(sql)
        value = self.responses.get(sql, self.default)
        if isinstance(value, Exception):
            raise value
        return QueryResult(value or [], sql=sql, execution_ms=3)

    def close(self):
        pass


class FakeReply:
    def __init__(self, content):
        self.content = content


class FakeLLM:
    """Stands in for a LangChain chat model: records messages, returns canned text."""

    def __init__(self, content="", error: Exception = None):
        self.content = content
        self.error = error
        self.calls = []

    def invoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return FakeReply(self.content)


TABLE_ROWS = [
    {"Tables_in_erp": "llx_user"},
    {"Tables_in_erp": "llx_usergroup"},
    {"Tables_in_erp": "llx_societe"},
]

USER_COLUMNS = [
    {"Field": "rowid", "Type": "int(11)", "Null": "NO", "Key": "PRI", "Default": None, "Extra": "auto_increment"},
    {"Field": "login", "Type": "varchar(50)", "Null": "NO", "Key": "", "Default": None, "Extra": ""},
    {"Field": "email", "Type": "varchar(255)", "Null": "YES", "Key": "", "Default": None, "Extra": ""},
]


@pytest.fixture
def fake_gateway():
    return FakeGateway


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def erp_gateway():
    """Gateway that knows three tables and the columns of llx_user."""
    return FakeGateway({
        "SHOW TABLES;": TABLE_ROWS,
        "SHOW COLUMNS FROM `llx_user`;": USER_COLUMNS,
    })
