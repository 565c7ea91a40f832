import pytest

from core.completion import (
    SQL_FUNCTIONS,
    SQL_KEYWORDS,
    CompletionContext,
    EditorCompletionProvider,
    SuggestionKind,
    current_word,
    should_trigger,
)
from core.schema_cache import SchemaCache


@pytest.fixture
def provider(erp_gateway):
    cache = SchemaCache(erp_gateway)
    cache.list_tables()
    return EditorCompletionProvider(cache)


def test_prefix_matches_tables_first_and_excludes_others(provider):
    suggestions = provider.suggest("SELECT * FROM us", "us")
    labels = [s.label for s in suggestions]

    assert labels[:2] == ["llx_user", "llx_usergroup"]
    assert all(s.kind is SuggestionKind.TABLE for s in suggestions[:2])
    assert "llx_societe" not in labels


def test_empty_prefix_offers_everything_in_group_order(provider):
    suggestions = provider.suggest("", "")
    kinds = [s.kind for s in suggestions]

    assert len(suggestions) == 3 + len(SQL_KEYWORDS) + len(SQL_FUNCTIONS)
    assert kinds == sorted(kinds, key=lambda k: ["Table", "Keyword", "Function"].index(k.value))
    ranks = [s.sort_text[0] for s in suggestions]
    assert ranks == sorted(ranks)


def test_matching_is_case_insensitive_substring(provider):
    labels = [s.label for s in provider.suggest("", "ROUP")]
    assert labels == ["llx_usergroup", "GROUP BY"]


def test_keywords_insert_trailing_space(provider):
    [select] = [s for s in provider.suggest("", "sel") if s.kind is SuggestionKind.KEYWORD]
    assert select.insert_text == "SELECT "
    assert not select.is_snippet


def test_function_snippets(provider):
    [sum_] = provider.suggest("", "sum")
    assert sum_.kind is SuggestionKind.FUNCTION
    assert sum_.is_snippet
    assert sum_.insert_text == "SUM(${1:column})"
    assert sum_.plain_insert_text == "SUM(column)"


def test_no_tables_before_cache_is_populated(erp_gateway):
    provider = EditorCompletionProvider(SchemaCache(erp_gateway))
    assert provider.suggest("", "llx") == []
    assert erp_gateway.calls == []


def test_complete_attaches_replacement_range(provider):
    text = "SELECT * FROM llx_us"
    suggestions = provider.complete(text, len(text))

    assert suggestions[0].label == "llx_user"
    assert suggestions[0].context == CompletionContext(start=14, end=20)


@pytest.mark.parametrize("char,expected", [
    ("a", True), ("Z", True), ("_", True), (" ", True), (".", True),
    ("1", False), ("(", False), ("", False), ("ab", False),
])
def test_should_trigger(char, expected):
    assert should_trigger(char) is expected


def test_current_word():
    assert current_word("SELECT * FROM llx_us", 20) == ("llx_us", 14)
    assert current_word("SELECT u.lo", 11) == ("lo", 9)
    assert current_word("SELECT ", 7) == ("", 7)
