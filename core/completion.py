# ============================================================
# SQLDesk - Remote SQL Console
# core/completion.py — Editor Completion Provider
# ============================================================

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from core.schema_cache import SchemaCache

SQL_KEYWORDS = [
    "SELECT", "FROM", "WHERE", "JOIN", "LEFT JOIN", "GROUP BY", "ORDER BY", "LIMIT",
]

# (label, insert text); ${n:name} marks a snippet placeholder
SQL_FUNCTIONS = [
    ("COUNT(*)", "COUNT(*)"),
    ("SUM", "SUM(${1:column})"),
    ("AVG", "AVG(${1:column})"),
    ("MAX", "MAX(${1:column})"),
    ("MIN", "MIN(${1:column})"),
    ("NOW()", "NOW()"),
]

_PLACEHOLDER = re.compile(r"\$\{\d+:([^}]*)\}")


class SuggestionKind(Enum):
    TABLE = "Table"
    KEYWORD = "Keyword"
    FUNCTION = "Function"


_GROUP_RANK = {
    SuggestionKind.TABLE: "0",
    SuggestionKind.KEYWORD: "1",
    SuggestionKind.FUNCTION: "2",
}


@dataclass
class CompletionContext:
    """Where the accepted suggestion will be written (offsets into the buffer)."""
    start: int
    end: int


@dataclass
class Suggestion:
    label: str
    kind: SuggestionKind
    insert_text: str
    sort_text: str
    is_snippet: bool = False
    context: Optional[CompletionContext] = None

    @property
    def plain_insert_text(self) -> str:
        """insert_text with snippet placeholders replaced by their names."""
        return _PLACEHOLDER.sub(r"\1", self.insert_text)


def should_trigger(char: str) -> bool:
    """Letters, underscore, space and period re-trigger suggestions."""
    return len(char) == 1 and (char.isalpha() or char in "_ .")


def current_word(text: str, cursor: int) -> Tuple[str, int]:
    """
    Word being typed just before the cursor, and its start offset.
    After a dot only the part following the dot counts (table.col → col).
    """
    before = text[:cursor]
    match = re.search(r"(\w*)$", before)
    word = match.group(1) if match else ""
    return word, cursor - len(word)


class EditorCompletionProvider:
    """
    Ranked completions for the SQL editor: tables, then keywords, then
    functions. Matching is a case-insensitive *substring* test on the word
    prefix; there is no relevance scoring inside a group.

    The table group reads the schema cache's current contents on every call
    and is simply empty until the cache has been populated.
    """

    def __init__(self, schema_cache: Optional[SchemaCache] = None):
        self.schema_cache = schema_cache

    def suggest(
        self,
        preceding_text: str,
        word_prefix: str,
        context: Optional[CompletionContext] = None,
    ) -> List[Suggestion]:
        word = word_prefix.lower()
        tables = self.schema_cache.cached_tables() if self.schema_cache else []

        suggestions: List[Suggestion] = []

        for name in tables:
            if word in name.lower():
                suggestions.append(self._make(name, SuggestionKind.TABLE, name, context))

        for keyword in SQL_KEYWORDS:
            if word in keyword.lower():
                suggestions.append(self._make(keyword, SuggestionKind.KEYWORD, keyword + " ", context))

        for label, insert_text in SQL_FUNCTIONS:
            if word in label.lower():
                suggestions.append(self._make(label, SuggestionKind.FUNCTION, insert_text, context))

        return suggestions

    def complete(self, text: str, cursor: int) -> List[Suggestion]:
        """Convenience entry point for front ends holding a buffer + cursor offset."""
        word, start = current_word(text, cursor)
        return self.suggest(text[:cursor], word, CompletionContext(start=start, end=cursor))

    @staticmethod
    def _make(
        label: str,
        kind: SuggestionKind,
        insert_text: str,
        context: Optional[CompletionContext],
    ) -> Suggestion:
        return Suggestion(
            label=label,
            kind=kind,
            insert_text=insert_text,
            sort_text=_GROUP_RANK[kind] + label,
            is_snippet="${" in insert_text,
            context=context,
        )
