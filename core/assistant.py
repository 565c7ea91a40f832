# ============================================================
# SQLDesk - Remote SQL Console
# core/assistant.py — Natural Language → SQL Query Assistant
# ============================================================
#
# ⚠️  LLM INTEGRATION POINT:
#     Provider is chosen by ASSISTANT_PROVIDER in .env
#       openai → langchain_openai.ChatOpenAI   (needs OPENAI_API_KEY)
#       ollama → langchain_community Ollama   (needs `ollama serve`)
# ============================================================

import re
from typing import Any, List, Optional, Tuple

from langchain_core.messages import HumanMessage, SystemMessage
from loguru import logger

from config import AssistantConfig, assistant_config
from core.errors import (
    AssistantRequestFailed,
    AssistantUnavailable,
    EmptyPrompt,
    QueryError,
)
from core.models import AssistantExchange
from core.schema_cache import SchemaCache


# ════════════════════════════════════════════════════════════
# SYSTEM PROMPT
# ════════════════════════════════════════════════════════════

SYSTEM_PROMPT = """
You are a SQL expert assistant helping users write MySQL queries for an
accounting ERP database running in multi-company mode.

Entity/Company Mapping (use these entity IDs, NOT the third-party table):
{entity_map}

Important Rules:
1. When filtering by company/store, ALWAYS use the 'entity' column with the specific entity ID
2. DO NOT join the third-party/customer table to filter by company; use the entity IDs directly
3. Every record carries an 'entity' column that corresponds to the company IDs above
4. When the user names a company, translate it to its entity ID

Examples:
- Data for one company:   WHERE entity = <id>
- Data for several:       WHERE entity IN (<id>, <id>)

Format your response as:
1. Brief explanation of what the query does
2. SQL query in a code block using ```sql
3. Additional notes if needed

Always use proper table aliases and JOIN conditions.
""".strip()

SCHEMA_SECTION = """

Known table structures (live from the database):
{schema_info}
""".rstrip()

_SQL_BLOCK = re.compile(r"```sql(?!\w)[ \t]*\n?(.*?)```", re.DOTALL | re.IGNORECASE)


# ════════════════════════════════════════════════════════════
# RESPONSE PARSING
# ════════════════════════════════════════════════════════════

def _strip_think(text: str) -> str:
    """Drop <think>…</think> reasoning tokens emitted by local reasoning models."""
    text = re.sub(r"<think>[\s\S]*?</think>", "", text, flags=re.IGNORECASE)
    text = re.sub(r"<think>[\s\S]*$", "", text, flags=re.IGNORECASE)
    return re.sub(r"</?think>", "", text, flags=re.IGNORECASE)


def extract_query_and_explanation(text: str) -> Tuple[str, str]:
    """
    Split an assistant reply on its first ```sql fenced block.

    Returns (query, explanation). The query is the trimmed block body;
    the explanation is everything else. Without a ```sql block the query
    is "" and the explanation is the whole text.
    """
    text = _strip_think(text)
    match = _SQL_BLOCK.search(text)
    if not match:
        return "", text.strip()

    query = match.group(1).strip()
    explanation = text[:match.start()] + text[match.end():]
    explanation = re.sub(r"\n{3,}", "\n\n", explanation).strip()
    return query, explanation


# ════════════════════════════════════════════════════════════
# SESSION
# ════════════════════════════════════════════════════════════

class QueryAssistantSession:
    """
    One-shot NL → SQL helper.

    Sends the fixed system instruction plus the user's prompt to the chat
    model and splits the reply into explanation + extractable SQL.
    When a SchemaCache is supplied and enrichment is enabled, live column
    lists for tables mentioned in the prompt are appended to the system
    instruction first.
    """

    def __init__(
        self,
        config: Optional[AssistantConfig] = None,
        schema_cache: Optional[SchemaCache] = None,
        llm: Any = None,
    ):
        self.config = config or assistant_config
        self.schema_cache = schema_cache
        self._llm = llm

    # ── Public API ────────────────────────────────────────────

    def ask(self, prompt: str) -> AssistantExchange:
        if not prompt or not prompt.strip():
            raise EmptyPrompt()

        llm = self._get_llm()
        messages = [
            SystemMessage(content=self.build_system_prompt(prompt)),
            HumanMessage(content=prompt),
        ]

        logger.info(f"Assistant request ({self.config.provider}/{self.config.model}): {prompt[:80]}")
        try:
            reply = llm.invoke(messages)
        except Exception as e:
            status = getattr(e, "status_code", None)
            logger.error(f"Assistant request failed: {e}")
            raise AssistantRequestFailed(status, str(e)) from e

        raw = getattr(reply, "content", reply)
        if not isinstance(raw, str) or not raw.strip():
            raise AssistantRequestFailed(None, "No response received from AI")

        query, explanation = extract_query_and_explanation(raw)
        logger.debug(f"Assistant reply: {len(raw)} chars, query extracted: {bool(query)}")
        return AssistantExchange(
            prompt=prompt,
            raw_response=raw,
            extracted_query=query,
            explanation=explanation,
        )

    def build_system_prompt(self, prompt: str) -> str:
        entity_map = "\n".join(
            f"- {name} (entity = {entity_id})"
            for entity_id, name in sorted(self.config.entities.items())
        )
        system = SYSTEM_PROMPT.format(entity_map=entity_map)

        if self.schema_cache is not None and self.config.enrich_schema:
            schema_info = self._schema_info(prompt)
            if schema_info:
                system += SCHEMA_SECTION.format(schema_info=schema_info)
        return system

    @property
    def is_available(self) -> bool:
        try:
            self._get_llm()
            return True
        except AssistantUnavailable:
            return False

    # ── Internals ─────────────────────────────────────────────

    def relevant_tables(self, prompt: str, tables: List[str]) -> List[str]:
        """Tables named in the prompt, with or without the configured prefix."""
        text = prompt.lower()
        prefix = self.config.table_prefix.lower()
        relevant = []
        for table in tables:
            name = table.lower()
            if prefix and not name.startswith(prefix):
                continue
            short = name[len(prefix):] if prefix else name
            if name in text or (short and short in text):
                relevant.append(table)
        if relevant:
            return relevant
        return [t for t in self.config.common_tables if t in tables]

    def _schema_info(self, prompt: str) -> str:
        try:
            tables = self.schema_cache.list_tables()
        except QueryError as e:
            logger.warning(f"Schema enrichment skipped, table list unavailable: {e}")
            return ""
        return self.schema_cache.describe_for_prompt(self.relevant_tables(prompt, tables))

    def _get_llm(self):
        if self._llm is None:
            self._llm = self._build_llm()
        return self._llm

    def _build_llm(self):
        provider = self.config.provider.lower()

        if provider == "openai":
            if not self.config.api_key:
                raise AssistantUnavailable("OpenAI API key not configured (set OPENAI_API_KEY)")
            from langchain_openai import ChatOpenAI
            return ChatOpenAI(
                model=self.config.model,
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )

        if provider == "ollama":
            if not self.config.base_url or not self.config.model:
                raise AssistantUnavailable("Ollama base URL / model not configured")
            from langchain_community.llms import Ollama
            return Ollama(
                base_url=self.config.base_url,
                model=self.config.model,
                temperature=self.config.temperature,
                num_predict=self.config.max_tokens,
            )

        raise AssistantUnavailable(f"Unknown assistant provider: {self.config.provider}")
