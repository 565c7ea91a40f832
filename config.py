# ============================================================
# SQLDesk - Remote SQL Console
# config.py — Central Configuration Management
# ============================================================

import os
from pathlib import Path
from typing import Dict, List, Optional
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field
from dotenv import load_dotenv

# Load .env file
BASE_DIR = Path(__file__).parent
load_dotenv(BASE_DIR / ".env")


class GatewayConfig(BaseSettings):
    """Remote database proxy (the endpoint that actually runs SQL)."""
    url: str = Field(default="http://localhost:8080/sqleditor.php")
    timeout: float = Field(default=30.0)

    class Config:
        env_prefix = "GATEWAY_"
        extra = "ignore"


class AssistantConfig(BaseSettings):
    """AI query assistant configuration."""
    provider: str = Field(default="openai")  # "openai" | "ollama"
    model: str = Field(default="gpt-3.5-turbo")
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ASSISTANT_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: Optional[str] = Field(default=None)
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=1000)

    # Live schema enrichment of the system prompt
    enrich_schema: bool = Field(default=True)
    table_prefix: str = Field(default="llx_")
    common_tables: List[str] = Field(
        default=["llx_societe", "llx_facture", "llx_user", "llx_entity"]
    )
    entities: Dict[int, str] = Field(
        default={
            1: "HEAD OFFICE",
            2: "NORTH BRANCH",
            5: "SOUTH BRANCH",
            6: "EAST BRANCH",
            11: "ACCOUNTING HEAD OFFICE",
            12: "ACCOUNTING NORTH",
        }
    )

    class Config:
        env_prefix = "ASSISTANT_"
        extra = "ignore"
        populate_by_name = True


class AuthConfig(BaseSettings):
    """Shared-password gate."""
    password: str = Field(default="sqldesk!!!")

    class Config:
        env_prefix = "AUTH_"
        extra = "ignore"


class AppConfig(BaseSettings):
    """Application-level configuration."""
    name: str = Field(default="SQLDesk")
    version: str = Field(default="1.0.0")
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/sqldesk.log")
    max_history: int = Field(default=50)
    page_size: int = Field(default=10)
    # Fetch every table's columns up front (one request per table)
    preload_columns: bool = Field(default=False)
    preload_workers: int = Field(default=8)

    class Config:
        env_prefix = "APP_"
        extra = "ignore"


# ── Singleton Config Instances ────────────────────────────────
gateway_config = GatewayConfig()
assistant_config = AssistantConfig()
auth_config = AuthConfig()
app_config = AppConfig()

# ── Ensure log directory exists ───────────────────────────────
os.makedirs(BASE_DIR / "logs", exist_ok=True)
