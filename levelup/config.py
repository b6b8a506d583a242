from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from levelup.db import DbConfig
from levelup.errors import ConfigError

SINGLE_USER_ID = "me"
DEFAULT_TIMEZONE = "Asia/Shanghai"
DEFAULT_PROVIDER = "deepseek"


@dataclass(frozen=True)
class AppConfig:
    database_url: str
    user_id: str = SINGLE_USER_ID
    llm_provider: str = DEFAULT_PROVIDER
    deepseek_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    default_timezone: str = DEFAULT_TIMEZONE
    log_level: str = "INFO"

    @property
    def db(self) -> DbConfig:
        return DbConfig(database_url=self.database_url)

    def api_key_for(self, provider: str) -> Optional[str]:
        if provider == "deepseek":
            return self.deepseek_api_key
        if provider == "openai":
            return self.openai_api_key
        return None


def _lookup(secrets: Mapping[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    # Prefer Streamlit secrets (Streamlit Cloud), then env var fallback.
    if key in secrets and secrets[key] not in (None, ""):
        return str(secrets[key])
    value = os.environ.get(key)
    if value:
        return value
    return default


def load_config(secrets: Optional[Mapping[str, Any]] = None) -> AppConfig:
    secrets = secrets or {}
    database_url = _lookup(secrets, "DATABASE_URL")
    if not database_url:
        raise ConfigError("DATABASE_URL is not set (Streamlit secrets or environment).")

    return AppConfig(
        database_url=database_url,
        user_id=_lookup(secrets, "LEVELUP_USER_ID", SINGLE_USER_ID) or SINGLE_USER_ID,
        llm_provider=(_lookup(secrets, "LLM_PROVIDER", DEFAULT_PROVIDER) or DEFAULT_PROVIDER).lower(),
        deepseek_api_key=_lookup(secrets, "DEEPSEEK_API_KEY"),
        openai_api_key=_lookup(secrets, "OPENAI_API_KEY"),
        default_timezone=_lookup(secrets, "LEVELUP_TIMEZONE", DEFAULT_TIMEZONE) or DEFAULT_TIMEZONE,
        log_level=_lookup(secrets, "LOG_LEVEL", "INFO") or "INFO",
    )
