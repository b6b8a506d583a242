"""
Chat-completions client. DeepSeek speaks the OpenAI wire format, so both
providers go through the openai SDK with a different base_url.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from levelup.errors import LLMError
from levelup.log import get_logger

log = get_logger("llm")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000


@dataclass(frozen=True)
class Provider:
    name: str
    base_url: str
    model: str
    env_key: str


PROVIDERS: Dict[str, Provider] = {
    "deepseek": Provider("deepseek", "https://api.deepseek.com/v1", "deepseek-chat", "DEEPSEEK_API_KEY"),
    "openai": Provider("openai", "https://api.openai.com/v1", "gpt-4o-mini", "OPENAI_API_KEY"),
}


def get_provider(name: str) -> Provider:
    try:
        return PROVIDERS[(name or "").lower()]
    except KeyError:
        raise LLMError(f"Unknown LLM provider: {name}") from None


def get_client(provider: Provider, api_key: Optional[str]) -> OpenAI:
    if not api_key:
        raise LLMError(f"{provider.env_key} environment variable not set")
    return OpenAI(api_key=api_key, base_url=provider.base_url)


def chat(
    messages: List[Dict[str, str]],
    *,
    provider: str,
    api_key: Optional[str],
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> str:
    p = get_provider(provider)
    client = get_client(p, api_key)
    log.info("Calling %s (%s)", p.name, p.model)
    try:
        resp = client.chat.completions.create(
            model=p.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except OpenAIError as exc:
        log.error("LLM request to %s failed", p.name, exc_info=True)
        raise LLMError(f"LLM request failed: {exc}") from exc

    content = (resp.choices[0].message.content or "").strip() if resp.choices else ""
    if not content:
        raise LLMError("The model returned an empty response.")
    return content
