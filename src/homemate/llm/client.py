"""
HomeMate - LLM Client.

Talks to any OpenAI-compatible chat-completion endpoint through the
openai SDK. Zhipu GLM is used when ZHIPUAI_API_KEY is set, otherwise the
HEALTH_LLM_* settings must all be present.

The client never retries: a failed call is reported to the caller, which
decides whether to skip or fail.
"""

from dataclasses import dataclass
from typing import Any, Literal

from openai import AsyncOpenAI

from homemate.config import ZHIPU_DEFAULT_BASE_URL, ZHIPU_DEFAULT_MODEL, get_settings
from homemate.llm.prompt_logger import log_prompt

GENERATION_TEMPERATURE = 0.0
CHAT_TEMPERATURE = 0.3


@dataclass(frozen=True)
class LLMConfig:
    provider: Literal["zhipu", "openai_compatible"]
    api_key: str
    model: str
    base_url: str


_client: AsyncOpenAI | None = None
_client_config: LLMConfig | None = None


def get_llm_config() -> LLMConfig | None:
    """Resolve provider settings, or None if no provider is configured."""
    settings = get_settings()

    zhipu_key = (settings.zhipuai_api_key or "").strip()
    if zhipu_key:
        return LLMConfig(
            provider="zhipu",
            api_key=zhipu_key,
            model=settings.zhipuai_model.strip() or ZHIPU_DEFAULT_MODEL,
            base_url=(settings.zhipuai_api_base.strip() or ZHIPU_DEFAULT_BASE_URL).rstrip("/"),
        )

    api_key = (settings.health_llm_api_key or "").strip()
    model = (settings.health_llm_model or "").strip()
    base_url = (settings.health_llm_api_base or "").strip()
    if not api_key or not model or not base_url:
        return None

    return LLMConfig(
        provider="openai_compatible",
        api_key=api_key,
        model=model,
        base_url=base_url.rstrip("/"),
    )


def _require_config() -> LLMConfig:
    config = get_llm_config()
    if config is None:
        raise RuntimeError("Missing LLM configuration")
    return config


def get_raw_async_client() -> AsyncOpenAI:
    """
    Get the AsyncOpenAI client for the configured provider.

    Reuses the client until the configuration changes.
    """
    global _client, _client_config

    config = _require_config()
    if _client is None or _client_config != config:
        _client = AsyncOpenAI(api_key=config.api_key, base_url=config.base_url)
        _client_config = config

    return _client


def extract_text(content: Any) -> str | None:
    """
    Plain text from a message content value.

    Content may be a string, a list of parts (strings, {"text": ...} dicts
    or objects with a .text attribute), or a single part.
    """
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        pieces = []
        for part in content:
            if isinstance(part, str):
                pieces.append(part)
            elif isinstance(part, dict) and "text" in part:
                pieces.append(str(part.get("text") or ""))
            elif hasattr(part, "text"):
                pieces.append(str(part.text or ""))
        return "".join(pieces) or None

    if isinstance(content, dict) and "text" in content:
        return str(content.get("text") or "")
    if content is not None and hasattr(content, "text"):
        return str(content.text or "")

    return None


async def call_llm_chat(
    *,
    messages: list[dict[str, Any]],
    temperature: float = GENERATION_TEMPERATURE,
    node_name: str = "chat",
) -> Any:
    """
    Single chat completion, no tools.

    Returns:
        The raw message content from the first choice (usually a string).
    """
    config = _require_config()
    client = get_raw_async_client()

    try:
        response = await client.chat.completions.create(
            model=config.model,
            messages=messages,
            temperature=temperature,
        )
    except Exception as e:
        log_prompt(node=node_name, model=config.model, messages=messages, temperature=temperature, error=str(e))
        raise

    content = response.choices[0].message.content
    log_prompt(node=node_name, model=config.model, messages=messages, temperature=temperature, response=content)
    return content


async def call_llm_with_tools(
    *,
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]],
    temperature: float = CHAT_TEMPERATURE,
    node_name: str = "agent",
) -> Any:
    """
    Chat completion with function tools available.

    Returns:
        The assistant message of the first choice (content + tool_calls).
    """
    config = _require_config()
    client = get_raw_async_client()

    try:
        response = await client.chat.completions.create(
            model=config.model,
            messages=messages,
            tools=tools,
            temperature=temperature,
        )
    except Exception as e:
        log_prompt(node=node_name, model=config.model, messages=messages, temperature=temperature, error=str(e))
        raise

    message = response.choices[0].message
    log_prompt(
        node=node_name,
        model=config.model,
        messages=messages,
        temperature=temperature,
        response={
            "content": message.content,
            "tool_calls": [
                {"name": call.function.name, "arguments": call.function.arguments}
                for call in (message.tool_calls or [])
            ],
        },
    )
    return message


async def invoke_generation_model(messages: list[dict[str, Any]]) -> Any:
    """Deterministic call used by the weekly plan generator."""
    return await call_llm_chat(
        messages=messages,
        temperature=GENERATION_TEMPERATURE,
        node_name="weekly_generate",
    )
