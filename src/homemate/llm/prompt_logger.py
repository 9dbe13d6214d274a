"""
HomeMate - Prompt Logger.

Writes every LLM exchange to prompt_logs/<session>/ as markdown.
Enabled via HOMEMATE_LOG_PROMPTS=1 or the CLI --log-prompts flag.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any

LOG_PROMPTS = os.getenv("HOMEMATE_LOG_PROMPTS", "0") == "1"
LOG_DIR = Path("prompt_logs")

_session_id: str | None = None
_call_counter: int = 0


def enable_prompt_logging(enabled: bool = True) -> None:
    """Enable or disable prompt logging."""
    global LOG_PROMPTS
    LOG_PROMPTS = enabled
    if enabled:
        LOG_DIR.mkdir(exist_ok=True)


def _get_session_dir() -> Path:
    global _session_id
    if _session_id is None:
        _session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_dir = LOG_DIR / _session_id
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def _format_messages(messages: list[dict[str, Any]]) -> str:
    sections = []
    for message in messages:
        role = message.get("role", "unknown")
        body = message.get("content")
        if message.get("tool_calls"):
            body = f"{body or ''}\n\ntool_calls: {json.dumps(message['tool_calls'], default=str)}"
        sections.append(f"### {role}\n\n```\n{body}\n```")
    return "\n\n".join(sections)


def log_prompt(
    *,
    node: str,
    model: str,
    messages: list[dict[str, Any]],
    temperature: float | None = None,
    response: Any = None,
    error: str | None = None,
) -> Path | None:
    """
    Log one model call.

    Args:
        node: Which caller made the call (weekly_generate, agent_chat)
        model: Model name sent to the provider
        messages: Chat messages sent
        temperature: Sampling temperature
        response: Raw message content or assistant message
        error: Error string if the call failed

    Returns:
        Path to the log file, or None if logging is disabled
    """
    if not LOG_PROMPTS:
        return None

    global _call_counter
    _call_counter += 1

    filepath = _get_session_dir() / f"{_call_counter:02d}_{node}.md"

    content = f"""# LLM Call: {node}

**Time:** {datetime.now().isoformat()}
**Model:** {model}
**Temperature:** {temperature}

---

## Messages

{_format_messages(messages)}

---

## Response

"""

    if error:
        content += f"**ERROR:** {error}\n"
    elif response is not None:
        if hasattr(response, "model_dump"):
            response = response.model_dump()
        content += f"```\n{json.dumps(response, indent=2, default=str, ensure_ascii=False)}\n```\n"
    else:
        content += "(No response)\n"

    filepath.write_text(content, encoding="utf-8")
    return filepath


def get_session_log_dir() -> Path | None:
    """Get the current session's log directory, if logging is enabled."""
    if not LOG_PROMPTS:
        return None
    return _get_session_dir()


def reset_session() -> None:
    """Reset the session (for testing or a new run)."""
    global _session_id, _call_counter
    _session_id = None
    _call_counter = 0
