"""HomeMate LLM access."""

from homemate.llm.client import call_llm_chat, call_llm_with_tools, extract_text, get_llm_config

__all__ = ["call_llm_chat", "call_llm_with_tools", "extract_text", "get_llm_config"]
