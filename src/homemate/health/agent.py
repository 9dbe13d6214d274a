"""
HomeMate - Health chat agent.

LangGraph loop over the model and the plan editing tools:

    START -> agent -> (tool calls?) -> tools -> agent -> ... -> END

The agent stops when the model answers without tool calls or after
MAX_TOOL_ROUNDS rounds of tool execution.
"""

import json
import logging
from typing import Any, TypedDict

from langgraph.graph import END, StateGraph

from homemate.health.agent_tools import TOOL_SCHEMAS, AgentToolContext, run_tool
from homemate.llm.client import CHAT_TEMPERATURE, call_llm_with_tools, extract_text

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 8

SYSTEM_PROMPT = """You are a health assistant. Use tools to update plans when needed.
Context includes weekStart, timezone, and optional selection fields. Use raw slotType text as provided.
When updating plans, call tools with JSON input strings. Keep replies concise and helpful."""


class HealthAgentState(TypedDict, total=False):
    """State passed between the agent and tools nodes."""

    tool_context: AgentToolContext
    messages: list[dict[str, Any]]
    pending_tool_calls: list[dict[str, Any]]
    tool_rounds: int
    reply: str | None


def build_user_message(message: str, week_start: str, timezone: str, selection: dict[str, Any] | None) -> str:
    context = json.dumps(
        {"weekStart": week_start, "timezone": timezone, "selected": selection},
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return f"User message: {message}\nContext: {context}\nReturn plain text for the reply."


# =============================================================================
# Nodes
# =============================================================================


async def agent_node(state: HealthAgentState) -> dict[str, Any]:
    """Ask the model for the next move."""
    messages = state["messages"]
    message = await call_llm_with_tools(
        messages=messages,
        tools=TOOL_SCHEMAS,
        temperature=CHAT_TEMPERATURE,
        node_name="agent_chat",
    )

    tool_calls = [
        {
            "id": call.id,
            "type": "function",
            "function": {"name": call.function.name, "arguments": call.function.arguments},
        }
        for call in (message.tool_calls or [])
    ]

    assistant_message: dict[str, Any] = {"role": "assistant", "content": message.content}
    if tool_calls:
        assistant_message["tool_calls"] = tool_calls

    return {
        "messages": [*messages, assistant_message],
        "pending_tool_calls": tool_calls,
        "reply": None if tool_calls else extract_text(message.content),
    }


async def tools_node(state: HealthAgentState) -> dict[str, Any]:
    """Run every tool call from the last assistant message."""
    context = state["tool_context"]
    tool_messages = []
    for call in state.get("pending_tool_calls", []):
        result = run_tool(call["function"]["name"], call["function"]["arguments"], context)
        tool_messages.append({"role": "tool", "tool_call_id": call["id"], "content": result})

    return {
        "messages": [*state["messages"], *tool_messages],
        "pending_tool_calls": [],
        "tool_rounds": state.get("tool_rounds", 0) + 1,
    }


def should_run_tools(state: HealthAgentState) -> str:
    if not state.get("pending_tool_calls"):
        return "end"
    if state.get("tool_rounds", 0) >= MAX_TOOL_ROUNDS:
        logger.warning(f"Agent hit {MAX_TOOL_ROUNDS} tool rounds without a reply")
        return "end"
    return "tools"


# =============================================================================
# Graph
# =============================================================================


def create_health_agent_graph():
    """Build and compile the agent graph."""
    graph = StateGraph(HealthAgentState)

    graph.add_node("agent", agent_node)
    graph.add_node("tools", tools_node)

    graph.set_entry_point("agent")
    graph.add_conditional_edges(
        "agent",
        should_run_tools,
        {
            "tools": "tools",
            "end": END,
        },
    )
    graph.add_edge("tools", "agent")

    return graph.compile()


_graph = None


def get_health_agent_graph():
    global _graph
    if _graph is None:
        _graph = create_health_agent_graph()
    return _graph


async def run_health_agent(
    message: str,
    context: AgentToolContext,
    selection: dict[str, Any] | None = None,
) -> str | None:
    """
    Run one chat turn.

    Returns:
        The trimmed reply text, or None if the model gave no text reply.

    Raises:
        Exception: whatever the model provider raised.
    """
    initial_state: HealthAgentState = {
        "tool_context": context,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_message(message, context.week_start, context.timezone, selection)},
        ],
        "pending_tool_calls": [],
        "tool_rounds": 0,
        "reply": None,
    }

    # Each round is two graph steps (agent + tools)
    final_state = await get_health_agent_graph().ainvoke(
        initial_state,
        {"recursion_limit": 2 * MAX_TOOL_ROUNDS + 3},
    )

    reply = final_state.get("reply")
    return reply.strip() if reply else None
