"""
Chat service for the Forsee AI gateway.

Conversation state lives with the caller: every request carries the full
history, which is replayed into a fresh model session.
"""
from typing import Any, Dict, List, Optional

import httpx

from forsee_ai.services.llm_provider import llm_chat

CHAT_MAX_OUTPUT_TOKENS = 1000

CHAT_SYSTEM_PROMPT = """
You are "Forsee AI", an advanced industrial predictive maintenance assistant.
Your goal is to assist machine operators, engineers, and plant managers in ensuring optimal equipment health.

Traits:
- Professional, technical, yet accessible.
- Proactive in suggesting safety checks.
- Knowledgeable about industrial machinery (turbines, pumps, compressors, conveyor belts, etc.).

Capabilities:
- Explaining failure modes (e.g., "What causes bearing seizure?").
- Recommending maintenance actions.
- Interpreting technical sensor data concepts (vibration analysis, thermography).
- Helping users navigate the Forsee AI dashboard (conceptually).

Guidelines:
- If asked about specific real-time data that you don't have access to, politely explain you are an AI assistant and ask the user to provide the readings or check the dashboard.
- Keep answers concise and actionable.
- Prioritize safety in all recommendations.
"""


def _turn_to_dict(turn: Any) -> Dict[str, str]:
    if hasattr(turn, "model_dump"):
        turn = turn.model_dump()
    content = turn.get("content")
    if content is None:
        content = "".join(part.get("text", "") for part in turn.get("parts") or [])
    return {"role": turn.get("role", "user"), "content": content}


def normalize_history(history: Optional[List[Any]]) -> List[Dict[str, str]]:
    """Flatten caller turns ({role, content} or {role, parts}) into {role, content}."""
    if not history:
        return []
    return [_turn_to_dict(turn) for turn in history]


async def chat(
    message: str,
    history: Optional[List[Any]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Send a message after replaying the caller's history.

    Returns:
        The model's reply text, verbatim
    """
    turns = normalize_history(history)
    return await llm_chat(
        CHAT_SYSTEM_PROMPT,
        turns,
        message,
        max_output_tokens=CHAT_MAX_OUTPUT_TOKENS,
        http_client=http_client,
    )
