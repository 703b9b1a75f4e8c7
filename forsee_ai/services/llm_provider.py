"""
LLM provider utilities for the Forsee AI gateway.

This module handles interactions with the hosted generative-text providers.
Gemini is called over its REST API; the others through their SDKs.
"""
import os
from typing import Any, Dict, List, Optional

import anthropic
import httpx
from mistralai import Mistral
from openai import AsyncOpenAI

from forsee_ai.config import get_llm_timeout

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"

# Provider name -> environment variable holding its credential, in detection order
PROVIDER_API_KEYS = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}

DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-haiku-latest",
    "mistral": "mistral-large-latest",
    "deepseek": "deepseek-chat",
}

# Anthropic requires an explicit output cap
DEFAULT_MAX_OUTPUT_TOKENS = 2048

ASSISTANT_ROLES = ("assistant", "model")


class LLMProviderError(Exception):
    """Error raised when a provider rejects or fails a request."""
    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


def check_llm_api_keys() -> Dict[str, str]:
    """Check that at least one LLM API key is available."""
    keys = {
        provider: os.getenv(env_name, "").strip()
        for provider, env_name in PROVIDER_API_KEYS.items()
    }
    if not any(keys.values()):
        raise RuntimeError(
            "No LLM API key found. Please set at least one of: "
            + ", ".join(PROVIDER_API_KEYS.values())
        )
    return keys


def get_llm_provider() -> str:
    provider = os.getenv("LLM_PROVIDER")
    if provider:
        provider = provider.lower()
        if provider not in PROVIDER_API_KEYS:
            raise ValueError(f"Unknown provider: {provider}")
        return provider
    for name, key in check_llm_api_keys().items():
        if key:
            return name
    raise RuntimeError("No LLM provider configured and no API key found.")


def get_api_key(provider: str) -> str:
    api_key = os.getenv(PROVIDER_API_KEYS[provider], "").strip()
    if not api_key:
        raise RuntimeError(f"{PROVIDER_API_KEYS[provider]} is not set in environment variables.")
    return api_key


def get_model_name(provider: str) -> str:
    return os.getenv(f"{provider.upper()}_MODEL", DEFAULT_MODELS[provider])


def to_provider_messages(history: List[Dict[str, str]], provider: str) -> List[Dict[str, Any]]:
    """
    Convert {role, content} turns into the provider's message format.

    'assistant' and 'model' are interchangeable on input.
    """
    messages = []
    for turn in history:
        is_assistant = turn.get("role") in ASSISTANT_ROLES
        content = turn.get("content") or ""
        if provider == "gemini":
            messages.append({
                "role": "model" if is_assistant else "user",
                "parts": [{"text": content}],
            })
        else:
            messages.append({
                "role": "assistant" if is_assistant else "user",
                "content": content,
            })
    return messages


def _gemini_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
        return body.get("error", {}).get("message") or response.text
    except ValueError:
        return response.text


def _extract_gemini_text(data: Dict[str, Any]) -> str:
    """Pull the reply text out of a generateContent response."""
    block_reason = (data.get("promptFeedback") or {}).get("blockReason")
    if block_reason:
        raise LLMProviderError("gemini", f"Prompt blocked: {block_reason}")

    candidates = data.get("candidates") or []
    if not candidates:
        raise LLMProviderError("gemini", "Response contained no candidates")

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts)
    if candidate.get("finishReason") == "SAFETY" and not text:
        raise LLMProviderError("gemini", "Candidate was blocked due to SAFETY")
    return text


async def _gemini_generate_content(
    payload: Dict[str, Any],
    http_client: Optional[httpx.AsyncClient] = None,
) -> str:
    """POST a generateContent request and return the reply text."""
    url = f"{GEMINI_BASE_URL}/models/{get_model_name('gemini')}:generateContent"
    headers = {
        "x-goog-api-key": get_api_key("gemini"),
        "Content-Type": "application/json",
    }

    if http_client is not None:
        response = await http_client.post(url, headers=headers, json=payload)
    else:
        async with httpx.AsyncClient(timeout=get_llm_timeout()) as client:
            response = await client.post(url, headers=headers, json=payload)

    if response.status_code >= 400:
        raise LLMProviderError("gemini", _gemini_error_message(response), response.status_code)
    return _extract_gemini_text(response.json())


def _openai_client(provider: str) -> AsyncOpenAI:
    if provider == "deepseek":
        return AsyncOpenAI(
            api_key=get_api_key("deepseek"),
            base_url=DEEPSEEK_BASE_URL,
            http_client=httpx.AsyncClient(timeout=get_llm_timeout())
        )
    return AsyncOpenAI(
        api_key=get_api_key("openai"),
        http_client=httpx.AsyncClient(timeout=get_llm_timeout())
    )


async def _complete(
    provider: str,
    system_prompt: str,
    messages: List[Dict[str, Any]],
    max_output_tokens: Optional[int] = None,
) -> str:
    """Run a chat-style completion against a non-Gemini provider."""
    model = get_model_name(provider)

    if provider in ("openai", "deepseek"):
        kwargs = {}
        if max_output_tokens:
            kwargs["max_tokens"] = max_output_tokens
        async with _openai_client(provider) as client:
            response = await client.chat.completions.create(
                model=model,
                messages=[{"role": "system", "content": system_prompt}] + messages,
                **kwargs
            )
        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise LLMProviderError(provider, "Response blocked by content filter (SAFETY)")
        return (choice.message.content or "").strip()

    elif provider == "anthropic":
        async with anthropic.AsyncAnthropic(
            api_key=get_api_key("anthropic"),
            timeout=get_llm_timeout()
        ) as anthropic_client:
            response = await anthropic_client.messages.create(
                model=model,
                max_tokens=max_output_tokens or DEFAULT_MAX_OUTPUT_TOKENS,
                system=system_prompt,
                messages=messages
            )
        if response.stop_reason == "refusal":
            raise LLMProviderError(provider, "Response refused by model (SAFETY)")
        return "".join(block.text for block in response.content if block.type == "text").strip()

    elif provider == "mistral":
        kwargs = {}
        if max_output_tokens:
            kwargs["max_tokens"] = max_output_tokens
        async with Mistral(
            api_key=get_api_key("mistral"),
            timeout_ms=int(get_llm_timeout() * 1000)
        ) as mistral_client:
            response = await mistral_client.chat.complete_async(
                model=model,
                messages=[{"role": "system", "content": system_prompt}] + messages,
                **kwargs
            )
        return (response.choices[0].message.content or "").strip()

    else:
        raise ValueError(f"Unknown provider: {provider}")


async def llm_generate(
    system_prompt: str,
    prompt: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Single-shot generation: an instruction prompt plus a request prompt."""
    provider = get_llm_provider()
    print(f"Generating content with {provider} ({get_model_name(provider)})")

    if provider == "gemini":
        # Both prompts go in as parts of one user turn
        payload = {
            "contents": [
                {"role": "user", "parts": [{"text": system_prompt}, {"text": prompt}]}
            ]
        }
        return await _gemini_generate_content(payload, http_client=http_client)

    return await _complete(provider, system_prompt, [{"role": "user", "content": prompt}])


async def llm_chat(
    system_prompt: str,
    history: List[Dict[str, str]],
    message: str,
    max_output_tokens: int,
    http_client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Replay history into a fresh session with a system instruction, then send message."""
    provider = get_llm_provider()
    print(f"Chatting with {provider} ({get_model_name(provider)})")

    messages = to_provider_messages(history, provider)
    messages += to_provider_messages([{"role": "user", "content": message}], provider)

    if provider == "gemini":
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": messages,
            "generationConfig": {"maxOutputTokens": max_output_tokens},
        }
        return await _gemini_generate_content(payload, http_client=http_client)

    return await _complete(provider, system_prompt, messages, max_output_tokens=max_output_tokens)
