"""
Completion providers for the loan advisor chat.

One capability, `complete(system_prompt, messages) -> text`, with an OpenAI
and a Claude implementation. The provider is picked by `chat_provider` in
settings; the chat orchestration never knows which vendor it talks to.
"""

from typing import Optional, Protocol

import anthropic
import openai

from lenddesk.config import Settings, get_settings


class CompletionProvider(Protocol):
    name: str

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        *,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        """
        Args:
            system_prompt: Instructions for the model
            messages: Chat turns as {"role": "user"|"assistant", "content": str}

        Returns:
            Reply text (may be empty)
        """
        ...


class OpenAICompletionProvider:
    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o", client: Optional[openai.AsyncOpenAI] = None):
        self.model = model
        self.client = client or openai.AsyncOpenAI(api_key=api_key)

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        *,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "system", "content": system_prompt}] + messages,
            temperature=temperature,
            max_tokens=max_tokens
        )
        return response.choices[0].message.content or ""


class AnthropicCompletionProvider:
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        client: Optional[anthropic.AsyncAnthropic] = None
    ):
        self.model = model
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        *,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=_merge_consecutive_roles(messages)
        )

        final_text = ""
        for block in response.content:
            if hasattr(block, "text"):
                final_text += block.text
        return final_text


def _merge_consecutive_roles(messages: list[dict]) -> list[dict]:
    """
    Claude wants strictly alternating user/assistant turns starting with user.
    Merge neighbours with the same role and drop a leading assistant turn.
    """
    merged: list[dict] = []
    for message in messages:
        if message["role"] not in ("user", "assistant"):
            continue
        if merged and merged[-1]["role"] == message["role"]:
            merged[-1] = {
                "role": message["role"],
                "content": merged[-1]["content"] + "\n\n" + message["content"]
            }
        else:
            merged.append({"role": message["role"], "content": message["content"]})

    while merged and merged[0]["role"] != "user":
        merged.pop(0)
    return merged


def build_completion_provider(settings: Settings) -> CompletionProvider:
    if settings.chat_provider == "openai":
        return OpenAICompletionProvider(settings.openai_api_key, settings.openai_chat_model)
    if settings.chat_provider == "anthropic":
        return AnthropicCompletionProvider(settings.anthropic_api_key, settings.anthropic_chat_model)
    raise ValueError(f"Unknown chat provider: {settings.chat_provider}")


# Singleton instance
_completion_provider: Optional[CompletionProvider] = None


def get_completion_provider() -> CompletionProvider:
    global _completion_provider
    if _completion_provider is None:
        _completion_provider = build_completion_provider(get_settings())
    return _completion_provider
