"""Completion-service client.

Providers
---------
``groq`` (default)
    Groq's OpenAI-compatible endpoint through ``ChatOpenAI``.
    Requires ``GROQ_API_KEY``; model via ``GROQ_CHAT_MODEL``.

``openai``
    OpenAI chat completions.  Requires ``OPENAI_API_KEY``.

``ollama``
    A local Ollama server at ``OLLAMA_BASE_URL``.

Set ``LLM_PROVIDER`` in your ``.env`` to switch providers.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage

from aetherscribe.config import Settings, settings
from aetherscribe.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful AI assistant that answers questions based on the "
    "provided context. When referencing information, use footnote numbers [1] "
    "to cite sources. The footnotes are provided at the end of the context. "
    "If no context is provided, you'll answer based on your general knowledge."
)

EMPTY_RESPONSE = "Sorry, I couldn't generate a response."


def build_chat_model(config: Settings | None = None) -> Any:
    """Return a LangChain chat model for ``config.llm_provider``."""
    config = config or settings
    provider = config.llm_provider.lower()

    if provider in ("groq", "openai"):
        from langchain_openai import ChatOpenAI

        if provider == "groq":
            if not config.groq_api_key:
                raise EnvironmentError(
                    "GROQ_API_KEY environment variable is not set. "
                    "Set it or switch LLM_PROVIDER."
                )
            return ChatOpenAI(
                model=config.groq_chat_model,
                api_key=config.groq_api_key,
                base_url=config.groq_base_url,
                temperature=config.llm_temperature,
                max_tokens=config.llm_max_tokens,
            )
        if not config.openai_api_key:
            raise EnvironmentError(
                "OPENAI_API_KEY environment variable is not set. "
                "Set it or switch LLM_PROVIDER."
            )
        return ChatOpenAI(
            model=config.openai_chat_model,
            api_key=config.openai_api_key,
            temperature=config.llm_temperature,
            max_tokens=config.llm_max_tokens,
        )

    if provider == "ollama":
        from langchain_ollama import ChatOllama

        return ChatOllama(
            model=config.ollama_chat_model,
            base_url=config.ollama_base_url,
            temperature=config.llm_temperature,
            num_predict=config.llm_max_tokens,
        )

    raise ValueError(
        f"Unknown LLM_PROVIDER {config.llm_provider!r}; "
        "expected 'groq', 'openai' or 'ollama'."
    )


class CompletionClient:
    """Single-turn completion: one system instruction plus one user message."""

    def __init__(self, model: Any, system_prompt: str = SYSTEM_PROMPT) -> None:
        self._model = model
        self.system_prompt = system_prompt

    async def complete(self, user_content: str) -> str:
        """Return the model's reply to *user_content*.

        Raises:
            UpstreamServiceError: If the completion service call fails.
        """
        messages = [
            SystemMessage(content=self.system_prompt),
            HumanMessage(content=user_content),
        ]
        try:
            response = await self._model.ainvoke(messages)
        except Exception as exc:
            logger.error("Completion service call failed: %s", exc)
            raise UpstreamServiceError(f"Completion service failed: {exc}") from exc

        text = response.content if hasattr(response, "content") else str(response)
        if not isinstance(text, str):
            text = str(text)
        return text.strip() or EMPTY_RESPONSE
