"""Groq-backed LLMClient implementation."""

import asyncio
import logging
from typing import Any

from groq import AsyncGroq

from ..errors import LLMError
from .base import SizeClass

logger = logging.getLogger(__name__)


class GroqLLMClient:
    """LLMClient implementation that wraps AsyncGroq.

    Example:
        from groq import AsyncGroq
        from yieldpilot.llm import GroqLLMClient, SizeClass

        llm = GroqLLMClient(AsyncGroq(api_key="..."))
        text = await llm.complete("Extract the address...", SizeClass.SMALL)
    """

    def __init__(
        self,
        client: AsyncGroq,
        small_model: str = "llama-3.1-8b-instant",
        large_model: str = "llama-3.1-70b-versatile",
        timeout: float = 15.0,
    ) -> None:
        """Initialize the Groq LLM client wrapper.

        Args:
            client: The AsyncGroq client instance to wrap.
            small_model: Model used for SizeClass.SMALL.
            large_model: Model used for SizeClass.LARGE.
            timeout: Seconds before a completion is abandoned.
        """
        self._client = client
        self._models = {SizeClass.SMALL: small_model, SizeClass.LARGE: large_model}
        self._timeout = timeout

    def model_for(self, size_class: SizeClass) -> str:
        """Return the model name used for a size class."""
        return self._models[size_class]

    async def complete(self, prompt: str, size_class: SizeClass = SizeClass.SMALL) -> str:
        """Complete a prompt and return the text response.

        Args:
            prompt: The user prompt to complete.
            size_class: Which configured model to use.

        Returns:
            The LLM's text response.

        Raises:
            LLMError: The request failed or timed out.
        """
        messages: list[dict[str, Any]] = [{"role": "user", "content": prompt}]

        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model_for(size_class),
                    messages=messages,
                    temperature=0.1,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise LLMError(f"Completion timed out after {self._timeout}s") from e
        except Exception as e:
            raise LLMError(f"Completion failed: {e}") from e

        return response.choices[0].message.content or ""
