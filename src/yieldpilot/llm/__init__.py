"""Language-model clients."""

from .base import LLMClient, SizeClass
from .groq_client import GroqLLMClient

__all__ = ["GroqLLMClient", "LLMClient", "SizeClass"]
