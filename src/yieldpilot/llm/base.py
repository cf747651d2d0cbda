"""Language-model interface consumed by the field extractors."""

from enum import Enum
from typing import Protocol


class SizeClass(Enum):
    """Relative model size requested for a completion."""

    SMALL = "small"
    LARGE = "large"


class LLMClient(Protocol):
    """Anything that can complete a prompt.

    Implementations raise ``LLMError`` when no completion can be produced.
    """

    async def complete(self, prompt: str, size_class: SizeClass = SizeClass.SMALL) -> str:
        ...
