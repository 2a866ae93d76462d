"""LLM gateway: multiple named providers behind one generate() call."""

from musketeer.llm.gateway import LLMGateway
from musketeer.llm.protocol import (
    LLMMessage,
    LLMProvider,
    ProviderConfig,
    ProviderError,
    UnknownProviderError,
)

__all__ = [
    "LLMGateway",
    "LLMMessage",
    "LLMProvider",
    "ProviderConfig",
    "ProviderError",
    "UnknownProviderError",
]
