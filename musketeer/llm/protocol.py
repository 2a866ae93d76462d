"""LLM provider protocol, message type and provider configuration."""

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, TypedDict, runtime_checkable


class LLMMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


class UnknownProviderError(KeyError):
    """Requested provider is not configured and no default fallback exists."""

    def __init__(self, provider_name: str) -> None:
        super().__init__(provider_name)
        self.provider_name = provider_name

    def __str__(self) -> str:
        return f"Unknown LLM provider {self.provider_name!r} and no default provider configured"


class ProviderError(RuntimeError):
    """Provider call failed (process exit, empty response, SDK error)."""


@dataclass
class ProviderConfig:
    """Provider configuration from settings.yaml (llm.providers.<id>)."""

    id: str
    type: str  # openai_compatible | anthropic | cli | mock
    base_url: str | None = None
    api_key_secret: str | None = None
    api_key_literal: str | None = None
    default_headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 60.0
    temperature: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class LLMProvider(Protocol):
    """Contract for an LLM backend: conversation in, single completion text out."""

    provider_type: str

    async def generate(
        self,
        messages: list[LLMMessage],
        config: ProviderConfig,
        model: str,
        api_key: str | None,
    ) -> str: ...
