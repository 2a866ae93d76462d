"""LLMGateway: resolves a provider name to a configured backend and returns one completion."""

import logging
from typing import Any, Callable

from musketeer.board.models import AgentConfig
from musketeer.llm.protocol import (
    LLMMessage,
    LLMProvider,
    ProviderConfig,
    UnknownProviderError,
)
from musketeer.llm.providers import (
    AnthropicProvider,
    CliProvider,
    MockProvider,
    OpenAICompatibleProvider,
)

logger = logging.getLogger(__name__)

_PROVIDER_FIELDS = {
    "base_url",
    "api_key_secret",
    "api_key_literal",
    "default_headers",
    "timeout",
    "temperature",
}


def _dict_to_provider_config(provider_id: str, data: dict[str, Any]) -> ProviderConfig:
    return ProviderConfig(
        id=provider_id,
        type=str(data.get("type", "openai_compatible")),
        base_url=data.get("base_url"),
        api_key_secret=data.get("api_key_secret"),
        api_key_literal=data.get("api_key_literal"),
        default_headers=dict(data.get("default_headers") or {}),
        timeout=float(data.get("timeout", 60.0)),
        temperature=data.get("temperature"),
        extra={k: v for k, v in data.items() if k not in _PROVIDER_FIELDS | {"type"}},
    )


class LLMGateway:
    """Maps provider ids (from settings llm.providers) to provider backends by type."""

    def __init__(
        self,
        settings: dict[str, Any],
        secrets_getter: Callable[[str], str | None],
    ) -> None:
        self._secrets = secrets_getter
        self._provider_configs: dict[str, ProviderConfig] = {}
        self._providers: dict[str, LLMProvider] = {}
        llm_cfg = settings.get("llm") or {}
        self._default_provider: str | None = llm_cfg.get("default_provider")
        self._register_defaults()
        self._load(llm_cfg)

    def _register_defaults(self) -> None:
        for provider in (
            OpenAICompatibleProvider(),
            AnthropicProvider(),
            CliProvider(),
            MockProvider(),
        ):
            self._providers[provider.provider_type] = provider

    def _load(self, llm_cfg: dict[str, Any]) -> None:
        for pid, pdata in (llm_cfg.get("providers") or {}).items():
            if isinstance(pdata, dict):
                self._provider_configs[str(pid)] = _dict_to_provider_config(str(pid), pdata)
            else:
                logger.warning("llm: provider %s config must be a mapping, skipped", pid)

    def register(
        self, provider_id: str, provider: LLMProvider, config: ProviderConfig | None = None
    ) -> None:
        """Register a backend under its type and a provider id that uses it."""
        self._providers[provider.provider_type] = provider
        self._provider_configs[provider_id] = config or ProviderConfig(
            id=provider_id, type=provider.provider_type
        )

    @property
    def provider_ids(self) -> list[str]:
        return list(self._provider_configs)

    def _resolve_config(self, provider_name: str) -> ProviderConfig:
        cfg = self._provider_configs.get(provider_name)
        if cfg is not None:
            return cfg
        if self._default_provider and self._default_provider in self._provider_configs:
            logger.warning(
                "llm: unknown provider %r, falling back to %r",
                provider_name,
                self._default_provider,
            )
            return self._provider_configs[self._default_provider]
        raise UnknownProviderError(provider_name)

    def _resolve_key(self, cfg: ProviderConfig) -> str | None:
        if cfg.api_key_literal:
            return cfg.api_key_literal
        if cfg.api_key_secret:
            return self._secrets(cfg.api_key_secret)
        return None

    async def generate(
        self,
        messages: list[LLMMessage],
        provider_name: str,
        config: AgentConfig,
    ) -> str:
        """Return a single completion text for the conversation."""
        provider_cfg = self._resolve_config(provider_name)
        provider = self._providers.get(provider_cfg.type)
        if provider is None:
            raise UnknownProviderError(provider_cfg.type)
        api_key = config.credential or self._resolve_key(provider_cfg)
        return await provider.generate(messages, provider_cfg, config.model, api_key)
