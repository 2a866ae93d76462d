"""OpenAI and OpenAI-compatible providers (OpenAI, OpenRouter, LM Studio, etc.) via Chat Completions."""

import logging

from openai import AsyncOpenAI

from musketeer.llm.protocol import LLMMessage, ProviderConfig

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider:
    provider_type = "openai_compatible"

    def __init__(self) -> None:
        self._clients: dict[tuple[str, str | None], AsyncOpenAI] = {}

    def _client(self, config: ProviderConfig, api_key: str | None) -> AsyncOpenAI:
        key = (config.id, api_key)
        client = self._clients.get(key)
        if client is None:
            client = AsyncOpenAI(
                base_url=config.base_url,
                api_key=api_key or "not-required",
                default_headers=config.default_headers or None,
                timeout=config.timeout,
            )
            self._clients[key] = client
        return client

    async def generate(
        self,
        messages: list[LLMMessage],
        config: ProviderConfig,
        model: str,
        api_key: str | None,
    ) -> str:
        kwargs: dict = {"model": model, "messages": messages}
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        logger.debug("openai_compatible: %s calling %s", config.id, model)
        resp = await self._client(config, api_key).chat.completions.create(**kwargs)
        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""
