"""Anthropic provider via LiteLLM (openai-agents[litellm])."""

from musketeer.llm.protocol import LLMMessage, ProviderConfig


class AnthropicProvider:
    """Anthropic API via LiteLLM. Requires: pip install 'openai-agents[litellm]'."""

    provider_type = "anthropic"

    async def generate(
        self,
        messages: list[LLMMessage],
        config: ProviderConfig,
        model: str,
        api_key: str | None,
    ) -> str:
        try:
            import litellm
        except ImportError as e:
            raise ImportError(
                "Anthropic provider requires: pip install 'openai-agents[litellm]'"
            ) from e
        # LiteLLM model name format: anthropic/claude-3-5-sonnet-...
        litellm_model = model if model.startswith("anthropic/") else f"anthropic/{model}"
        kwargs: dict = {
            "model": litellm_model,
            "messages": messages,
            "api_key": api_key,
            "timeout": config.timeout,
        }
        if config.base_url:
            kwargs["api_base"] = config.base_url
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        resp = await litellm.acompletion(**kwargs)
        return resp.choices[0].message.content or ""
