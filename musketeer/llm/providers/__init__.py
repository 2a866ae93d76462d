"""Built-in LLM providers."""

from musketeer.llm.providers.anthropic import AnthropicProvider
from musketeer.llm.providers.cli import CliProvider
from musketeer.llm.providers.mock import MockProvider
from musketeer.llm.providers.openai_compatible import OpenAICompatibleProvider

__all__ = ["AnthropicProvider", "CliProvider", "MockProvider", "OpenAICompatibleProvider"]
