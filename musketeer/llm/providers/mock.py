"""Offline provider: always reports the task as complete. Useful for dry runs."""

import json

from musketeer.llm.protocol import LLMMessage, ProviderConfig


class MockProvider:
    provider_type = "mock"

    async def generate(
        self,
        messages: list[LLMMessage],
        config: ProviderConfig,
        model: str,
        api_key: str | None,
    ) -> str:
        return json.dumps(
            {
                "thought": "Mock task completed.",
                "action": "task_complete",
                "args": {"result": "Done"},
            }
        )
