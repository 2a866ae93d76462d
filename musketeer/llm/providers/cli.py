"""Provider backed by a local CLI agent (e.g. gemini-cli) invoked once per completion.

The command template comes from ProviderConfig.extra["command"] and must
contain {prompt}; {model} is optional. The API key, when present, is passed in
the environment variable named by extra["api_key_env"].
"""

import asyncio
import logging
import os
import shlex

from musketeer.llm.protocol import LLMMessage, ProviderConfig, ProviderError

logger = logging.getLogger(__name__)


def flatten_messages(messages: list[LLMMessage]) -> str:
    return "\n".join(f"{m['role']}: {m['content']}" for m in messages)


def build_run_args(command_template: str, prompt: str, model: str) -> list[str]:
    stripped = command_template.strip()
    if not stripped:
        raise ProviderError("CLI provider command template is empty.")
    if "{prompt}" not in stripped:
        raise ProviderError("CLI provider command template must include {prompt}.")
    return [
        part.replace("{prompt}", prompt).replace("{model}", model)
        for part in shlex.split(stripped)
    ]


class CliProvider:
    provider_type = "cli"

    async def generate(
        self,
        messages: list[LLMMessage],
        config: ProviderConfig,
        model: str,
        api_key: str | None,
    ) -> str:
        run_args = build_run_args(
            str(config.extra.get("command", "")), flatten_messages(messages), model
        )
        env = os.environ.copy()
        key_env = config.extra.get("api_key_env")
        if key_env and api_key:
            env[str(key_env)] = api_key
        try:
            proc = await asyncio.create_subprocess_exec(
                *run_args,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ProviderError(f"CLI provider command not found: {run_args[0]}") from e
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=config.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.communicate()
            raise ProviderError(f"CLI provider timed out after {config.timeout:g}s") from None
        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="ignore").strip()
            logger.error("cli provider %s exited with %s: %s", config.id, proc.returncode, err)
            raise ProviderError(f"CLI provider exited with code {proc.returncode}: {err}")
        return stdout.decode("utf-8", errors="ignore").strip()
