"""OpenAI-compatible chat-completion provider using openai SDK with native async."""

import asyncio
import logging
import time

from openai import AsyncOpenAI

from config.config_loader import EndpointConfig
from gotowork.models import ProviderVote
from gotowork.providers.base import AIProvider, ProviderError
from gotowork.verdict import parse_verdict

logger = logging.getLogger(__name__)

MAX_TOKENS = 256


class OpenAICompatibleProvider(AIProvider):
    """Any endpoint speaking the OpenAI chat-completion contract."""

    def __init__(self, endpoint: EndpointConfig) -> None:
        self._endpoint = endpoint
        if not endpoint.api_key:
            raise ProviderError(self.name(), "Missing API key")
        if not endpoint.api_base:
            raise ProviderError(self.name(), "api_base is required")
        # The ensemble abandons slow providers; SDK-level retries would only stretch that out
        self._client = AsyncOpenAI(
            api_key=endpoint.api_key,
            base_url=endpoint.api_base,
            max_retries=0,
            timeout=endpoint.timeout_sec,
        )

    def name(self) -> str:
        return f"{self._endpoint.provider}/{self._endpoint.model}"

    def model_string(self) -> str:
        return self._endpoint.model

    async def judge(self, system_prompt: str, transcript_text: str) -> ProviderVote:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._endpoint.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": transcript_text},
                    ],
                    response_format={"type": "json_object"},
                    max_tokens=MAX_TOKENS,
                    temperature=0,
                ),
                timeout=self._endpoint.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self.name(), f"Request timed out after {self._endpoint.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self.name(), f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self.name(), "Empty response content")

        verdict = parse_verdict(choice.message.content)
        if verdict is None:
            raise ProviderError(self.name(), f"Unparseable verdict: {choice.message.content[:200]!r}")

        should_continue = verdict["should_continue"]
        rationale = str(verdict.get("reason") or "").strip() or None

        logger.info(
            "%s voted %s in %.2fs: %s",
            self.name(),
            "continue" if should_continue else "stop",
            latency,
            rationale,
        )

        return ProviderVote(
            provider_id=self._endpoint.provider,
            model_id=self._endpoint.model,
            should_continue=should_continue,
            rationale=rationale,
            latency_sec=latency,
        )
