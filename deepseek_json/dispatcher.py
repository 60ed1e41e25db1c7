"""DeepSeek request dispatcher: openai SDK transport, classification, bounded retry."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx
from openai import AsyncOpenAI

from config.config_loader import ClientConfig, RetryConfig
from deepseek_json.errors import DeepSeekError, classify_exception
from deepseek_json.models import Message, Role, StructuredResponse
from deepseek_json.parser import parse_structured_response
from deepseek_json.prompts import STRUCTURED_SYSTEM_PROMPT, build_structured_prompt

logger = logging.getLogger(__name__)

USER_AGENT = "deepseek_json/0.1.0"

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_backoff_sec: float = 0.5
    multiplier: float = 2.0

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(config.max_attempts, config.initial_backoff_sec, config.multiplier)


def validate_client_config(config: ClientConfig) -> None:
    """Reject unusable settings before any request is made.

    Raises:
        DeepSeekError: kind CONFIG_ERROR.
    """
    if not config.api_key.strip():
        raise DeepSeekError.config("API key cannot be empty")
    if not 0.0 <= config.temperature <= 2.0:
        raise DeepSeekError.config("Temperature must be between 0.0 and 2.0")
    if config.max_tokens <= 0:
        raise DeepSeekError.config("Max tokens must be greater than 0")
    if config.timeout_sec <= 0:
        raise DeepSeekError.config("Timeout must be greater than 0")
    if not config.base_url.strip():
        raise DeepSeekError.config("Base URL cannot be empty")


def _validate_retry(policy: RetryPolicy) -> None:
    if policy.max_attempts < 1:
        raise DeepSeekError.config("Retry attempts must be at least 1")
    if policy.initial_backoff_sec < 0 or policy.multiplier < 1:
        raise DeepSeekError.config("Backoff must be non-negative and non-shrinking")


def to_wire(messages: Sequence[Message]) -> list[dict[str, str]]:
    return [{"role": m.role.value, "content": m.content} for m in messages]


class RequestDispatcher:
    """Sends chat-completion requests to a DeepSeek-compatible endpoint.

    Configuration is fixed at construction; build a new dispatcher to change
    it. A single instance may serve many concurrent negotiation runs since no
    per-request state is kept on it.
    """

    def __init__(
        self,
        config: ClientConfig,
        retry: RetryPolicy | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        validate_client_config(config)
        self._config = config
        self._retry = retry or RetryPolicy()
        _validate_retry(self._retry)
        self._sleep = sleep
        # Retries are ours; the SDK's own retry loop stays off.
        self._client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=float(config.timeout_sec),
            max_retries=0,
            default_headers={"User-Agent": USER_AGENT},
            http_client=http_client,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def aclose(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def send(self, messages: Sequence[Message]) -> str:
        """Send one request carrying the full history and return the raw assistant text.

        No retry happens here; failures surface immediately as DeepSeekError.
        """
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=to_wire(messages),
                    response_format={"type": "json_object"},
                    max_tokens=self._config.max_tokens,
                    temperature=self._config.temperature,
                ),
                timeout=self._config.timeout_sec,
            )
        except Exception as exc:
            raise classify_exception(exc, self._config.timeout_sec) from exc

        latency = time.monotonic() - start

        # A non-JSON 2xx body comes back from the SDK as a plain string.
        choices = getattr(response, "choices", None)
        if not choices:
            raise DeepSeekError.parse("No choices in API response")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            raise DeepSeekError.parse("First choice has no message content")

        logger.info("DeepSeek exchange: %d messages, %.2fs", len(messages), latency)
        return content

    async def _send_request_once(self, user_input: str) -> StructuredResponse:
        timestamp = datetime.now(timezone.utc).isoformat()
        messages = [
            Message(Role.SYSTEM, STRUCTURED_SYSTEM_PROMPT),
            Message(Role.USER, build_structured_prompt(user_input, timestamp)),
        ]
        raw = await self.send(messages)
        return parse_structured_response(raw)

    async def send_request(self, user_input: str) -> StructuredResponse:
        """Single-shot structured query with bounded exponential backoff.

        SERVER_BUSY and NETWORK_ERROR are retried up to the policy's attempt
        cap; any other kind, or the last failure, is raised unchanged.
        """
        attempt = 1
        backoff = self._retry.initial_backoff_sec
        while True:
            try:
                return await self._send_request_once(user_input)
            except DeepSeekError as exc:
                if not exc.is_transient or attempt >= self._retry.max_attempts:
                    raise
                logger.warning(
                    "Request attempt %d failed: %s, retrying in %.1fs",
                    attempt,
                    exc,
                    backoff,
                )
                await self._sleep(backoff)
                attempt += 1
                backoff *= self._retry.multiplier
