"""Client for the hosted generative-language service.

Grading and the deep-dive tutor both talk to the model through
OpenAI-compatible chat-completion endpoints:

- gemini: Google Gemini's OpenAI-compatible endpoint (default)
- openai: OpenAI API
- lmstudio: local LM Studio server, no key needed
"""

from __future__ import annotations

import json
import random
import re
import time
from dataclasses import dataclass, field
from typing import Any, Literal

import openai
import structlog
from openai import OpenAI

from studyreview.config.app_config import GEMINI_HOST, load_app_config
from studyreview.utils.text_utils import strip_think

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

Provider = Literal["gemini", "openai", "lmstudio"]
Role = Literal["system", "user", "assistant"]

# Placeholder keys for servers that ignore authentication
KEYLESS_PROVIDERS = {"lmstudio": "lm-studio"}

REPAIR_PROMPT = """上一次的输出不是合法的 JSON 对象：
<<<
{previous}
>>>

请只输出修正后的 JSON 对象，不要任何解释，也不要 markdown 代码块。"""

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def _loads_object(candidate: str) -> dict[str, Any] | None:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Pull a JSON object out of a model reply.

    The whole reply is tried first, then the first fenced code block,
    then the span from the first "{" to the last "}". Arrays and scalars
    are rejected.
    """
    cleaned = strip_think(text)
    candidates = [cleaned]

    fenced = _FENCED_BLOCK.search(cleaned)
    if fenced:
        candidates.append(fenced.group(1).strip())

    first, last = cleaned.find("{"), cleaned.rfind("}")
    if 0 <= first < last:
        candidates.append(cleaned[first : last + 1])

    for candidate in candidates:
        parsed = _loads_object(candidate)
        if parsed is not None:
            return parsed
    return None


def apply_proxy(base_url: str, proxy_url: str | None) -> str:
    """Route requests for the provider host through a mirror, if configured."""
    if proxy_url and base_url.startswith(GEMINI_HOST):
        return proxy_url.rstrip("/") + base_url[len(GEMINI_HOST):]
    return base_url


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LLMConfig:
    """Connection and sampling settings for one provider."""

    provider: Provider = "gemini"
    base_url: str = f"{GEMINI_HOST}/v1beta/openai/"
    model: str = "gemini-2.5-flash-lite"
    chat_model: str | None = None
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: int = 60
    api_keys: list[str] = field(default_factory=list)
    supports_json_object: bool = True

    @classmethod
    def from_app_config(cls, provider: str | None = None) -> LLMConfig:
        """Build configuration from the application config and environment."""
        app_config = load_app_config()
        provider = provider or app_config.review.default_provider

        pconfig = app_config.providers.get(provider)
        if pconfig is None:
            logger.warning("provider_not_configured", provider=provider)
            return cls()

        api_keys = pconfig.get_api_keys()
        if not api_keys and provider in KEYLESS_PROVIDERS:
            api_keys = [KEYLESS_PROVIDERS[provider]]

        return cls(
            provider=provider,  # type: ignore[arg-type]
            base_url=apply_proxy(pconfig.base_url or "", app_config.review.proxy_url),
            model=pconfig.model_for("grading"),
            chat_model=pconfig.model_for("chat"),
            api_keys=api_keys,
            supports_json_object=pconfig.supports_json_object,
        )


@dataclass
class Message:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Reply text plus the bookkeeping the service sent back."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)


class LLMError(Exception):
    """The AI service could not produce a usable reply."""


class LLMConfigurationError(LLMError):
    """No API key configured."""


class LLMConnectionError(LLMError):
    """The service could not be reached or timed out."""


class LLMResponseError(LLMError):
    """The service answered, but not with what was asked for."""


# =============================================================================
# LLM CLIENT
# =============================================================================


class LLMClient:
    """Sends chat requests to the configured provider.

    With several API keys configured, every request draws one at random
    so load spreads over the pool.
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        provider: Provider | None = None,
        model: str | None = None,
    ):
        """
        Args:
            config: Settings to use; read from the app config when omitted
            provider: Provider to read from the app config
            model: Replaces the grading model
        """
        self.config = config or LLMConfig.from_app_config(provider)
        if model:
            self.config.model = model

        # SDK clients keyed by API key
        self._sdk: dict[str, OpenAI] = {}

        if not self.config.api_keys:
            logger.warning("llm_no_api_keys", provider=self.config.provider)

        logger.info(
            "llm_client_ready",
            provider=self.config.provider,
            grading_model=self.config.model,
            chat_model=self.config.chat_model,
            base_url=self.config.base_url,
            keys=len(self.config.api_keys),
        )

    @property
    def has_credentials(self) -> bool:
        """True if at least one API key is configured."""
        return bool(self.config.api_keys)

    def _sdk_client(self) -> OpenAI:
        if not self.config.api_keys:
            raise LLMConfigurationError(
                f"No API key configured for provider '{self.config.provider}'"
            )

        key = random.choice(self.config.api_keys)
        sdk = self._sdk.get(key)
        if sdk is None:
            sdk = OpenAI(base_url=self.config.base_url, api_key=key, timeout=self.config.timeout)
            self._sdk[key] = sdk
        return sdk

    def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
        model: str | None = None,
    ) -> LLMResponse:
        """Run one chat completion.

        json_mode asks for a JSON object response format where the
        provider supports it; callers still parse the text themselves.

        Raises:
            LLMConfigurationError: No API key is configured
            LLMConnectionError: The service is unreachable or timed out
            LLMResponseError: The reply carries no choices
            LLMError: The service rejected the request
        """
        sdk = self._sdk_client()

        payload: dict[str, Any] = dict(
            model=model or self.config.model,
            messages=[m.to_dict() for m in messages],
            temperature=self.config.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.config.max_tokens,
        )
        if json_mode and self.config.supports_json_object:
            payload["response_format"] = {"type": "json_object"}

        started = time.perf_counter()
        try:
            completion = sdk.chat.completions.create(**payload)
        except openai.APIConnectionError as e:
            # APITimeoutError is a subclass
            raise LLMConnectionError(
                f"{self.config.provider} unreachable at {self.config.base_url}: {e}"
            ) from e
        except openai.APIError as e:
            raise LLMError(f"{self.config.provider} request failed: {e}") from e
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        if not completion.choices:
            raise LLMResponseError("Reply contained no choices")

        usage: dict[str, int] = {}
        if completion.usage:
            for name in ("prompt_tokens", "completion_tokens", "total_tokens"):
                usage[name] = getattr(completion.usage, name)

        logger.debug(
            "llm_reply",
            provider=self.config.provider,
            model=completion.model,
            tokens=usage.get("total_tokens", 0),
            latency_ms=elapsed_ms,
        )

        return LLMResponse(
            content=completion.choices[0].message.content or "",
            model=completion.model,
            provider=self.config.provider,
            usage=usage,
            latency_ms=elapsed_ms,
        )

    def chat_json(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        max_retries: int = 1,
        model: str | None = None,
    ) -> dict[str, Any]:
        """Chat and parse the reply as a JSON object.

        An unparseable reply is shown back to the model with a request to
        fix it, up to max_retries times.

        Raises:
            LLMResponseError: No attempt yielded a JSON object
        """
        conversation = list(messages)
        first_reply = ""

        for attempt in range(max_retries + 1):
            reply = self.chat(
                conversation,
                temperature=temperature,
                max_tokens=max_tokens,
                json_mode=True,
                model=model,
            ).content
            if attempt == 0:
                first_reply = reply

            parsed = extract_json_object(reply)
            if parsed is not None:
                if attempt:
                    logger.info("json_repaired", attempts=attempt + 1)
                return parsed

            logger.warning(
                "json_unparseable",
                attempt=attempt + 1,
                preview=reply[:100],
                provider=self.config.provider,
            )
            conversation = messages + [
                Message(role="user", content=REPAIR_PROMPT.format(previous=reply[:1000]))
            ]

        raise LLMResponseError(f"Reply is not a JSON object: {first_reply[:200]}...")

    def simple_chat(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        model: str | None = None,
    ) -> str:
        """Single-turn chat with a system prompt; returns the reply text."""
        return self.chat(
            _single_turn(system_prompt, user_message), temperature=temperature, model=model
        ).content

    def simple_json(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        model: str | None = None,
    ) -> dict[str, Any]:
        return self.chat_json(
            _single_turn(system_prompt, user_message), temperature=temperature, model=model
        )

    def is_available(self) -> bool:
        """Whether the service answers a model listing with our key."""
        try:
            self._sdk_client().models.list()
        except (LLMConfigurationError, openai.APIError):
            return False
        return True


def _single_turn(system_prompt: str, user_message: str) -> list[Message]:
    return [
        Message(role="system", content=system_prompt),
        Message(role="user", content=user_message),
    ]
