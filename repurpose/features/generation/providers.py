"""
Text generation providers and the fallback chain.

Providers are tried in order (Gemini primary, Groq secondary). The first
success wins; when every provider fails the chain raises
AllProvidersFailedError carrying the last provider's message, which the
orchestrator classifies into a user-facing placeholder.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence
import logging

import groq
from google import genai

from repurpose.core.config import settings
from repurpose.core.logging import log_event

logger = logging.getLogger("repurpose")

GROQ_TEMPERATURE = 0.7
GROQ_MAX_TOKENS = 4096


class ProviderError(Exception):
    """A single provider failed; message is the underlying error text."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider


class AllProvidersFailedError(Exception):
    def __init__(self, last_error: str):
        self.last_error = last_error
        super().__init__(f"All AI providers failed. Last error: {last_error}")


@dataclass(frozen=True)
class GenerationResult:
    content: str
    provider: str


class TextProvider(Protocol):
    """Interface every generation backend implements."""

    name: str

    @property
    def configured(self) -> bool:
        ...

    def generate(self, prompt: str) -> str:
        """Return generated text or raise ProviderError."""
        ...


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate(self, prompt: str) -> str:
        if not self.configured:
            raise ProviderError("Gemini API key not configured", provider=self.name)
        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=prompt,
            )
        except Exception as e:
            raise ProviderError(str(e), provider=self.name) from e
        if response.text is None:
            # Blocked prompts come back with no candidates and a block reason
            feedback = getattr(response, "prompt_feedback", None)
            block_reason = getattr(feedback, "block_reason", None) if feedback is not None else None
            if block_reason:
                raise ProviderError(
                    f"Gemini response blocked by safety filters ({block_reason})",
                    provider=self.name,
                )
            raise ProviderError("Gemini returned an empty response", provider=self.name)
        return response.text


class GroqProvider:
    name = "groq"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        self.api_key = api_key if api_key is not None else settings.GROQ_API_KEY
        self.model = model or settings.GROQ_MODEL
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def _get_client(self):
        if self._client is None:
            self._client = groq.Groq(api_key=self.api_key)
        return self._client

    def generate(self, prompt: str) -> str:
        if not self.configured:
            raise ProviderError("Groq API key not configured", provider=self.name)
        try:
            completion = self._get_client().chat.completions.create(
                messages=[{"role": "user", "content": prompt}],
                model=self.model,
                temperature=GROQ_TEMPERATURE,
                max_tokens=GROQ_MAX_TOKENS,
            )
        except Exception as e:
            raise ProviderError(str(e), provider=self.name) from e
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""


class ProviderChain:
    """Ordered fallback over text providers."""

    def __init__(self, providers: Sequence[TextProvider]):
        self.providers: List[TextProvider] = list(providers)

    @property
    def configured(self) -> bool:
        return any(p.configured for p in self.providers)

    def generate(self, prompt: str) -> GenerationResult:
        last_error = "No AI providers available"
        for index, provider in enumerate(self.providers):
            try:
                content = provider.generate(prompt)
            except ProviderError as e:
                last_error = e.message
                has_next = index + 1 < len(self.providers)
                log_event(
                    "warning",
                    "generation.provider_failed",
                    error_code="provider_error",
                    extra={
                        "provider": provider.name,
                        "error": last_error[:100],
                        "fallback": has_next,
                    },
                )
                continue
            log_event("info", "generation.provider_succeeded", extra={"provider": provider.name})
            return GenerationResult(content=content, provider=provider.name)

        raise AllProvidersFailedError(last_error)


class FailureKind(str, Enum):
    CONFIG = "config"
    RATE_LIMIT = "rate_limit"
    SAFETY = "safety"
    GENERIC = "generic"


# Checked in order; first match wins
_FAILURE_KEYWORDS = [
    (FailureKind.CONFIG, ("API key", "configured")),
    (FailureKind.RATE_LIMIT, ("rate", "limit")),
    (FailureKind.SAFETY, ("safety", "blocked")),
]


def classify_failure(message: str) -> FailureKind:
    for kind, keywords in _FAILURE_KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return kind
    return FailureKind.GENERIC


def placeholder_for(kind: FailureKind, format_key: str) -> str:
    if kind == FailureKind.CONFIG:
        return "AI service configuration error. Please contact support."
    if kind == FailureKind.RATE_LIMIT:
        return "Rate limit reached. Please try again in a moment."
    if kind == FailureKind.SAFETY:
        return "Content was flagged by safety filters. Try modifying your input."
    return f"Error generating content for {format_key}. Please try again later."


def build_provider_chain() -> ProviderChain:
    """Default chain from configuration: Gemini first, Groq as fallback."""
    return ProviderChain([GeminiProvider(), GroqProvider()])
