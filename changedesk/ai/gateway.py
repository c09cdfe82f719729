"""
ChangeDesk — IT Change Request Tracker
LLM Gateway.

Provider-agnostic LLM router with:
    - Google Gemini provider (google-genai) with a bounded HTTP timeout
    - Local stub provider, used only when "local-stub" is the configured model
    - Retry with capped exponential backoff
    - Latency / token logging

Usage:
    from changedesk.ai.gateway import LLMGateway
    gw = LLMGateway(app=flask_app)
    result = gw.chat([{"role": "user", "content": "Summarize ..."}], purpose="change_summary")
"""

import logging
import os
import threading
import time
from abc import ABC, abstractmethod

from changedesk.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


# ── Provider Abstract Base ────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: temperature, max_tokens, etc.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...


# ── Google Gemini Provider ────────────────────────────────────────────────────

class GeminiProvider(LLMProvider):
    """
    Google Gemini API provider.

    Models:
        - gemini-2.5-flash  (default; fast single-paragraph summaries)
        - gemini-2.5-pro

    Environment:
        GEMINI_API_KEY — obtain at https://aistudio.google.com/apikey
    """

    def __init__(self, api_key: str | None = None, timeout_seconds: float = 30.0):
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY", "")
        self.timeout_seconds = timeout_seconds
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                from google import genai
                from google.genai import types
            except ImportError:
                raise RuntimeError(
                    "google-genai package not installed. Run: pip install google-genai"
                )
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
            )
        return self._client

    def chat(self, messages: list, model: str = "gemini-2.5-flash", **kwargs) -> dict:
        client = self._get_client()
        from google.genai import types

        # Separate system instruction from conversation messages
        system_parts = []
        contents = []
        for m in messages:
            if m["role"] == "system":
                system_parts.append(m["content"])
            else:
                # Gemini uses "user" and "model" roles
                role = "model" if m["role"] == "assistant" else "user"
                contents.append(
                    types.Content(
                        role=role,
                        parts=[types.Part(text=m["content"])],
                    )
                )

        config = types.GenerateContentConfig(
            temperature=kwargs.get("temperature", 0.3),
            max_output_tokens=kwargs.get("max_tokens", 1024),
        )
        if system_parts:
            config.system_instruction = "\n\n".join(system_parts)

        response = client.models.generate_content(
            model=model,
            contents=contents,
            config=config,
        )

        usage = getattr(response, "usage_metadata", None)
        prompt_tokens = getattr(usage, "prompt_token_count", 0) or 0
        completion_tokens = getattr(usage, "candidates_token_count", 0) or 0

        return {
            "content": response.text or "",
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "model": model,
        }


# ── Local Stub Provider (for dev/test without API keys) ──────────────────────

class LocalStubProvider(LLMProvider):
    """
    Local stub that returns deterministic responses for dev/testing.
    No API key required.
    """

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        user_msg = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_msg = m["content"]
                break

        content = self._generate_stub_response(user_msg)

        return {
            "content": content,
            "prompt_tokens": len(user_msg.split()) * 2,  # rough estimate
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }

    @staticmethod
    def _generate_stub_response(user_msg: str) -> str:
        """Echo the change-request fields back as a one-paragraph synopsis."""
        fields = {}
        for line in user_msg.splitlines():
            line = line.strip()
            if line.startswith("- ") and ":" in line:
                key, _, value = line[2:].partition(":")
                fields[key.strip().lower()] = value.strip()

        system = fields.get("system/module", "the affected system")
        description = fields.get("description", "")
        reason = fields.get("reason for change", "")
        impact = fields.get("impact assessment", "")
        if not (description or reason or impact):
            return "[local-stub] No change details supplied."
        return (
            f"[local-stub] Change to {system}: {description} "
            f"Justification: {reason} Expected impact: {impact}"
        ).strip()


# ── LLM Gateway (Main Interface) ─────────────────────────────────────────────

class LLMGateway:
    """
    Central gateway for all LLM calls.

    Features:
        - Provider routing based on model name
        - Local stub only when "local-stub" is the configured model
        - Retry with capped exponential backoff
        - Latency / token logging

    Usage:
        gw = LLMGateway(app=flask_app)
        result = gw.chat(
            messages=[{"role": "user", "content": "Summarize ..."}],
            purpose="change_summary",
        )
    """

    # Model → provider mapping
    PROVIDER_MAP = {
        "gemini-2.5-flash": "gemini",
        "gemini-2.5-pro": "gemini",
        "gemini-2.0-flash": "gemini",
        "local-stub": "local",
    }

    DEFAULT_CHAT_MODEL = os.getenv("LLM_DEFAULT_CHAT_MODEL", "gemini-2.5-flash")

    def __init__(self, app=None, *, api_key: str | None = None, timeout_seconds: float | None = None,
                 default_model: str | None = None):
        self._providers = {}
        self._app = app
        cfg = app.config if app is not None else {}
        if api_key is None:
            # App config wins; the env var is only consulted without an app
            api_key = cfg.get("GEMINI_API_KEY", "") if app is not None else os.getenv("GEMINI_API_KEY", "")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds or cfg.get("LLM_TIMEOUT_SECONDS", 30.0)
        self.default_model = default_model or cfg.get("LLM_DEFAULT_CHAT_MODEL") or self.DEFAULT_CHAT_MODEL
        self._init_providers()

    def _init_providers(self):
        """Initialize available providers based on configuration."""
        # Always register local stub
        self._providers["local"] = LocalStubProvider()

        # Register real providers if API keys present
        if self.api_key:
            self._providers["gemini"] = GeminiProvider(self.api_key, self.timeout_seconds)

        if self.PROVIDER_MAP.get(self.default_model) not in self._providers:
            logger.warning(
                "LLM model '%s' has no configured provider; summaries will use the fallback text",
                self.default_model,
            )

    @property
    def available_providers(self) -> set[str]:
        return set(self._providers)

    def _get_provider(self, model: str) -> tuple[LLMProvider, str]:
        """
        Resolve model to provider. The local stub only serves the "local-stub"
        model; a real model whose provider has no API key is an error.
        Returns (provider, provider_name).

        Raises:
            ExternalServiceError: unknown model or unconfigured provider.
        """
        provider_name = self.PROVIDER_MAP.get(model)
        if provider_name is None:
            raise ExternalServiceError(f"LLM model '{model}'", "no provider serves this model")

        if provider_name not in self._providers:
            logger.warning("Provider '%s' not available (no API key?) for model '%s'", provider_name, model)
            raise ExternalServiceError(f"LLM provider '{provider_name}'", "not configured")
        return self._providers[provider_name], provider_name

    def chat(
        self,
        messages: list,
        model: str | None = None,
        *,
        purpose: str = "",
        max_retries: int = 1,
        **kwargs,
    ) -> dict:
        """
        Send a chat completion request with retry.

        Args:
            messages: Chat messages.
            model: Model identifier (defaults to the configured chat model).
            purpose: What the call is for (e.g. "change_summary"); logged only.
            max_retries: Number of attempts before giving up.
            **kwargs: temperature, max_tokens passed to provider.

        Returns:
            dict: {content, prompt_tokens, completion_tokens, model, latency_ms, provider}

        Raises:
            ExternalServiceError: provider unavailable or every attempt failed.
        """
        model = model or self.default_model
        provider, provider_name = self._get_provider(model)

        last_error = None
        for attempt in range(1, max_retries + 1):
            start_time = time.time()
            try:
                result = provider.chat(messages, model, **kwargs)
                latency_ms = int((time.time() - start_time) * 1000)
                result["latency_ms"] = latency_ms
                result["provider"] = provider_name
                logger.info(
                    "LLM call ok purpose=%s provider=%s model=%s tokens=%d+%d latency=%dms",
                    purpose, provider_name, result.get("model", model),
                    result["prompt_tokens"], result["completion_tokens"], latency_ms,
                )
                return result
            except Exception as e:
                last_error = e
                logger.warning("LLM call attempt %d/%d failed: %s", attempt, max_retries, e)

                if attempt < max_retries:
                    backoff = min(2 ** (attempt - 1), 4)
                    threading.Event().wait(backoff)

        raise ExternalServiceError(
            f"LLM provider '{provider_name}'",
            f"failed after {max_retries} attempt(s): {last_error}",
        )
