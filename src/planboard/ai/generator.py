# src/planboard/ai/generator.py

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import Generated
from . import prompts

logger = logging.getLogger(__name__)

BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError subclasses APIConnectionError
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


class OpenAIGenerator:
    """
    Blocking generator over an OpenAI-compatible chat completions API.

    Behavior:
    - Tries models in the configured order.
    - 404 (model not available) -> model is skipped for an hour, try next.
    - Rate limit / network issues / unparsable answers -> try next.
    - Auth issues -> stop (no retries across models).
    Every failure ends in None; callers treat None as "nothing generated".
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str | None,
        models: list[str],
        timeout_seconds: float = 30.0,
        client: OpenAI | None = None,
    ) -> None:
        self._models = [m.strip() for m in models if m and m.strip()]
        if not self._models:
            raise ValueError("LLM model list is empty. Set PLANBOARD_LLM_MODELS in your .env.")

        if client is None:
            if not api_key or not api_key.strip():
                raise ValueError("LLM API key is not set. Set PLANBOARD_OPENAI_API_KEY in your .env.")
            # no SDK retries: fall through to the next model instead
            client = OpenAI(
                api_key=api_key,
                base_url=base_url or None,
                timeout=httpx.Timeout(timeout_seconds, connect=5.0),
                max_retries=0,
            )
        self._client = client
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)
        logger.info("OpenAIGenerator ready models=%s", ",".join(self._models))

    def _complete(self, model: str, kind: str, messages: list[dict[str, str]]) -> str | None:
        kwargs: dict[str, Any] = {"model": model, "messages": messages}
        if kind in prompts.JSON_KINDS:
            kwargs["response_format"] = {"type": "json_object"}
        resp = self._client.chat.completions.create(**kwargs)
        if not resp.choices:
            return None
        return resp.choices[0].message.content

    def generate(self, kind: str, inputs: dict[str, Any]) -> Generated:
        messages = prompts.build_messages(kind, inputs)
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            t0 = time.monotonic()
            try:
                content = self._complete(model, kind, messages)
            except Exception as e:
                if _is_auth_error(e):
                    logger.error("LLM authentication failed (check PLANBOARD_OPENAI_API_KEY)")
                    return None
                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                elif _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                elif _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                else:
                    logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            if not content:
                logger.info("LLM: empty answer from model=%s, trying next", model)
                continue

            if kind in prompts.JSON_KINDS:
                try:
                    data: Any = json.loads(content)
                except ValueError:
                    logger.info("LLM: model=%s returned invalid JSON for kind=%s", model, kind)
                    continue
            else:
                data = content

            result = prompts.unwrap(kind, data)
            if result is None:
                continue
            logger.info("LLM: kind=%s done with model=%s (%.2fs)", kind, model, time.monotonic() - t0)
            return result

        logger.warning("LLM: all models failed for kind=%s", kind)
        return None
