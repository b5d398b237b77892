"""Thin client for an Ollama-compatible text generation backend."""

from __future__ import annotations

import json
import logging
from typing import Protocol
from urllib import request
from urllib.error import HTTPError

LOGGER = logging.getLogger(__name__)

DEFAULT_HOST = "http://localhost:11434"


class GenerationError(RuntimeError):
    """Raised when a model cannot produce text for a prompt."""


class TextGenerator(Protocol):
    def generate(self, model: str, prompt: str) -> str: ...


class OllamaClient:
    """Small HTTP client for ``/api/generate`` calls addressed by model name."""

    def __init__(self, *, host: str = DEFAULT_HOST, timeout: float = 30.0) -> None:
        self.host = host.rstrip("/")
        self.timeout = timeout

    @property
    def generate_url(self) -> str:
        return f"{self.host}/api/generate"

    def generate(self, model: str, prompt: str) -> str:
        """Return the generated text or raise ``GenerationError``."""
        payload = {"model": model, "prompt": prompt, "stream": False}
        body = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}

        LOGGER.debug(
            "llm_request_prepared",
            extra={
                "api_url": self.generate_url,
                "model": model,
                "payload_bytes": len(body),
            },
        )

        req = request.Request(self.generate_url, data=body, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                raw_response = json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            body_excerpt = self._read_error_body_excerpt(exc)
            LOGGER.warning(
                "llm_request_http_error",
                extra={
                    "api_url": self.generate_url,
                    "model": model,
                    "http_status": exc.code,
                    "reason": exc.reason,
                    "response_excerpt": body_excerpt,
                },
            )
            details = f"Model request failed with HTTP {exc.code}: {exc.reason}"
            if body_excerpt:
                details = f"{details}. Response body: {body_excerpt}"
            raise GenerationError(details) from exc
        except TimeoutError as exc:
            LOGGER.warning(
                "llm_request_timeout",
                extra={
                    "api_url": self.generate_url,
                    "model": model,
                    "timeout_seconds": self.timeout,
                },
            )
            raise GenerationError(f"Model request timed out after {self.timeout:.1f}s") from exc
        except OSError as exc:
            reason = getattr(exc, "reason", exc)
            LOGGER.warning(
                "llm_request_transport_error",
                extra={"api_url": self.generate_url, "model": model, "reason": str(reason)},
            )
            raise GenerationError(f"Model request transport error: {reason}") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning(
                "llm_response_parse_error",
                extra={"api_url": self.generate_url, "model": model, "error": str(exc)},
            )
            raise GenerationError(f"Model response parsing error: {exc}") from exc

        return self._extract_response_text(raw_response)

    def health_check(self) -> bool:
        """Return true when the backend answers ``/api/tags`` successfully."""
        req = request.Request(f"{self.host}/api/tags", method="GET")
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                return 200 <= resp.status < 300
        except OSError as exc:
            LOGGER.warning("llm_health_check_failed", extra={"host": self.host, "error": str(exc)})
            return False

    @staticmethod
    def _extract_response_text(payload: object) -> str:
        if not isinstance(payload, dict):
            raise GenerationError("Model response parsing error: expected top-level object")
        text = payload.get("response")
        if not isinstance(text, str):
            raise GenerationError("Model response parsing error: missing response text")
        return text

    @staticmethod
    def _read_error_body_excerpt(exc: HTTPError, *, max_chars: int = 500) -> str | None:
        if exc.fp is None:
            return None
        try:
            raw = exc.read()
        except OSError:
            return None

        if not raw:
            return None

        excerpt = raw.decode("utf-8", errors="replace").replace("\n", " ").strip()
        if len(excerpt) > max_chars:
            return f"{excerpt[:max_chars]}..."
        return excerpt
