"""Client for OpenAI-compatible chat-completion endpoints (OpenAI, Ollama, LM Studio)."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from page_composer.config import ComposerConfig, MAX_ERROR_BODY_BYTES
from page_composer.errors import (
    ComposerHTTPError,
    ComposerResponseError,
    ComposerTransportError,
    ComposerUnavailable,
    EmptyComposition,
)
from page_composer.extractor import ExtractedDocument
from page_composer.prompts import SYSTEM_PROMPT, build_prompt

VERSION_SEGMENT = "/v1"
COMPLETIONS_SUFFIX = "/chat/completions"
MODELS_SUFFIX = "/models"
TEMPERATURE = 0.2
FENCE = "```"
RATE_LIMIT_STATUS = 429

_LANGUAGE_TAG = re.compile(r"[A-Za-z0-9_+.#-]+")


def normalize_endpoint(base_url: str) -> str:
    """Full chat-completions URL for a configured base.

    Accepts a bare host, a ``/v1`` base or a complete completions URL, with
    or without trailing slashes. Normalizing twice gives the same result.
    """
    trimmed = (base_url or "").strip().rstrip("/")
    if not trimmed:
        return ""
    if trimmed.endswith(VERSION_SEGMENT + COMPLETIONS_SUFFIX):
        return trimmed
    if trimmed.endswith(VERSION_SEGMENT):
        return trimmed + COMPLETIONS_SUFFIX
    return trimmed + VERSION_SEGMENT + COMPLETIONS_SUFFIX


def models_endpoint(base_url: str) -> str:
    endpoint = normalize_endpoint(base_url)
    if not endpoint:
        return ""
    return endpoint[: -len(COMPLETIONS_SUFFIX)] + MODELS_SUFFIX


def is_rate_limited(error: BaseException) -> bool:
    return isinstance(error, ComposerHTTPError) and error.status == RATE_LIMIT_STATUS


def sanitize_output(content: str) -> str:
    """Strip a Markdown code fence the model wrapped its HTML in."""
    trimmed = (content or "").strip()
    if not trimmed.startswith(FENCE):
        return trimmed

    trimmed = trimmed[len(FENCE):]
    first_line, newline, rest = trimmed.partition("\n")
    if newline and _LANGUAGE_TAG.fullmatch(first_line.strip()):
        trimmed = rest
    elif trimmed.startswith("html"):
        trimmed = trimmed[len("html"):]
    trimmed = trimmed.strip()

    end = trimmed.find(FENCE)
    if end >= 0:
        trimmed = trimmed[:end]

    return trimmed.strip()


def first_message(payload: Any) -> str:
    """Content of the first choice; empty when the model returned nothing.

    Raises ``ComposerResponseError`` when the payload does not have the
    chat-completion shape.
    """
    if not isinstance(payload, dict):
        raise ComposerResponseError("decode composer response: expected a JSON object")
    choices = payload.get("choices") or []
    if not isinstance(choices, list):
        raise ComposerResponseError("decode composer response: choices is not a list")
    if not choices:
        return ""
    choice = choices[0]
    if not isinstance(choice, dict):
        raise ComposerResponseError("decode composer response: choice is not an object")
    message = choice.get("message") or {}
    if not isinstance(message, dict):
        raise ComposerResponseError("decode composer response: message is not an object")
    content = message.get("content") or ""
    if not isinstance(content, str):
        raise ComposerResponseError("decode composer response: content is not a string")
    return content


class ComposerClient:
    """Turns an extracted document into a standalone HTML page via an LLM."""

    def __init__(
        self,
        config: ComposerConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.endpoint = normalize_endpoint(config.base_url)
        self.session = session or requests.Session()

    def available(self) -> bool:
        return bool(self.endpoint)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def build_payload(self, document: ExtractedDocument) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(document)},
            ],
            "temperature": TEMPERATURE,
        }

    def compose(self, document: ExtractedDocument) -> str:
        if not self.available():
            raise ComposerUnavailable()

        logger.debug("Posting composition request to {}", self.endpoint)
        try:
            response = self.session.post(
                self.endpoint,
                json=self.build_payload(document),
                headers=self._headers(),
                timeout=self.config.timeout,
                stream=True,
            )
        except requests.exceptions.RequestException as exc:
            raise ComposerTransportError(f"post composer request: {exc}") from exc

        payload = self._read_json(response, "composer response")
        html = sanitize_output(first_message(payload))
        if not html:
            raise EmptyComposition()
        return html

    def list_models(self) -> List[str]:
        """Model ids advertised by the endpoint's ``/v1/models`` listing."""
        if not self.available():
            raise ComposerUnavailable()

        url = models_endpoint(self.config.base_url)
        logger.debug("Listing models from {}", url)
        try:
            response = self.session.get(
                url, headers=self._headers(), timeout=self.config.timeout, stream=True
            )
        except requests.exceptions.RequestException as exc:
            raise ComposerTransportError(f"list models: {exc}") from exc

        payload = self._read_json(response, "model list")
        entries = payload.get("data", []) if isinstance(payload, dict) else []
        if not isinstance(entries, list):
            raise ComposerResponseError("decode model list: data is not a list")
        return [m.get("id", "unknown") for m in entries if isinstance(m, dict)]

    def _read_json(self, response: requests.Response, what: str) -> Any:
        # the body is streamed, so the connection can still fail while decoding.
        # requests' JSONDecodeError is both a ValueError and a RequestException.
        try:
            self._raise_for_status(response)
            try:
                return response.json()
            except ValueError as exc:
                raise ComposerResponseError(f"decode {what}: {exc}") from exc
            except requests.exceptions.RequestException as exc:
                raise ComposerTransportError(f"read {what}: {exc}") from exc
        finally:
            response.close()

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        if response.status_code < 400:
            return
        buf = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=64 * 1024):
                buf.extend(chunk[: MAX_ERROR_BODY_BYTES - len(buf)])
                if len(buf) >= MAX_ERROR_BODY_BYTES:
                    break
        except requests.exceptions.RequestException as exc:
            logger.debug("Error body unreadable: {}", exc)
        snippet = buf.decode("utf-8", errors="replace")
        raise ComposerHTTPError(response.status_code, snippet)

    def close(self) -> None:
        self.session.close()
