"""
Remote image generation client.

Protocol:
    POST {base_url}/image/generate
        -> {request_id, result: {image_url, seed, structured_prompt?}}   (sync)
        -> {request_id, status_url}                                      (async)
    GET  status_url  (polled until COMPLETED / ERROR)

Retry policy:
    - HTTP 429 on any request (submit, poll, expand) is retried with
      exponential backoff: 1s, 2s, 4s. The fourth 429 raises MAX_RETRIES.
    - Every other non-2xx status raises immediately, classified by status.
    - Transport failures and malformed bodies raise NETWORK_ERROR.

Status flow:
    IDLE -> GENERATING -> (sync)  IDLE | ERROR
                       -> (async) POLLING -> IDLE | ERROR
"""

import os
import json
import time
import logging
from typing import Optional, Union

import requests

from core.types import ClientStatus, GenerationOptions, GenerationResult
from modules.generation.errors import ErrorCode, GenerationError
from modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://engine.prod.bria-api.com/v2"
DEFAULT_STATUS_HOST = "https://engine.prod.bria-api.com/"
API_KEY_ENV = "BRIA_API_KEY"
MODEL_VERSION = "FIBO"


class GenerationClient:
    """Submits prompts, polls jobs, and classifies failures.

    Not safe for concurrent generate() calls on one instance; callers
    serialize them.
    """

    def __init__(self, config: dict = None, api_key: Optional[str] = None,
                 session: Optional[requests.Session] = None,
                 sleep=time.sleep, clock=time.monotonic):
        """
        Args:
            config: Generation config section
            api_key: Service token; falls back to config then BRIA_API_KEY
            session: requests.Session (injectable for tests)
            sleep: Blocking delay function used for backoff and polling
            clock: Monotonic clock used for the poll deadline
        """
        config = config or {}
        self._base_url = config.get("base_url", DEFAULT_BASE_URL).rstrip("/")
        self._status_host = config.get("status_host", DEFAULT_STATUS_HOST)
        self._api_key = api_key or config.get("api_key") or os.environ.get(API_KEY_ENV)
        self._max_retries = config.get("max_retries", 3)
        self._backoff_base_ms = config.get("backoff_base_ms", 1000)
        self._poll_interval = config.get("poll_interval_sec", 1.0)
        self._poll_timeout = config.get("poll_timeout_sec", 60.0)
        self._request_timeout = config.get("request_timeout_sec", 30)
        self._option_defaults = dict(config.get("defaults", {}))

        self._session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock
        self._status = ClientStatus.IDLE

    # =========================================================================
    # Public API
    # =========================================================================

    @log_timing
    def generate(self, prompt: Union[str, dict],
                 options: Optional[GenerationOptions] = None) -> GenerationResult:
        """Generate an image from free text or a structured prompt.

        Raises:
            GenerationError: any classified failure; status becomes ERROR
        """
        options = options or self.default_options()
        self._status = ClientStatus.GENERATING
        try:
            self._require_api_key()
            payload = self._build_payload(prompt, options)
            data = self._request("POST", f"{self._base_url}/image/generate", payload)

            if data.get("result"):
                result = self._normalize(data, data["result"], prompt)
            elif data.get("status_url"):
                self._status = ClientStatus.POLLING
                result = self._poll(data["status_url"], data.get("request_id"), prompt)
            else:
                raise GenerationError(
                    "Response carried neither a result nor a status URL",
                    ErrorCode.NETWORK_ERROR, details=data,
                )
        except GenerationError as e:
            self._status = ClientStatus.ERROR
            logger.error("Generation failed [%s]: %s", e.code, e.message)
            raise

        self._status = ClientStatus.IDLE
        logger.info("Generation complete: %s (seed=%s)", result.image_url, result.seed)
        return result

    def expand_prompt(self, text: str) -> dict:
        """Expand a short text prompt into a structured prompt document."""
        self._require_api_key()
        if not isinstance(text, str) or not text.strip():
            raise GenerationError("Prompt text is required", ErrorCode.INVALID_REQUEST)

        data = self._request(
            "POST", f"{self._base_url}/structured_prompt/generate",
            {"prompt": text, "sync": True},
        )
        result = data.get("result")
        raw = result.get("structured_prompt") if isinstance(result, dict) else None
        if isinstance(raw, dict):
            return raw
        try:
            expanded = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise GenerationError("No structured prompt in response",
                                  ErrorCode.NETWORK_ERROR, details=data) from e
        if not isinstance(expanded, dict):
            raise GenerationError("Structured prompt is not an object",
                                  ErrorCode.NETWORK_ERROR, details=data)
        return expanded

    def get_status(self) -> ClientStatus:
        return self._status

    def default_options(self) -> GenerationOptions:
        return GenerationOptions(**self._option_defaults)

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def close(self):
        self._session.close()

    # =========================================================================
    # Request Building
    # =========================================================================

    def _require_api_key(self):
        if not self._api_key:
            raise GenerationError(
                f"No API key configured (set {API_KEY_ENV})", ErrorCode.NO_API_KEY
            )

    def _build_payload(self, prompt, options: GenerationOptions) -> dict:
        if isinstance(prompt, str) and prompt.strip():
            payload = {"prompt": prompt}
        elif isinstance(prompt, dict) and prompt:
            payload = {"structured_prompt": json.dumps(prompt)}
        else:
            raise GenerationError(
                "Either a text prompt or a structured prompt is required",
                ErrorCode.INVALID_REQUEST,
            )
        payload.update(options.to_payload())
        payload["model_version"] = MODEL_VERSION
        return payload

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "api_token": self._api_key,
        }

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(self, method: str, url: str, payload: Optional[dict] = None) -> dict:
        """Send one logical request, retrying only on HTTP 429."""
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._session.request(
                    method, url,
                    headers=self._headers(),
                    json=payload,
                    timeout=self._request_timeout,
                )
            except requests.exceptions.RequestException as e:
                raise GenerationError(f"Network error: {e}", ErrorCode.NETWORK_ERROR) from e

            status = response.status_code
            if status == 429:
                if attempt > self._max_retries:
                    raise GenerationError(
                        f"Rate limited after {attempt} attempts",
                        ErrorCode.MAX_RETRIES, status_code=429,
                        details=_parse_body(response),
                    )
                delay = self._backoff_base_ms * 2 ** (attempt - 1) / 1000.0
                logger.warning("Rate limited on %s %s (attempt %d), retrying in %.1fs",
                               method, url, attempt, delay)
                self._sleep(delay)
                continue

            if not 200 <= status < 300:
                raise GenerationError.from_status(status, _parse_body(response))

            try:
                data = response.json()
            except ValueError as e:
                raise GenerationError("Malformed JSON in response", ErrorCode.NETWORK_ERROR,
                                      status_code=status) from e
            if not isinstance(data, dict):
                raise GenerationError("Unexpected response body", ErrorCode.NETWORK_ERROR,
                                      status_code=status, details=data)
            return data

    def _poll(self, status_url: str, request_id: Optional[str], prompt) -> GenerationResult:
        if not isinstance(status_url, str) or not status_url.startswith(self._status_host):
            raise GenerationError(
                "Status URL does not belong to the generation service",
                ErrorCode.INVALID_REQUEST, details={"status_url": status_url},
            )

        deadline = self._clock() + self._poll_timeout
        polls = 0
        while True:
            data = self._request("GET", status_url)
            polls += 1
            status = str(data.get("status", "")).upper()

            if status == "COMPLETED":
                logger.debug("Job %s completed after %d poll(s)", request_id, polls)
                return self._normalize(data, data.get("result"), prompt, request_id)

            if status in ("ERROR", "FAILED"):
                error = data.get("error")
                message = error.get("message") if isinstance(error, dict) else error
                raise GenerationError(message or "Generation failed",
                                      ErrorCode.GENERATION_FAILED, details=data)

            if self._clock() >= deadline:
                raise GenerationError(
                    f"Generation did not complete within {self._poll_timeout}s",
                    ErrorCode.TIMEOUT, details={"request_id": request_id},
                )
            self._sleep(self._poll_interval)

    # =========================================================================
    # Normalization
    # =========================================================================

    def _normalize(self, data: dict, result, prompt,
                   request_id: Optional[str] = None) -> GenerationResult:
        if not isinstance(result, dict):
            raise GenerationError("Result is not an object", ErrorCode.NETWORK_ERROR,
                                  details=data)
        image_url = result.get("image_url")
        if not image_url:
            raise GenerationError("Result is missing image_url", ErrorCode.NETWORK_ERROR,
                                  details=data)

        final_prompt = prompt
        echoed = result.get("structured_prompt")
        if isinstance(echoed, dict):
            final_prompt = echoed
        elif isinstance(echoed, str):
            try:
                final_prompt = json.loads(echoed)
            except ValueError:
                logger.warning("Echoed structured prompt is not valid JSON, keeping submitted prompt")

        return GenerationResult(
            image_url=image_url,
            prompt=final_prompt,
            timestamp=time.time(),
            seed=result.get("seed"),
            request_id=data.get("request_id") or request_id,
        )


def _parse_body(response):
    """Parsed JSON body of an error response, or None."""
    try:
        return response.json()
    except ValueError:
        return None
