"""Client for the hosted, OpenAI-compatible chat-completions gateway."""

import json
import logging
from typing import Iterator

import requests

from errors import (
    ConfigurationError,
    CreditsExhausted,
    GenerationFailed,
    RateLimited,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-3-flash-preview"


def raise_for_upstream_status(resp: requests.Response) -> None:
    """Map a non-2xx gateway response onto the caller-facing error types."""
    if resp.ok:
        return
    if resp.status_code == 429:
        raise RateLimited()
    if resp.status_code == 402:
        raise CreditsExhausted()
    try:
        body = resp.text
    except requests.RequestException:
        body = ""
    logger.error("AI gateway error: %s %s", resp.status_code, (body or "")[:2000])
    raise UpstreamServiceError()


class AIGateway:
    """One gateway call per method invocation; no retries, no queuing."""

    def __init__(
        self,
        api_key: str | None,
        url: str = DEFAULT_GATEWAY_URL,
        model: str = DEFAULT_MODEL,
        timeout: tuple[float, float] = (10.0, 120.0),
    ):
        if not api_key:
            raise ConfigurationError()
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout

    def _post(self, payload: dict, stream: bool = False) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(self.url, headers=headers, json=payload, stream=stream, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error("AI gateway timed out: %s", e)
            raise UpstreamServiceError() from e
        except requests.RequestException as e:
            logger.error("AI gateway unreachable: %s", e)
            raise UpstreamServiceError() from e
        try:
            raise_for_upstream_status(resp)
        except Exception:
            resp.close()
            raise
        return resp

    def stream_chat(self, messages: list[dict]) -> Iterator[bytes]:
        """Open a streaming completion and return its raw body as an iterator of byte chunks.

        The upstream status is checked before this returns, so status errors surface
        before any bytes are sent. Closing the iterator (e.g. on client disconnect)
        closes the upstream connection; an upstream abort propagates to the consumer.
        """
        resp = self._post({"model": self.model, "messages": messages, "stream": True}, stream=True)
        return _relay(resp)

    def call_function(self, messages: list[dict], tool: dict) -> dict:
        """Force a single function call and return its parsed arguments."""
        name = tool["function"]["name"]
        payload = {
            "model": self.model,
            "messages": messages,
            "tools": [tool],
            "tool_choice": {"type": "function", "function": {"name": name}},
        }
        resp = self._post(payload)
        try:
            data = resp.json()
        except ValueError as e:
            logger.error("AI gateway returned a non-JSON body for %s", name)
            raise UpstreamServiceError() from e
        finally:
            resp.close()

        try:
            call = data["choices"][0]["message"]["tool_calls"][0]
            raw_args = call["function"]["arguments"]
        except (KeyError, IndexError, TypeError):
            raw_args = None
        if not raw_args:
            logger.warning("AI gateway returned no %s function call", name)
            raise GenerationFailed()

        if isinstance(raw_args, dict):
            return raw_args
        try:
            args = json.loads(raw_args)
        except (TypeError, ValueError) as e:
            logger.warning("Unparseable %s arguments: %s", name, e)
            raise GenerationFailed() from e
        if not isinstance(args, dict):
            raise GenerationFailed()
        return args


def _relay(resp: requests.Response) -> Iterator[bytes]:
    try:
        for chunk in resp.iter_content(chunk_size=None):
            if chunk:
                yield chunk
    except requests.RequestException as e:
        logger.warning("AI gateway stream aborted: %s", e)
        raise
    finally:
        resp.close()
