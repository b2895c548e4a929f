"""Client for an OpenAI-compatible chat completion endpoint on a local model runner.

Generated integration code may embed environment variable names, so prompts are
only ever sent to loopback or local-network hosts.
"""

from __future__ import annotations

import ipaddress
import json
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..config import LLMConfig
from ..errors import EnhancementError

_UNSET: Any = object()

_LOCAL_HOSTNAMES = frozenset(
    {"localhost", "0.0.0.0", "host.docker.internal", "model-runner.docker.internal"}
)
_LOCAL_SUFFIXES = (".local", ".localdomain", ".internal")


def is_local_url(url: str) -> bool:
    """True when ``url`` has no host or points at this machine or the local network."""
    host = urlparse(url).hostname
    if host is None:
        return True
    host = host.lower()
    if host in _LOCAL_HOSTNAMES or host.endswith(_LOCAL_SUFFIXES):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_private


@dataclass
class LLMRequest:
    """One chat completion call as seen by a transport."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: Optional[str]
    api_key: Optional[str]
    request_timeout: Optional[float]

    @property
    def endpoint(self) -> str:
        if not self.base_url:
            raise EnhancementError("No model runner base_url is configured")
        return f"{self.base_url}/chat/completions"

    def messages(self) -> List[Dict[str, str]]:
        messages = [{"role": "user", "content": self.prompt}]
        if self.system:
            messages.insert(0, {"role": "system", "content": self.system})
        return messages

    def body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"model": self.model, "messages": self.messages()}
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.max_tokens is not None:
            body["max_tokens"] = self.max_tokens
        return body

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


def completion_text(payload: Any) -> str:
    """Pull the first choice's text out of a chat (or legacy text) completion body."""
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    choice = choices[0]
    message = choice.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str):
            return content
    text = choice.get("text")
    return text if isinstance(text, str) else ""


def post_chat_completion(request: LLMRequest) -> str:
    """Default transport: POST the request as JSON and return the completion text."""
    http_request = Request(
        request.endpoint,
        data=json.dumps(request.body()).encode("utf-8"),
        headers=request.headers(),
        method="POST",
    )
    try:
        with urlopen(http_request, timeout=request.request_timeout or 60.0) as response:
            raw = response.read()
    except HTTPError as exc:  # pragma: no cover - depends on runtime
        detail = exc.read().decode("utf-8", errors="ignore").strip()
        raise EnhancementError(
            f"Model runner answered {exc.code}: {detail or exc.reason}"
        ) from exc
    except URLError as exc:  # pragma: no cover - depends on runtime
        raise EnhancementError(f"Model runner unreachable: {exc.reason}") from exc

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise EnhancementError("Model runner returned a body that is not JSON") from exc

    text = completion_text(payload).strip()
    if not text:
        raise EnhancementError("Model runner returned an empty completion")
    return text


class LLMRunner:
    """Holds model settings and sends prompts through a pluggable transport."""

    DEFAULT_MODEL = "ai/qwen2.5-coder:7B-Q4_K_M"
    DEFAULT_BASE_URL = "http://localhost:12434/engines/v1"
    ENV_MODEL_KEYS = ("INTGEN_LLM_MODEL", "MODEL_RUNNER_MODEL")
    ENV_BASE_URL_KEYS = ("INTGEN_LLM_BASE_URL", "MODEL_RUNNER_BASE_URL")
    ENV_API_KEY_KEYS = ("INTGEN_LLM_API_KEY", "MODEL_RUNNER_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: Optional[str] = _UNSET,
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = _UNSET,
        request_timeout: Optional[float] = 60.0,
        runner: Callable[[LLMRequest], str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        env = os.environ if environ is None else environ
        self.model = model or _first_set(env, self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        if base_url is _UNSET:
            base_url = _first_set(env, self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        self.base_url = _checked_base_url(base_url)
        if api_key is _UNSET:
            api_key = _first_set(env, self.ENV_API_KEY_KEYS)
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        self._transport = runner or post_chat_completion

    @classmethod
    def from_config(
        cls,
        config: LLMConfig | None,
        *,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> "LLMRunner":
        """Build a runner from the ``llm`` config section, falling back to env and defaults."""
        if config is None:
            return cls(runner=runner)
        return cls(
            config.model,
            base_url=config.base_url or _UNSET,
            temperature=0.2 if config.temperature is None else config.temperature,
            max_tokens=config.max_tokens,
            api_key=config.api_key or _UNSET,
            request_timeout=config.request_timeout or 60.0,
            runner=runner,
        )

    def request(self, prompt: str, *, system: str | None = None) -> LLMRequest:
        return LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )

    def run(self, prompt: str, *, system: str | None = None) -> str:
        return self._transport(self.request(prompt, system=system))


def _first_set(environ: Mapping[str, str], keys: Sequence[str]) -> str | None:
    for key in keys:
        value = environ.get(key)
        if value:
            return value
    return None


def _checked_base_url(url: str | None) -> str | None:
    if url is None:
        return None
    if not is_local_url(url):
        raise EnhancementError(
            f"Remote base_url '{url}' is not permitted. Configure a local model runner."
        )
    return url.rstrip("/")


__all__ = ["LLMRequest", "LLMRunner", "completion_text", "is_local_url", "post_chat_completion"]
