"""HTTP client for an Ollama-compatible ``/api/chat`` endpoint."""

import logging
from typing import Any, Dict, Iterable, Iterator, Optional

import requests

from .config import get_settings
from .errors import GenerationTransportError

logger = logging.getLogger(__name__)


class OllamaChatProvider:
    """Streams newline-delimited JSON events from ``/api/chat``.

    The provider only moves bytes: it yields each non-empty decoded line and
    leaves parsing to ``GenerationOrchestrator``.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        settings = get_settings()
        url = base_url or settings.ollama_base_url
        if not url.startswith("http"):
            url = f"http://{url}"
        self.base_url = url.rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ollama_api_key
        self.timeout = timeout or settings.request_timeout
        self._session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def stream_chat(
        self,
        *,
        model: str,
        messages: Iterable[Dict[str, Any]],
        temperature: float,
    ) -> Iterator[str]:
        payload = {
            "model": model,
            "messages": list(messages),
            "stream": True,
            "options": {"temperature": temperature},
        }
        url = f"{self.base_url}/api/chat"
        try:
            response = self._session.post(url, json=payload, headers=self._headers(), stream=True, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Generation provider unreachable at %s: %s", url, exc)
            raise GenerationTransportError(str(exc)) from exc

        with response:
            if not response.ok:
                message = response.text or f"HTTP {response.status_code}"
                logger.error("Generation provider returned %s: %s", response.status_code, message)
                raise GenerationTransportError(message, status_code=response.status_code)
            try:
                for line in response.iter_lines(decode_unicode=True):
                    if line:
                        yield line
            except requests.RequestException as exc:
                logger.error("Generation stream interrupted: %s", exc)
                raise GenerationTransportError(str(exc)) from exc
