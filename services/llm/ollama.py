import logging

import requests

from core import config
from core.exceptions import (
    ProviderUnavailableError, ProviderTimeoutError, ProviderUnreachableError, ProviderModelMissingError
)
from .base import LLMProvider

logger = logging.getLogger(__name__)


class OllamaProvider(LLMProvider):
    """Local Ollama server. Single attempt per call, bounded by a hard timeout."""

    name = "ollama"

    def __init__(self, base_url: str = None, model: str = None, timeout: float = None):
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.model = model or config.OLLAMA_MODEL
        self.timeout = timeout if timeout is not None else config.OLLAMA_TIMEOUT_SECONDS

    def _complete(self, prompt: str, json_mode: bool = False) -> str:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if json_mode:
            payload["format"] = "json"

        try:
            response = requests.post(f"{self.base_url}/api/generate", json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise ProviderTimeoutError(
                f"Ollama request timed out after {self.timeout:g} seconds. "
                "Try a smaller model or check that your machine is not overloaded."
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise ProviderUnreachableError(
                f"Ollama is not running. Please start the Ollama app (expected at {self.base_url})."
            ) from e

        if response.status_code == 404:
            raise ProviderModelMissingError(
                f"Model '{self.model}' not found. Please run 'ollama pull {self.model}'"
            )
        if not response.ok:
            raise ProviderUnavailableError(f"Ollama API error: {response.status_code} {response.reason}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderUnavailableError("Ollama returned a non-JSON response") from e
        if not isinstance(data, dict):
            raise ProviderUnavailableError("Ollama returned an unexpected response body")
        return data.get("response") or ""
