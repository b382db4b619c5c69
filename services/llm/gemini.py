import logging

from google import genai
from google.genai import types
from google.genai import errors as genai_errors

from core import config
from core.exceptions import ProviderCredentialError, ProviderError
from .base import LLMProvider

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, api_key: str, model: str = None):
        if not api_key:
            raise ProviderCredentialError(
                "A Google API key is required for the Gemini provider. Please enter your API key and try again."
            )
        self.model = model or config.GEMINI_MODEL
        self.client = genai.Client(api_key=api_key)

    def _complete(self, prompt: str, json_mode: bool = False) -> str:
        generation_config = types.GenerateContentConfig(
            response_mime_type="application/json" if json_mode else "text/plain",
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=generation_config,
            )
        except genai_errors.ClientError as e:
            if e.code in (401, 403) or "API key" in str(e):
                raise ProviderCredentialError(
                    "Gemini rejected the API key. Please re-enter a valid key."
                ) from e
            raise ProviderError(f"Gemini request failed: {e}") from e
        except genai_errors.APIError as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        return response.text or ""
