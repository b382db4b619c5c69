import logging

import openai
from openai import OpenAI

from core import config
from core.exceptions import ProviderCredentialError, ProviderError, ProviderUnavailableError
from .base import LLMProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Any OpenAI-compatible chat completions endpoint."""

    name = "openai"

    def __init__(self, api_key: str, model: str = None, base_url: str = None):
        if not api_key:
            raise ProviderCredentialError(
                "An API key is required for the OpenAI provider. Please enter your API key and try again."
            )
        self.model = model or config.OPENAI_MODEL
        self.client = OpenAI(api_key=api_key, base_url=base_url or config.OPENAI_BASE_URL)

    def _complete(self, prompt: str, json_mode: bool = False) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
            system = "You are an expert technical interviewer. Respond with valid JSON."
        else:
            system = "You are an expert technical interviewer."

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt}
                ],
                temperature=0.7,
                **kwargs
            )
        except openai.AuthenticationError as e:
            raise ProviderCredentialError("The API key was rejected. Please re-enter a valid key.") from e
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            raise ProviderUnavailableError(f"Could not reach the OpenAI-compatible endpoint: {e}") from e
        except openai.APIError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        return response.choices[0].message.content or ""
