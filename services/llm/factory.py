from typing import Optional

from core import config
from core.exceptions import ValidationError
from .base import LLMProvider
from .gemini import GeminiProvider
from .ollama import OllamaProvider
from .openai_provider import OpenAIProvider


def get_llm_provider(kind: str, api_key: Optional[str] = None) -> LLMProvider:
    """
    Build the provider for `kind`. A request key wins over the server-side key.
    Cloud providers raise ProviderCredentialError here when no key is available,
    before any network call.
    """
    if kind == "ollama":
        return OllamaProvider()
    if kind == "gemini":
        return GeminiProvider(api_key or config.GEMINI_API_KEY)
    if kind == "openai":
        return OpenAIProvider(api_key or config.OPENAI_API_KEY)
    raise ValidationError(f"Unknown provider: {kind}", {"field": "provider"})
