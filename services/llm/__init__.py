from .base import LLMProvider, FALLBACK_ANALYSIS, FALLBACK_SUMMARY
from .factory import get_llm_provider
from .gemini import GeminiProvider
from .ollama import OllamaProvider
from .openai_provider import OpenAIProvider
