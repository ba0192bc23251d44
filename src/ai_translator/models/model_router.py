"""Dynamic model routing for the translator."""

import logging
from typing import Dict, Any

from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.language_models import BaseChatModel

from ..config import get_settings
from ..services.transport import LangChainStreamingTransport

logger = logging.getLogger("ai_translator.models.model_router")


MODEL_INFO: Dict[str, Dict[str, Any]] = {
    "claude-sonnet-4-5-20250929": {
        "provider": "Anthropic",
        "description": "Claude Sonnet 4.5 (2025-09-29)",
        "context_window": 200000,
    },
    "claude-haiku-4-5-20251001": {
        "provider": "Anthropic",
        "description": "Claude Haiku 4.5 (2025-10-01)",
        "context_window": 200000,
    },
    "claude-sonnet-4-20250514": {
        "provider": "Anthropic",
        "description": "Claude Sonnet 4.0 (2025-05-14)",
        "context_window": 200000,
    },
    "claude-3-5-haiku-20241022": {
        "provider": "Anthropic",
        "description": "Claude 3.5 Haiku (2024-10-22)",
        "context_window": 200000,
    },
    "gpt-4o": {
        "provider": "OpenAI",
        "description": "GPT-4o",
        "context_window": 128000,
    },
    "gpt-4o-mini": {
        "provider": "OpenAI",
        "description": "GPT-4o mini - fast and inexpensive",
        "context_window": 128000,
    },
    "gpt-4-turbo": {
        "provider": "OpenAI",
        "description": "GPT-4 Turbo",
        "context_window": 128000,
    },
    "gemini-2.5-pro": {
        "provider": "Google",
        "description": "Gemini 2.5 Pro",
        "context_window": 1000000,
    },
    "gemini-2.5-flash": {
        "provider": "Google",
        "description": "Gemini 2.5 Flash",
        "context_window": 1000000,
    },
}


def provider_for(model_name: str) -> str:
    """Provider name for a model id, by prefix."""
    name = model_name.lower()
    if name.startswith("claude-"):
        return "Anthropic"
    if name.startswith(("gpt-", "o1", "o3", "o4")):
        return "OpenAI"
    if name.startswith("gemini-"):
        return "Google"
    raise ValueError(f"Unsupported model: {model_name}")


class ModelRouter:
    """Router for selecting and initializing chat models."""

    def __init__(self):
        self.settings = get_settings()
        self._model_cache: Dict[str, BaseChatModel] = {}

    def get_model(self, model_name: str, **kwargs) -> BaseChatModel:
        """
        Get a chat model instance based on the model name.

        Args:
            model_name: Provider model id, e.g. ``claude-sonnet-4-5-20250929``
            **kwargs: Additional model configuration parameters

        Returns:
            Initialized chat model instance

        Raises:
            ValueError: If the model is not supported or its API key is missing
        """
        cache_key = f"{model_name}_{hash(str(sorted(kwargs.items())))}"
        if cache_key in self._model_cache:
            return self._model_cache[cache_key]

        model = self._create_model(model_name, **kwargs)
        self._model_cache[cache_key] = model
        return model

    def get_transport(self, model_name: str, **kwargs) -> LangChainStreamingTransport:
        """Streaming transport over the named model."""
        return LangChainStreamingTransport(self.get_model(model_name, **kwargs), model_name=model_name)

    def _create_model(self, model_name: str, **kwargs) -> BaseChatModel:
        model_name = model_name.lower()
        provider = provider_for(model_name)

        default_configs = {
            "temperature": kwargs.get("temperature", self.settings.temperature),
            "max_tokens": kwargs.get("max_tokens", self.settings.max_tokens),
        }
        extra = {k: v for k, v in kwargs.items() if k not in ["temperature", "max_tokens", "api_key"]}
        api_key = kwargs.get("api_key")

        logger.debug("Creating %s model %s", provider, model_name)
        if provider == "Anthropic":
            return self._create_anthropic_model(model_name, default_configs, api_key, **extra)
        if provider == "OpenAI":
            return self._create_openai_model(model_name, default_configs, api_key, **extra)
        return self._create_gemini_model(model_name, default_configs, api_key, **extra)

    def _create_anthropic_model(self, model_name: str, default_configs: dict, api_key=None, **kwargs) -> ChatAnthropic:
        """Create an Anthropic (Claude) model instance."""
        api_key = api_key or self.settings.anthropic_api_key
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY is required for Claude models")

        return ChatAnthropic(
            anthropic_api_key=api_key,
            model=model_name,
            temperature=default_configs["temperature"],
            max_tokens=default_configs["max_tokens"],
            **kwargs
        )

    def _create_openai_model(self, model_name: str, default_configs: dict, api_key=None, **kwargs) -> ChatOpenAI:
        """Create an OpenAI model instance."""
        api_key = api_key or self.settings.openai_api_key
        if not api_key:
            raise ValueError("OPENAI_API_KEY is required for OpenAI models")

        return ChatOpenAI(
            openai_api_key=api_key,
            model=model_name,
            temperature=default_configs["temperature"],
            max_tokens=default_configs["max_tokens"],
            stream_usage=True,
            **kwargs
        )

    def _create_gemini_model(self, model_name: str, default_configs: dict, api_key=None, **kwargs) -> ChatGoogleGenerativeAI:
        """Create a Google Gemini model instance."""
        api_key = api_key or self.settings.gemini_api_key
        if not api_key:
            raise ValueError("GEMINI_API_KEY is required for Gemini models")

        return ChatGoogleGenerativeAI(
            google_api_key=api_key,
            model=model_name,
            temperature=default_configs["temperature"],
            max_output_tokens=default_configs["max_tokens"],
            **kwargs
        )

    def get_available_models(self) -> Dict[str, Dict[str, Any]]:
        """
        Get information about available models based on configured API keys.

        Returns:
            Dictionary of available models and their details
        """
        configured = {
            "Anthropic": bool(self.settings.anthropic_api_key),
            "OpenAI": bool(self.settings.openai_api_key),
            "Google": bool(self.settings.gemini_api_key),
        }
        return {name: dict(info) for name, info in MODEL_INFO.items() if configured[info["provider"]]}

    def validate_model_availability(self, model_name: str) -> bool:
        """Check if a model is available based on API key configuration."""
        return model_name.lower() in self.get_available_models()


# Global model router instance
model_router = ModelRouter()


def get_model_router() -> ModelRouter:
    """Get the global model router instance."""
    return model_router
