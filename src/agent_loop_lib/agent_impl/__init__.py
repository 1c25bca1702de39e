"""Collect concrete model backend implementations."""

from .gemini import GeminiModelClient
from .openai_api import OpenAIModelClient

__all__ = [
    "GeminiModelClient",
    "OpenAIModelClient",
]
