"""Expose the OpenAI chat completions model client."""

from .client import OpenAIModelClient

__all__ = ["OpenAIModelClient"]
