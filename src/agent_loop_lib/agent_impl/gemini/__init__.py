"""Expose the Gemini model client."""

from .client import GeminiModelClient

__all__ = ["GeminiModelClient"]
