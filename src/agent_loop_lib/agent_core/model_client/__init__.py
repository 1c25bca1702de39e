"""Re-export the model backend interface and its normalized response model."""

from .base import ModelClient, ModelResponse

__all__ = [
    "ModelClient",
    "ModelResponse",
]
