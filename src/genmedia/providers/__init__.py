"""Backend implementations."""

from .base import MediaBackend
from .gemini import GeminiBackend

__all__ = [
    "GeminiBackend",
    "MediaBackend",
]
