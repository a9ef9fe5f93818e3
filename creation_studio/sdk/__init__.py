"""
SDK for Creation Studio.

Provides the OpenAI-backed transform service and session wiring.
"""

from .openai_client import OpenAITransformService
from .studio import open_studio

__all__ = ["OpenAITransformService", "open_studio"]
