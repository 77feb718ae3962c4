"""Generation module for the remote chat completion client."""

from .client import GenerationClient

__all__ = ["GenerationClient"]
