"""Prompt assembly for retrieval-augmented answers."""

from .assembler import DEFAULT_SYSTEM_PROMPT, GenerationRequest, PromptAssembler

__all__ = ["DEFAULT_SYSTEM_PROMPT", "GenerationRequest", "PromptAssembler"]
