"""Prompt-driven music generation: token-streaming server, backend client and editor model."""

__version__ = "0.1.0"
__all__ = ["agent", "editor", "model"]