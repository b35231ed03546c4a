"""Core module for the link shortener."""

from shortlink.core.config import settings

__all__ = ["settings"]
