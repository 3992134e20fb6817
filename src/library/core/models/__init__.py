"""Core models exports."""

from .actor import Actor, Role

__all__ = ["Actor", "Role"]
