"""Live navigation sessions."""

from .registry import SessionRegistry
from .session import NavigationSession, RerouteSuggestion

__all__ = ["NavigationSession", "RerouteSuggestion", "SessionRegistry"]
