"""Request-scoped models."""

from .claims import AccessDecision, Claims

__all__ = ["AccessDecision", "Claims"]
