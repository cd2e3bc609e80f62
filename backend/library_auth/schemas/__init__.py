"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import LoginSchema, TokenPairSchema, WhoAmISchema

__all__ = ["LoginSchema", "TokenPairSchema", "WhoAmISchema"]
