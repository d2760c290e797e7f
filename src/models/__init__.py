"""Shared model primitives."""

from .base import BaseDocument, PydanticUUID, utc_now

__all__ = ["BaseDocument", "PydanticUUID", "utc_now"]
