"""Offshoot data models — Pydantic v2, frozen (immutable)."""

from offshoot.models.files import StoredFile

__all__ = ["StoredFile"]
