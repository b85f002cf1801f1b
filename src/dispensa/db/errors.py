"""Errors raised by the list repositories."""

from __future__ import annotations


class ItemNotFoundError(ValueError):
    """No entry with the requested id exists in the user's list."""


class DuplicateIdError(ValueError):
    """A client-supplied id is already present in the user's list."""


__all__ = ["DuplicateIdError", "ItemNotFoundError"]
