from __future__ import annotations


class ValidationError(ValueError):
    """A numeric or fiscal input is outside its valid domain."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class MvaStoreError(Exception):
    """The MVA store file exists but does not hold a list of entries."""
