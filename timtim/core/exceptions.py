"""Custom exceptions for the Tim-Tim storefront."""
from __future__ import annotations

from enum import Enum


class TimTimException(Exception):
    """Base exception for all storefront errors."""

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class StorageErrorKind(str, Enum):
    """Why a session storage operation fell back to its default."""

    CORRUPTED = "corrupted"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNAVAILABLE = "unavailable"


class CheckoutStateException(TimTimException):
    """Illegal checkout state transition."""

    pass
