from __future__ import annotations


class KioskError(Exception):
    """Base class for kiosk core errors."""


class InvalidMenuItem(KioskError):
    """Raised when something that is not a catalog item reaches the ledger."""


class TransportFailure(KioskError):
    """The command interpreter could not be reached or answered badly."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = ["KioskError", "InvalidMenuItem", "TransportFailure"]
