"""
Exception types raised by the order desk core and its collaborators.

Backends report failures in one of three shapes, all carried by ApiError:

- ``validationErrors``: a list of ``{key, errorMessage, severity}`` records
- ``errors``: a map of field name to a list of messages
- ``message``: a single top-level message

ErrorNormalizer turns any of them into FormValidationError records.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class OrderDeskError(Exception):
    """Base class for errors raised by this package."""


class ApiError(OrderDeskError):
    """
    A failed call to the orders backend.

    Attributes:
        status: HTTP status code, if the failure came from a response
        validation_errors: Raw ``{key, errorMessage, severity}`` dicts
        errors: Field name to messages map
        data: The decoded response body, when there was one
    """

    def __init__(
        self,
        message: str = "",
        status: Optional[int] = None,
        validation_errors: Optional[List[Dict[str, Any]]] = None,
        errors: Optional[Dict[str, List[str]]] = None,
        data: Any = None,
    ) -> None:
        super().__init__(message or (f"HTTP {status}" if status else "Request failed"))
        self.message = message
        self.status = status
        self.validation_errors = list(validation_errors or [])
        self.errors = dict(errors or {})
        self.data = data

    @classmethod
    def from_response(cls, status: int, payload: Any, reason: str = "") -> "ApiError":
        """
        Build an ApiError from a decoded error body.

        Args:
            status: HTTP status code of the response
            payload: Decoded JSON body (or raw text when it was not JSON)
            reason: HTTP reason phrase used when the body carries no message

        Returns:
            ApiError populated with whichever failure shape the body uses
        """
        if not isinstance(payload, dict):
            text = str(payload).strip() if payload else ""
            return cls(text or f"HTTP {status}: {reason}".rstrip(": "), status=status, data=payload)

        validation_errors = payload.get("validationErrors") or []
        errors = payload.get("errors")
        message = payload.get("message") or payload.get("error") or payload.get("title") or ""
        return cls(
            message,
            status=status,
            validation_errors=validation_errors if isinstance(validation_errors, list) else [],
            errors=errors if isinstance(errors, dict) else None,
            data=payload,
        )

    def is_validation_error(self) -> bool:
        return self.status == 400 and bool(self.validation_errors or self.errors)


class IdentityUnavailableError(OrderDeskError):
    """The acting user is not known yet, so a user-scoped mutation cannot run."""


class UnknownOverrideError(OrderDeskError, ValueError):
    """A request override names a field that QueryRequest does not have."""
