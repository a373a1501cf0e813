"""
Error taxonomy for DynamicsWebApi

Composition errors are raised before any request is sent; transport errors
carry the normalized HTTP failure.
"""

from typing import Any, List, Optional


class DynamicsWebApiError(Exception):
    """Base class for all library errors"""
    pass


class ValidationError(DynamicsWebApiError):
    """A required or type-constrained request field is missing or malformed"""

    def __init__(self, operation: str, parameter: str, message: str):
        super().__init__(message)
        self.operation = operation
        self.parameter = parameter


class UsageError(DynamicsWebApiError):
    """Mutually exclusive request options were set together"""
    pass


class ParseError(DynamicsWebApiError):
    """Response body could not be parsed"""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class TransportError(DynamicsWebApiError):
    """
    HTTP failure normalized to message, status and status text.

    Any extra fields of the service error object (``code``, ``innererror``,
    ...) are kept in ``details``. A failed batch keeps every parsed part
    result in ``responses``.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        status_text: Optional[str] = None,
        responses: Optional[List[Any]] = None,
        **details: Any,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.status_text = status_text
        self.responses = responses
        self.details = details

    @classmethod
    def from_http_error(cls, error: Any, status: Optional[int] = None, status_text: Optional[str] = None) -> "TransportError":
        """Build from a parsed service ``error`` object or a plain message"""
        if isinstance(error, dict):
            details = dict(error)
            message = details.pop("message", None) or "Unexpected Error"
            status = details.pop("status", status)
            status_text = details.pop("statusText", status_text)
            return cls(str(message), status=status, status_text=status_text, **details)
        return cls(str(error) if error else "Unexpected Error", status=status, status_text=status_text)

    def to_dict(self) -> dict:
        result = dict(self.details)
        result.update({"message": self.message, "status": self.status, "statusText": self.status_text})
        return result
