"""Error taxonomy shared by tools, the orchestrator and the API layer.

Every error carries an ``error_kind`` (the stable name clients and the model
see) and renders to the ``{errorKind, message}`` payload. Tool-level errors are
recoverable inside the conversation: the orchestrator turns them into tool
results instead of letting them escape the turn.
"""
from typing import Any, Dict, List, Optional


class BrewChatError(Exception):
    """Base class for all domain and infrastructure errors."""

    error_kind = "BrewChatError"
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        """Render the error in the public error shape."""
        return {"errorKind": self.error_kind, "message": self.message}


class ValidationError(BrewChatError):
    """A tool argument does not match the catalog."""

    error_kind = "ValidationError"
    status_code = 422

    def __init__(self, message: str, suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.suggestions = suggestions or []

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.suggestions:
            payload["suggestions"] = self.suggestions
        return payload


class InvalidQuantity(ValidationError):
    error_kind = "InvalidQuantity"


class NotFound(BrewChatError):
    """A line index or an entity (session, order) does not exist."""

    error_kind = "NotFound"
    status_code = 404


class IncompleteOrder(BrewChatError):
    """The draft cannot be confirmed or approved yet."""

    error_kind = "IncompleteOrder"
    status_code = 409

    def __init__(self, message: str, incomplete_lines: Optional[List[int]] = None):
        super().__init__(message)
        self.incomplete_lines = incomplete_lines or []

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.incomplete_lines:
            payload["incompleteLines"] = self.incomplete_lines
        return payload


class ProtocolViolation(BrewChatError):
    """The model asked for a tool it may not use, or sent malformed arguments."""

    error_kind = "ProtocolViolation"
    status_code = 400


class StaleOrderError(BrewChatError):
    """Catalog changed between confirmation and approval."""

    error_kind = "StaleOrderError"
    status_code = 409

    def __init__(self, message: str, invalid_lines: List[int], reasons: Optional[Dict[int, str]] = None):
        super().__init__(message)
        self.invalid_lines = invalid_lines
        self.reasons = reasons or {}

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["invalidLines"] = self.invalid_lines
        payload["reasons"] = {str(index): reason for index, reason in self.reasons.items()}
        return payload


class Unauthorized(BrewChatError):
    """No verified principal accompanied the request."""

    error_kind = "Unauthorized"
    status_code = 401


class SessionBusy(BrewChatError):
    """Another turn currently owns the session."""

    error_kind = "SessionBusy"
    status_code = 409
    retryable = True


class InfrastructureError(BrewChatError):
    """Store, catalog or model capability failure."""

    error_kind = "InfrastructureError"
    status_code = 503
    retryable = True


class StoreUnavailable(InfrastructureError):
    error_kind = "StoreUnavailable"


class ModelUnavailable(InfrastructureError):
    error_kind = "ModelUnavailable"


class TurnTimeout(InfrastructureError):
    error_kind = "TurnTimeout"
    status_code = 504
