"""Core exceptions for the gateway."""

from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""
    
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(GatewayError):
    """Raised when the configuration is missing or invalid."""
    pass


class AuthError(GatewayError):
    """Raised when a request carries no usable bearer token."""

    def __init__(self, message: str = "Unauthorized.") -> None:
        super().__init__(message)


class InvalidRequestError(GatewayError):
    """Raised when an incoming request is invalid."""
    
    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(message)
        self.code = code


class FrameParseError(GatewayError):
    """Raised when an upstream line is not valid JSON."""

    def __init__(self, message: str, line: str = "") -> None:
        super().__init__(message)
        self.line = line


class UpstreamProtocolError(GatewayError):
    """The upstream reported an error event inside its stream."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class UpstreamStatusError(GatewayError):
    """The upstream answered with an HTTP error status."""

    def __init__(self, message: str, status_code: int, body: bytes = b"") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UnexpectedTermination(GatewayError):
    """The upstream stream ended before any terminal event."""

    def __init__(self, message: str = "Unexpected stream end") -> None:
        super().__init__(message)
