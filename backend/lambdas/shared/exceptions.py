"""Exceptions shared by the HTTP handlers; each maps onto one response class."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a server-side setting or provider credential is missing or invalid."""


class ExternalServiceError(RuntimeError):
    """Raised when an upstream call fails in transport or returns an unreadable body."""


class InvalidRequestError(ValueError):
    """Raised when the inbound request violates a precondition of the handler."""
