"""Shared helpers reused across Lambda handlers."""

from .config import get_choice_env, get_env, get_float_env, get_int_env
from .exceptions import ConfigurationError, ExternalServiceError, InvalidRequestError
from .logging import get_logger

__all__ = [
    "get_env",
    "get_int_env",
    "get_float_env",
    "get_choice_env",
    "ConfigurationError",
    "ExternalServiceError",
    "InvalidRequestError",
    "get_logger",
]
