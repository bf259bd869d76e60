from __future__ import annotations


class BusinessValidationError(Exception):
    """Raised when a request is well-formed but asks for something unsupported."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(Exception):
    """Raised when a required setting (e.g. a default topic) is missing at use time."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
