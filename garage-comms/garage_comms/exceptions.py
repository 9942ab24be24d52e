from typing import Optional, Any


class GarageCommsError(Exception):
    """Base exception for the notification and upload subsystem."""
    pass


class ConfigurationError(GarageCommsError):
    """Raised when required settings or credentials are missing."""
    pass


class InvalidPhoneNumber(GarageCommsError, ValueError):
    """Raised when a phone number cannot be formatted as E.164."""
    pass


class ProviderError(GarageCommsError):
    """Raised by a channel adapter when the provider rejects a request."""
    def __init__(self, message: str, provider: str = "unknown", code: Optional[str] = None, status_code: Optional[int] = None, details: Any = None):
        self.message = message
        self.provider = provider
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(f"[{provider}] {message} (Code: {code}, Status: {status_code})")
