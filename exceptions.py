from typing import Dict, Optional


class OnboardingException(Exception):
    """Base exception for the onboarding service."""
    status_code = 500

class NotFoundError(OnboardingException):
    """Raised when a company, process, candidate or blob id does not exist."""
    status_code = 404

class ValidationException(OnboardingException):
    """Raised when input validation fails."""
    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}

class ExternalServiceError(OnboardingException):
    """Raised when the LLM backend fails or returns output that fails validation."""
    status_code = 502

class StorageError(OnboardingException):
    """Raised when the key-value store cannot be read or written."""
    status_code = 500
