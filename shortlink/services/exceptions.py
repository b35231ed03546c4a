"""Exceptions for the link shortener service layer.

This module contains the exception hierarchy for the service layer,
providing domain-specific exceptions that abstract underlying implementation details.
"""


class ServiceError(Exception):
    """Base exception for all service-level errors."""
    pass


class URLError(ServiceError):
    """Base exception for link-related errors."""
    pass


class URLValidationError(URLError):
    """Input failed validation checks."""
    pass


class InvalidURLError(URLValidationError):
    """The target URL is not an absolute http or https URL."""
    pass


class InvalidSlugError(URLValidationError):
    """The requested slug doesn't meet format requirements."""
    pass


class InvalidTTLError(URLValidationError):
    """The requested TTL is not one of the allowed values."""
    pass


class URLCreationError(URLError):
    """Error occurred during link creation."""
    pass


class SlugGenerationError(URLCreationError):
    """Failed to generate a unique random slug."""
    pass


class SlugUnavailableError(URLCreationError):
    """The requested slug and all of its suffixed alternatives are taken."""
    pass


class URLNotFoundError(URLError):
    """No live link exists for the slug."""
    pass


class AuthenticationError(ServiceError):
    """Base exception for rejected credentials."""
    pass


class InvalidPasswordError(AuthenticationError):
    """The password does not match a protected link."""
    pass


class InvalidManageTokenError(AuthenticationError):
    """The management token is wrong or the link is already expired."""
    pass


class CleanupError(ServiceError):
    """Base exception for cleanup-related errors."""
    pass


class ExpiredURLCleanupError(CleanupError):
    """Error occurred while cleaning up expired links."""
    pass
