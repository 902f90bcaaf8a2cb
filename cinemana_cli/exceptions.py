"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class CinemanaCliError(Exception):
    """Base exception for all application-specific errors."""


class CatalogError(CinemanaCliError):
    """Raised when a catalog request fails or returns an unusable payload."""


class ConfigurationError(CinemanaCliError):
    """Raised for issues related to configuration loading or validation."""


class NoIdentifiersError(CinemanaCliError):
    """Raised when no identifiers could be resolved, so there is nothing to run."""


class PostProcessError(CinemanaCliError):
    """Raised when the external muxer exits with a non-zero status."""
